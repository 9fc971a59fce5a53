"""
Type mapper: resolved schema node -> type descriptor.

Rules, in priority order:

1. a cross-file reference site (``_ref_module``) -> ``Reference``
2. ``enum`` -> ``Enum``; ``const`` -> ``Const``
3. ``"type": "array"`` -> ``ArrayOf`` of the mapped items
4. ``"type": "string"`` -> ``FormattedString`` for date-time, else string
5. integer / number / boolean -> ``Primitive``
6. allOf / oneOf / anyOf -> ``VariantOf`` (merged allOf objects -> object)
7. ``"type": "object"`` -> ``Primitive("object")``
8. anything else -> ``Opaque``
"""

from __future__ import annotations

from typing import Any

from ...runtime.types import ArrayOf, Const, Enum, FormattedString, Opaque, Primitive, Reference, TypeDescriptor, VariantOf
from .reference_resolver import COMPOSITION, REF_MODULE

SCALAR_TYPES = ("integer", "number", "boolean")

TIMESTAMP_FORMATS = ("date-time",)


def declared_type(node: dict[str, Any]) -> str | None:
    """
    The single JSON type a node declares.

    ``["string", "null"]`` declares ``string``; several non-null types or
    no type at all declare nothing.
    """
    value = node.get("type")
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        non_null = [t for t in value if t != "null"]
        if len(non_null) == 1 and isinstance(non_null[0], str):
            return non_null[0]
    return None


def is_nullable(node: Any) -> bool:
    return isinstance(node, dict) and isinstance(node.get("type"), list) and "null" in node["type"]


def discriminator(node: Any) -> Any:
    """The ``properties.type.const`` of an inline branch, if any."""
    if not isinstance(node, dict) or REF_MODULE in node:
        return None
    type_property = (node.get("properties") or {}).get("type")
    if isinstance(type_property, dict):
        return type_property.get("const")
    return None


def map_type(node: Any) -> TypeDescriptor:
    """
    Map a resolved property definition to a type descriptor.

    Args:
        node: A node produced by the resolver

    Returns:
        The type descriptor for the node
    """
    if not isinstance(node, dict):
        return Opaque()

    if REF_MODULE in node:
        return Reference(node[REF_MODULE])

    if isinstance(node.get("enum"), list):
        return Enum(tuple(node["enum"]))

    if "const" in node:
        return Const((node["const"],))

    json_type = declared_type(node)

    if json_type == "array":
        items = node.get("items")
        return ArrayOf(map_type(items) if isinstance(items, dict) else Opaque())

    if json_type == "string":
        if node.get("format") in TIMESTAMP_FORMATS:
            return FormattedString(node["format"])
        return Primitive("string")

    if json_type in SCALAR_TYPES:
        return Primitive(json_type)

    if COMPOSITION in node:
        return map_composition(node)

    if json_type == "object":
        return Primitive("object")

    return Opaque()


def map_composition(node: dict[str, Any]) -> TypeDescriptor:
    """Map a node carrying a ``_composition`` annotation."""
    tag, branches = node[COMPOSITION]

    if tag == "all_of":
        # Branches are already merged into the node
        if "properties" in node:
            return Primitive("object")
        return VariantOf("all_of", tuple(map_type(branch) for branch in branches))

    variants = tuple(map_type(branch) for branch in branches)
    tags = tuple(discriminator(branch) for branch in branches)
    required = tuple(_branch_required(branch) for branch in branches)

    return VariantOf(
        tag,
        variants,
        tags=tags if any(t is not None for t in tags) else (),
        required=required if any(required) else (),
    )


def _branch_required(branch: Any) -> tuple[str, ...]:
    if not isinstance(branch, dict) or REF_MODULE in branch:
        return ()
    required = branch.get("required") or ()
    return tuple(dict.fromkeys(name for name in required if isinstance(name, str)))
