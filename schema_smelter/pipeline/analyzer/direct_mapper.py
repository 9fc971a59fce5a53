"""
Direct (fallback) mapper working on the raw, unresolved schema.

Used when reference resolution fails. Only primitives, arrays and inline
enums / compositions are understood; ``$ref`` is never followed and maps
to an opaque value.
"""

from __future__ import annotations

from typing import Any

from ...runtime.types import ArrayOf, Const, Enum, FormattedString, Opaque, Primitive, TypeDescriptor, VariantOf
from ..errors import GenerationError
from .type_mapper import SCALAR_TYPES, TIMESTAMP_FORMATS, declared_type

COMPOSITION_TAGS = {"allOf": "all_of", "oneOf": "one_of", "anyOf": "any_of"}


def map_type(node: Any) -> TypeDescriptor:
    """
    Map a raw property definition without resolving anything.

    Raises:
        GenerationError: If the definition uses a shape this pass cannot handle
    """
    if not isinstance(node, dict):
        raise GenerationError(f"Unsupported property definition: {node!r}")

    if "$ref" in node:
        return Opaque()

    if "enum" in node:
        if not isinstance(node["enum"], list):
            raise GenerationError(f"enum must be a list, got {type(node['enum']).__name__}")
        return Enum(tuple(node["enum"]))

    if "const" in node:
        return Const((node["const"],))

    json_type = declared_type(node)

    if json_type == "array":
        items = node.get("items")
        if isinstance(items, dict) and "$ref" not in items:
            return ArrayOf(map_type(items))
        return ArrayOf(Opaque())

    if json_type == "string":
        if node.get("format") in TIMESTAMP_FORMATS:
            return FormattedString(node["format"])
        return Primitive("string")

    if json_type in SCALAR_TYPES or json_type == "object":
        return Primitive(json_type)

    for keyword, tag in COMPOSITION_TAGS.items():
        branches = node.get(keyword)
        if branches is None:
            continue
        if not isinstance(branches, list):
            raise GenerationError(f"{keyword} must be a list, got {type(branches).__name__}")
        return VariantOf(tag, tuple(map_type(branch) for branch in branches))

    return Opaque()
