"""
$ref parsing and JSON Pointer evaluation.
"""

from __future__ import annotations

from typing import Any

_MISSING = object()


def parse_ref(ref: str) -> tuple[str | None, str | None]:
    """
    Split a $ref string into its file part and pointer part.

    Examples:
        "#/$defs/money" -> (None, "/$defs/money")
        "buyer.json" -> ("buyer.json", None)
        "types.json#/$defs/money" -> ("types.json", "/$defs/money")

    Returns:
        (file_path, pointer). ``file_path`` is None for local references;
        ``pointer`` is None for whole-file references.
    """
    if ref.startswith("#"):
        return None, ref[1:]
    file_part, sep, pointer = ref.partition("#")
    return file_part, (pointer if sep else None)


def pointer_to_path(pointer: str) -> list[str]:
    """Convert a JSON pointer to its unescaped path segments."""
    if pointer in ("", "/"):
        return []
    segments = pointer.removeprefix("/").split("/")
    # ~1 must be replaced before ~0 so "~01" decodes to "~1"
    return [segment.replace("~1", "/").replace("~0", "~") for segment in segments]


def resolve_pointer(document: Any, pointer: str) -> Any:
    """
    Walk a document along a JSON pointer.

    Returns:
        The target value, or ``_MISSING`` when the path does not resolve.
    """
    node = document
    for segment in pointer_to_path(pointer):
        if isinstance(node, dict):
            if segment not in node:
                return _MISSING
            node = node[segment]
        elif isinstance(node, list):
            if not segment.isdigit() or int(segment) >= len(node):
                return _MISSING
            node = node[int(segment)]
        else:
            return _MISSING
    return node


def is_missing(value: Any) -> bool:
    return value is _MISSING
