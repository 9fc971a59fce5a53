"""
Namespace derivation from file-system layout.

Schema corpora are laid out as ``<schemas root>/<version>/<domain>/.../file.json``.
The version directory is optional; when present it is skipped so that
regenerating against a new corpus version keeps module names stable.
"""

from __future__ import annotations

import re
from pathlib import Path

from ...utils import path_segment_to_namespace, snake_to_pascal_case
from .json_pointer import pointer_to_path

# Version-like directory names: dates (2026-01-11), v2, 1.0
VERSION_SEGMENT = re.compile(r"^v?\d+(?:[.-]\d+)*$")

_SCHEMAS_DIR = re.compile(r"^(?:.+[_-])?schemas$")


def is_version_segment(name: str) -> bool:
    return bool(VERSION_SEGMENT.match(name))


def detect_schemas_root(path: str | Path) -> Path:
    """
    Detect the schema root directory for a schema file or directory.

    The nearest version-like ancestor's parent wins; otherwise the nearest
    directory named ``schemas`` (or ``*_schemas``); otherwise the directory
    itself (or the file's directory).

    Args:
        path: A schema file or a directory inside a schema corpus

    Returns:
        Absolute path of the detected root
    """
    path = Path(path).expanduser().resolve()
    start = path if path.is_dir() else path.parent
    candidates = [start, *start.parents]

    for directory in candidates:
        if is_version_segment(directory.name) and directory.parent != directory:
            return directory.parent

    for directory in candidates:
        if _SCHEMAS_DIR.match(directory.name):
            return directory

    return start


def relative_parts(file_path: str | Path, schemas_dir: str | Path) -> list[str] | None:
    """
    Path segments of a schema file relative to the schema root.

    The ``.json`` suffix is dropped and a leading version segment is skipped.
    Returns None when the file is outside the root.
    """
    file_path = Path(file_path).expanduser().resolve()
    root = Path(schemas_dir).expanduser().resolve()
    try:
        relative = file_path.relative_to(root)
    except ValueError:
        return None

    parts = list(relative.parts)
    if not parts:
        return None
    parts[-1] = parts[-1].removesuffix(".json")
    if len(parts) > 1 and is_version_segment(parts[0]):
        parts = parts[1:]
    return parts


def module_name(
    file_path: str | Path,
    schemas_dir: str | Path,
    prefix: str = "",
    pointer: str | None = None,
) -> str:
    """
    Derive a module name for a schema file, optionally with a definition pointer.

    Example:
        schemas_root/2026-01-11/shopping/types/buyer.json with prefix
        "Example.Schemas" -> "Example.Schemas.Shopping.Types.Buyer"

    Args:
        file_path: Absolute path of the schema file
        schemas_dir: Schema root used to compute the relative namespace
        prefix: Module prefix prepended to the derived segments
        pointer: Optional JSON pointer; its final segment is appended

    Returns:
        Dotted module name
    """
    parts = relative_parts(file_path, schemas_dir)
    if parts is None:
        parts = [Path(file_path).name.removesuffix(".json")]

    segments = [path_segment_to_namespace(part) for part in parts]
    segments = [segment for segment in segments if segment]

    if pointer:
        path = pointer_to_path(pointer)
        if path:
            definition = snake_to_pascal_case(path[-1])
            if definition:
                segments.append(definition)

    return ".".join([prefix, *segments] if prefix else segments)


def output_filename(file_path: str | Path, base_dir: str | Path) -> str:
    """
    Flat output filename for a generated module.

    Path separators, dots and other punctuation of the schema's relative
    path are folded into underscores: ``shopping/types/buyer.json`` becomes
    ``shopping_types_buyer.py``.
    """
    parts = relative_parts(file_path, base_dir)
    if parts is None:
        parts = [Path(file_path).name.removesuffix(".json")]

    stem = "_".join(re.sub(r"[^A-Za-z0-9_]+", "_", part).strip("_") for part in parts)
    stem = re.sub(r"_+", "_", stem).strip("_") or "schema"
    if stem[0].isdigit():
        stem = f"_{stem}"
    return f"{stem}.py"
