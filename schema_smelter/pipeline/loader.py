"""
Schema loader.

Phase 1 of the pipeline: read a schema file from disk, decode it and make
sure the decoded value is a JSON object. Also exposes a metadata projection
and the generatability check used by the batch driver.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import InvalidSchemaStructureError, SchemaFileNotFoundError, SchemaParseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SchemaDocument:
    """The decoded contents of one schema file plus its absolute path.

    The content mapping is treated as read-only: the resolver always builds
    new dictionaries instead of mutating it.
    """

    path: Path
    content: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SchemaMetadata:
    """Projection of the top-level keywords of a schema document."""

    id: str | None = None
    schema_version: str | None = None
    title: str | None = None
    description: str | None = None
    declared_type: Any = None
    required: tuple[str, ...] = ()
    has_properties: bool = False
    has_definitions: bool = False
    has_all_of: bool = False
    has_one_of: bool = False
    has_any_of: bool = False


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _parse_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"{text} is out of range for a float")
    return value


class SchemaLoader:
    """Reads and decodes schema files."""

    def load(self, path: str | Path) -> SchemaDocument:
        """
        Load a schema document.

        Args:
            path: Path to a JSON schema file

        Returns:
            SchemaDocument with an absolute path

        Raises:
            SchemaFileNotFoundError: If the path does not exist
            SchemaParseError: If the content is not valid JSON
            InvalidSchemaStructureError: If the decoded value is not an object
        """
        abs_path = Path(path).expanduser().resolve()
        if not abs_path.is_file():
            raise SchemaFileNotFoundError(f"Schema file not found: {abs_path}", abs_path)

        try:
            text = self._read(abs_path)
        except UnicodeDecodeError as e:
            raise SchemaParseError(f"Schema file {abs_path} is not valid UTF-8: {e}", abs_path) from e
        content = self.decode(text, abs_path)
        return SchemaDocument(path=abs_path, content=content)

    def decode(self, text: str, path: str | Path | None = None) -> dict[str, Any]:
        """Decode schema text, enforcing that the top-level value is an object."""
        try:
            content = json.loads(text, parse_constant=_reject_constant, parse_float=_parse_float)
        except ValueError as e:
            raise SchemaParseError(f"Invalid JSON in {path or '<string>'}: {e}", path) from e

        if not isinstance(content, dict):
            raise InvalidSchemaStructureError(
                f"Schema in {path or '<string>'} must be a JSON object, got {type(content).__name__}",
                path,
            )
        return content

    def _read(self, path: Path) -> str:
        logger.debug("Reading schema file %s", path)
        return path.read_text(encoding="utf-8")


def load(path: str | Path) -> SchemaDocument:
    """Load a schema document with the default loader."""
    return SchemaLoader().load(path)


def metadata(document: SchemaDocument | dict[str, Any]) -> SchemaMetadata:
    """Extract top-level metadata from a schema document."""
    schema = document.content if isinstance(document, SchemaDocument) else document
    required = schema.get("required")
    return SchemaMetadata(
        id=schema.get("$id"),
        schema_version=schema.get("$schema"),
        title=schema.get("title"),
        description=schema.get("description"),
        declared_type=schema.get("type"),
        required=tuple(required) if isinstance(required, list) else (),
        has_properties="properties" in schema,
        has_definitions="$defs" in schema or "definitions" in schema,
        has_all_of="allOf" in schema,
        has_one_of="oneOf" in schema,
        has_any_of="anyOf" in schema,
    )


def is_generatable(document: SchemaDocument | dict[str, Any] | SchemaMetadata) -> bool:
    """A schema is generatable if it has properties or is a composition."""
    meta = document if isinstance(document, SchemaMetadata) else metadata(document)
    return meta.has_properties or meta.has_all_of or meta.has_one_of or meta.has_any_of
