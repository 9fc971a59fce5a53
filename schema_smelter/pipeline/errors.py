"""
Error taxonomy for the schema compiler.

Every error carries a stable ``code`` so callers (the batch driver, the CLI)
can report failures without string matching on messages.
"""

from __future__ import annotations

from pathlib import Path


class SchemaError(Exception):
    """Base class for all compiler errors."""

    code = "schema_error"

    def __init__(self, message: str, path: str | Path | None = None):
        super().__init__(message)
        self.path = str(path) if path is not None else None


class SchemaFileNotFoundError(SchemaError):
    code = "file_not_found"


class SchemaParseError(SchemaError):
    code = "json_parse_error"


class InvalidSchemaStructureError(SchemaError):
    code = "invalid_schema_structure"


class ResolutionError(SchemaError):
    """Base class for errors raised while resolving references."""

    code = "resolution_error"

    def __init__(self, message: str, path: str | Path | None = None, ref: str | None = None):
        super().__init__(message, path)
        self.ref = ref


class RefNotFoundError(ResolutionError):
    code = "ref_not_found"


class ReferencedFileError(ResolutionError):
    """A referenced file could not be read or decoded."""

    code = "file_error"


class CircularReferenceError(ResolutionError):
    code = "circular_reference"

    def __init__(self, message: str, chain: list[tuple[str, str | None]], path: str | Path | None = None, ref: str | None = None):
        super().__init__(message, path, ref)
        self.chain = chain


class GenerationError(SchemaError):
    """Neither full nor fallback generation could produce a module."""

    code = "generation_failed"
