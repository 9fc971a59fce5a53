"""
Pipeline - JSON Schema corpus to Python validation modules.

1. Phase 1 (Loader): Read and decode a schema file
2. Phase 2 (Resolver): Inline local references, annotate cross-file ones, merge allOf
3. Phase 3 (Analyzer): Map property types and build a ModuleSpec
4. Phase 4 (Backend): Render the ModuleSpec with Jinja2 templates
5. Phase 5 (Formatter): Optional post-processing with ruff
6. Phase 6 (Writer): Validated atomic write of the module
"""

from __future__ import annotations

from .batch import BatchCompiler, BatchResult, FileOutcome
from .config import CodeGeneratorConfig, FormatterConfig, OutputConfig
from .errors import (
    CircularReferenceError,
    GenerationError,
    InvalidSchemaStructureError,
    ReferencedFileError,
    RefNotFoundError,
    ResolutionError,
    SchemaError,
    SchemaFileNotFoundError,
    SchemaParseError,
)
from .generator import PipelineGenerator, compile_schema, parse_schema
from .loader import SchemaDocument, SchemaLoader, SchemaMetadata, is_generatable, load, metadata
from .merger import AtomicWriter

__all__ = [
    "AtomicWriter",
    "BatchCompiler",
    "BatchResult",
    "CircularReferenceError",
    "CodeGeneratorConfig",
    "FileOutcome",
    "FormatterConfig",
    "GenerationError",
    "InvalidSchemaStructureError",
    "OutputConfig",
    "PipelineGenerator",
    "RefNotFoundError",
    "ReferencedFileError",
    "ResolutionError",
    "SchemaDocument",
    "SchemaError",
    "SchemaFileNotFoundError",
    "SchemaLoader",
    "SchemaMetadata",
    "SchemaParseError",
    "compile_schema",
    "is_generatable",
    "load",
    "metadata",
    "parse_schema",
]
