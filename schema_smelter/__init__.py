"""Schema Smelter

Compiles a corpus of JSON Schema files into Python modules that validate
untyped input against each schema. Generated modules depend on the small
runtime in ``schema_smelter.runtime``.
"""

__version__ = "1.0.0"

from .pipeline import (
    AtomicWriter,
    BatchCompiler,
    CodeGeneratorConfig,
    FormatterConfig,
    OutputConfig,
    PipelineGenerator,
    SchemaError,
    compile_schema,
    parse_schema,
)

__all__ = [
    "AtomicWriter",
    "BatchCompiler",
    "CodeGeneratorConfig",
    "FormatterConfig",
    "OutputConfig",
    "PipelineGenerator",
    "SchemaError",
    "compile_schema",
    "parse_schema",
]
