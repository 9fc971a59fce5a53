"""
Pipeline code generator.

Orchestrates the compilation of one schema file:
1. Load: read and decode the JSON document
2. Resolve: inline local references, annotate cross-file ones, merge allOf
3. Analyze: map property types and build the ModuleSpec
4. Generate: render the module with the Jinja2 backend (optionally ruff-formatted)

When resolution fails and fallback is allowed, step 3 runs the direct
mapper on the raw document instead.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from .. import __version__
from ..cli_utils import reconstruct_command_line
from .analyzer import direct_mapper, namespace
from .analyzer.analyzer import SchemaAnalyzer
from .analyzer.ir_nodes import ModuleSpec
from .analyzer.reference_resolver import SOURCE_PATH, Resolver
from .backends.python_backend import PythonBackend
from .config import CodeGeneratorConfig
from .errors import ResolutionError
from .formatters.ruff_formatter import RuffFormatter
from .loader import SchemaDocument, SchemaLoader

logger = logging.getLogger(__name__)


class PipelineGenerator:
    """Compiles one schema file to the source of one Python module."""

    def __init__(
        self,
        schema_path: str | Path,
        config: CodeGeneratorConfig | None = None,
        module_name: str | None = None,
        loader: SchemaLoader | None = None,
        document: SchemaDocument | None = None,
    ):
        """
        Initialize the generator.

        Args:
            schema_path: Path of the schema file
            config: Compiler configuration
            module_name: Explicit module name (derived from the path otherwise)
            loader: Loader for the schema and the files it references
            document: Already loaded document for ``schema_path``
        """
        self.schema_path = Path(schema_path).expanduser().resolve()
        self.config = config or CodeGeneratorConfig()
        self.module_name = module_name
        self.loader = loader or SchemaLoader()
        self.document = document
        self.backend = PythonBackend(self.config)

        # Set when the last build_module_spec used the direct mapper
        self.fallback_reason: ResolutionError | None = None

    def generate(self) -> str:
        """
        Generate the module source.

        Returns:
            Generated Python code

        Raises:
            SchemaError: On loader errors, on resolution errors when fallback
                is disabled, and on GenerationError
        """
        spec = self.build_module_spec()
        code = self.backend.generate(spec, self._generate_command_comment())

        if self.config.formatter.enabled:
            code = RuffFormatter().format(code, self.config.formatter)

        return code

    def load(self) -> SchemaDocument:
        if self.document is None:
            self.document = self.loader.load(self.schema_path)
        return self.document

    def resolve(self) -> dict[str, Any]:
        """Load and resolve the schema without generating code."""
        return Resolver(self.config, self.loader).resolve(self.load())

    def build_module_spec(self) -> ModuleSpec:
        """Run the load, resolve and analyze phases."""
        document = self.load()
        module_name = self.module_name or self.derive_module_name()
        self.fallback_reason = None

        try:
            resolved = self.resolve()
        except ResolutionError as e:
            if not self.config.allow_fallback:
                raise
            logger.warning("Reference resolution failed for %s, using direct generation: %s", document.path, e)
            self.fallback_reason = e
            analyzer = SchemaAnalyzer(direct_mapper.map_type, is_fallback=True)
            return analyzer.analyze(document.content, module_name, source_path=document.path)

        return SchemaAnalyzer().analyze(resolved, module_name, source_path=resolved.get(SOURCE_PATH))

    def derive_module_name(self) -> str:
        """Module name from the prefix and the file's place in the schema root."""
        if self.config.schemas_dir:
            schemas_dir = Path(self.config.schemas_dir).expanduser().resolve()
        else:
            schemas_dir = namespace.detect_schemas_root(self.schema_path)
        return namespace.module_name(self.schema_path, schemas_dir, self.config.module_prefix)

    def _generate_command_comment(self) -> str:
        """Generate a simplified command line comment for the generated file"""
        if not self.config.add_generation_comment:
            return ""

        comment_prefix = self.backend._get_comment_prefix()
        command_line = reconstruct_command_line()
        return f"{comment_prefix} Generated by schema_smelter v{__version__} : {command_line}"


def compile_schema(
    schema_path: str | Path,
    config: CodeGeneratorConfig | None = None,
    module_name: str | None = None,
) -> str:
    """
    Compile one schema file to Python source.

    Args:
        schema_path: Path of the schema file
        config: Compiler configuration
        module_name: Explicit module name

    Returns:
        Generated Python code
    """
    return PipelineGenerator(schema_path, config, module_name).generate()


def parse_schema(schema_path: str | Path, config: CodeGeneratorConfig | None = None) -> dict[str, Any]:
    """Load and resolve a schema file, returning the annotated tree."""
    return PipelineGenerator(schema_path, config).resolve()
