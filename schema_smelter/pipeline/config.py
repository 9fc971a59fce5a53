"""
Configuration for the schema compiler pipeline.

A single dataclass drives the single-file and batch entry points; it can be
populated from a JSON config file with ``CodeGeneratorConfig.from_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class OutputConfig:
    """Configuration for output file handling.

    Attributes:
        validate_before_write: Whether to parse generated code before writing
        atomic_write: Whether to use atomic file writes
    """

    validate_before_write: bool = True
    atomic_write: bool = True


@dataclass
class FormatterConfig:
    """Configuration for post-processing formatters."""

    # Whether formatting is enabled
    enabled: bool = False

    # Line length for the formatter
    line_length: int = 100

    # Python version target (e.g., "py312", "py313")
    target_version: str = "py312"


@dataclass
class CodeGeneratorConfig:
    """Configuration options for schema compilation."""

    # Prefix for every derived module name
    module_prefix: str = "Smelter.Generated"

    # Explicit schema root directory (empty = detect from file layout)
    schemas_dir: str = ""

    # Output directory for batch generation
    output_dir: str = "generated"

    # Add generation comment at top of file
    add_generation_comment: bool = True

    # Fall back to the direct mapper when reference resolution fails
    allow_fallback: bool = True

    # Module that generated code imports its runtime support from
    runtime_module: str = "schema_smelter.runtime"

    # Directory names skipped during batch discovery
    exclude_dirs: list[str] = field(default_factory=lambda: ["node_modules"])

    formatter: FormatterConfig = field(default_factory=FormatterConfig)

    output: OutputConfig = field(default_factory=OutputConfig)

    @staticmethod
    def from_dict(d: dict) -> CodeGeneratorConfig:
        """Create a config from a dictionary."""
        config = CodeGeneratorConfig()
        for k, v in d.items():
            if k == "formatter" and isinstance(v, dict):
                config.formatter = FormatterConfig(**v)
            elif k == "output" and isinstance(v, dict):
                config.output = OutputConfig(
                    validate_before_write=v.get("validate_before_write", True),
                    atomic_write=v.get("atomic_write", True),
                )
            elif hasattr(config, k):
                setattr(config, k, v)
        return config

    def to_dict(self) -> dict:
        """Convert config to a dictionary."""
        return {
            "module_prefix": self.module_prefix,
            "schemas_dir": self.schemas_dir,
            "output_dir": self.output_dir,
            "add_generation_comment": self.add_generation_comment,
            "allow_fallback": self.allow_fallback,
            "runtime_module": self.runtime_module,
            "exclude_dirs": self.exclude_dirs,
            "formatter": {
                "enabled": self.formatter.enabled,
                "line_length": self.formatter.line_length,
                "target_version": self.formatter.target_version,
            },
            "output": {
                "validate_before_write": self.output.validate_before_write,
                "atomic_write": self.output.atomic_write,
            },
        }
