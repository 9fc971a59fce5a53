"""
Batch compilation of a schema directory tree.

Files are discovered recursively, compiled one after the other, and each
one gets an outcome; a failure never stops the run.
"""

from __future__ import annotations

import dataclasses
import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from .analyzer import namespace
from .config import CodeGeneratorConfig
from .errors import SchemaError
from .generator import PipelineGenerator
from .loader import SchemaLoader, is_generatable, metadata
from .merger.atomic_writer import AtomicWriter

logger = logging.getLogger(__name__)

GENERATED = "generated"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class FileOutcome:
    """What happened to one schema file."""

    schema_path: Path
    relative_path: str
    status: str
    output_path: Path | None = None
    module_name: str | None = None
    error: Exception | None = None

    # True when the module came from the direct mapper
    fallback: bool = False

    # False in dry-run mode
    written: bool = False


@dataclass
class BatchResult:
    outcomes: list[FileOutcome] = field(default_factory=list)
    dry_run: bool = False

    def _count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def generated(self) -> int:
        return self._count(GENERATED)

    @property
    def skipped(self) -> int:
        return self._count(SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(FAILED)

    @property
    def failures(self) -> list[FileOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status == FAILED]


class BatchCompiler:
    """Compiles every schema file below a directory."""

    def __init__(
        self,
        config: CodeGeneratorConfig | None = None,
        loader: SchemaLoader | None = None,
        writer: AtomicWriter | None = None,
    ):
        self.config = config or CodeGeneratorConfig()
        self.loader = loader or SchemaLoader()
        self.writer = writer or AtomicWriter(self.config.output)

    def discover(self, schema_dir: str | Path) -> list[Path]:
        """
        Find schema files below a directory.

        Args:
            schema_dir: Root of the tree to scan

        Returns:
            Sorted ``.json`` files, excluding configured directories
        """
        schema_dir = Path(schema_dir)
        excluded = set(self.config.exclude_dirs)
        found = []
        for path in schema_dir.rglob("*.json"):
            relative = path.relative_to(schema_dir)
            if excluded.intersection(relative.parts[:-1]):
                continue
            if path.is_file():
                found.append(path)
        return sorted(found)

    def run(
        self,
        schema_dir: str | Path,
        output_dir: str | Path | None = None,
        dry_run: bool = False,
        on_outcome: Callable[[FileOutcome], None] | None = None,
    ) -> BatchResult:
        """
        Compile every schema below ``schema_dir``.

        The output directory is cleared first (unless ``dry_run``), so files
        from a previous run never linger.

        Args:
            schema_dir: Directory holding the schema corpus
            output_dir: Where generated modules go (config ``output_dir`` otherwise)
            dry_run: Compile without writing anything
            on_outcome: Called with each outcome as soon as it is known

        Returns:
            BatchResult with one outcome per discovered file

        Raises:
            ValueError: If the output directory contains the schema directory
        """
        schema_dir = Path(schema_dir).expanduser().resolve()
        output_dir = Path(output_dir if output_dir is not None else self.config.output_dir).expanduser().resolve()

        if schema_dir == output_dir or output_dir in schema_dir.parents:
            raise ValueError(f"Output directory {output_dir} must not contain the schema directory {schema_dir}")

        files = self.discover(schema_dir)
        result = BatchResult(dry_run=dry_run)
        if not files:
            return result

        if not dry_run:
            if output_dir.exists():
                shutil.rmtree(output_dir)
            output_dir.mkdir(parents=True)

        config = self.config
        if not config.schemas_dir:
            config = dataclasses.replace(config, schemas_dir=str(namespace.detect_schemas_root(schema_dir)))

        claimed: dict[str, Path] = {}
        for path in files:
            outcome = self._compile_file(path, schema_dir, output_dir, config, claimed, dry_run)
            result.outcomes.append(outcome)
            logger.info("%s %s", outcome.status, outcome.relative_path)
            if on_outcome is not None:
                on_outcome(outcome)

        return result

    def _compile_file(
        self,
        path: Path,
        schema_dir: Path,
        output_dir: Path,
        config: CodeGeneratorConfig,
        claimed: dict[str, Path],
        dry_run: bool,
    ) -> FileOutcome:
        outcome = FileOutcome(schema_path=path, relative_path=path.relative_to(schema_dir).as_posix(), status=FAILED)

        try:
            document = self.loader.load(path)
            meta = metadata(document)
            if not is_generatable(meta):
                logger.debug("%s declares no properties or composition", meta.title or outcome.relative_path)
                outcome.status = SKIPPED
                return outcome

            filename = namespace.output_filename(path, schema_dir)
            if filename in claimed:
                logger.warning("Output file %s of %s is already produced by %s", filename, path, claimed[filename])
                raise SchemaError(f"Output file {filename} collides with {claimed[filename].relative_to(schema_dir)}", path)
            claimed[filename] = path

            generator = PipelineGenerator(path, config, loader=self.loader, document=document)
            code = generator.generate()
            outcome.module_name = generator.module_name or generator.derive_module_name()
            outcome.fallback = generator.fallback_reason is not None
            outcome.output_path = output_dir / filename

            if not dry_run:
                self.writer.write(outcome.output_path, code)
                outcome.written = True
        except (SchemaError, OSError) as e:
            outcome.error = e
            return outcome

        outcome.status = GENERATED
        return outcome
