import json
import logging
from pathlib import Path

import click

from . import __version__
from .pipeline import BatchCompiler, CodeGeneratorConfig, PipelineGenerator, SchemaError
from .pipeline.batch import FAILED, SKIPPED, FileOutcome
from .pipeline.merger import AtomicWriter


def load_config(
    config_path: str | None,
    module_prefix: str | None = None,
    defaults: dict | None = None,
) -> CodeGeneratorConfig:
    """
    Build the configuration from an optional JSON file and CLI overrides.

    Precedence, lowest first: ``defaults``, the config file, ``module_prefix``.
    """
    data = dict(defaults or {})
    if config_path is not None:
        with open(config_path, encoding="utf-8") as f:
            try:
                data.update(json.load(f))
            except ValueError as e:
                raise click.BadParameter(f"{config_path} is not valid JSON: {e}", param_hint="--config") from e
    config = CodeGeneratorConfig.from_dict(data)

    if module_prefix is not None:
        config.module_prefix = module_prefix
    return config


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log debug information")
@click.version_option(version=__version__, prog_name="schema_smelter")
def schema_smelter(verbose):
    """Compile JSON Schema files into Python validation modules."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@schema_smelter.command("compile")
@click.option("--module", "-m", "module_name", default=None, type=str, help="Module name (derived from the path by default)")
@click.option("--output", "-o", default=None, type=click.Path(dir_okay=False, resolve_path=True), help="Write to a file instead of stdout")
@click.option("--module-prefix", "-p", default=None, type=str, help="Prefix for derived module names")
@click.option("--config", "-c", default=None, type=click.Path(exists=True, resolve_path=True))
@click.option(
    "--fallback",
    is_flag=True,
    default=False,
    help="Generate from the raw schema when reference resolution fails (also enabled by allow_fallback in --config)",
)
@click.argument("path", type=click.Path(exists=True, dir_okay=False, resolve_path=True))
def compile_command(module_name, output, module_prefix, config, fallback, path):
    """Compile one schema file."""
    # Off unless the config file or --fallback turns it on
    config = load_config(config, module_prefix, defaults={"allow_fallback": False})
    if fallback:
        config.allow_fallback = True

    try:
        code = PipelineGenerator(path, config, module_name).generate()
        if output is None:
            click.echo(code, nl=False)
            return
        AtomicWriter(config.output).write(Path(output), code)
    except SchemaError as e:
        raise click.ClickException(f"{e.code}: {e}") from e
    except OSError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"Generated {output}")


def _report(outcome: FileOutcome, dry_run: bool) -> None:
    if outcome.status == SKIPPED:
        click.echo(f"Skipped {outcome.relative_path} (no generatable shape)")
    elif outcome.status == FAILED:
        error = outcome.error
        code = getattr(error, "code", type(error).__name__)
        click.echo(f"Failed {outcome.relative_path}: {code}: {error}", err=True)
    else:
        note = " (direct generation)" if outcome.fallback else ""
        verb = "Would generate" if dry_run else "Generated"
        click.echo(f"{verb} {outcome.relative_path} -> {outcome.output_path.name}{note}")


@schema_smelter.command("batch")
@click.option("--output-dir", "-o", default=None, type=click.Path(file_okay=False, resolve_path=True))
@click.option("--dry-run", "-n", is_flag=True, default=False, help="Compile without writing any file")
@click.option("--module-prefix", "-p", default=None, type=str, help="Prefix for derived module names")
@click.option("--config", "-c", default=None, type=click.Path(exists=True, resolve_path=True))
@click.argument("schema_dir", type=click.Path(exists=True, file_okay=False, resolve_path=True))
def batch_command(output_dir, dry_run, module_prefix, config, schema_dir):
    """Compile every schema file below SCHEMA_DIR."""
    config = load_config(config, module_prefix)
    compiler = BatchCompiler(config)

    try:
        result = compiler.run(
            schema_dir,
            output_dir=output_dir,
            dry_run=dry_run,
            on_outcome=lambda outcome: _report(outcome, dry_run),
        )
    except (ValueError, OSError) as e:
        raise click.ClickException(str(e)) from e

    if not result.outcomes:
        click.echo(f"No schema files found in {schema_dir}")
        return

    summary = f"Generated {result.generated} schemas, {result.failed} failed"
    if result.skipped:
        summary += f", {result.skipped} skipped"
    if dry_run:
        summary += " (dry run - no files written)"
    click.echo(summary)
