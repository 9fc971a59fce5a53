"""
CLI utilities for command line reconstruction and introspection.
"""

from pathlib import Path

import click

PROGRAM_NAME = "schema_smelter"


def reconstruct_command_line(ctx: click.Context | None = None) -> str:
    """
    Reconstruct the command line from a Click context using introspection.

    Paths are shown by file name only and options left at their default are
    omitted, so the result does not depend on the working directory.

    Args:
        ctx: Click context; defaults to the current one

    Returns:
        Reconstructed command line string
    """
    if ctx is None:
        ctx = click.get_current_context(silent=True)
    if ctx is None:
        # No active context, return basic command
        return PROGRAM_NAME

    cmd_parts = [PROGRAM_NAME]
    # Sub-command names between the program and this command
    cmd_parts.extend(ctx.command_path.split()[1:])

    arguments = []  # For positional arguments
    options = []  # For optional arguments

    for param in ctx.command.params:
        value = ctx.params.get(param.name)
        if value is None or value is False or value == ():
            continue

        if isinstance(param, click.Argument):
            arguments.append(_format_value(param, value))

        elif isinstance(param, click.Option):
            # Skip if it's the default value
            if value == param.default:
                continue
            # Get the primary option name (first in opts list)
            flag = param.opts[0] if param.opts else f"--{param.name}"
            if param.is_flag:
                options.append(flag)
            else:
                options.extend([flag, _format_value(param, value)])

    # Combine: command + arguments + options
    cmd_parts.extend(arguments)
    cmd_parts.extend(options)

    return " ".join(cmd_parts)


def _format_value(param: click.Parameter, value) -> str:
    # Path parameters show their file name, whether or not the file exists yet
    if isinstance(param.type, click.Path):
        return Path(str(value)).name
    return str(value)
