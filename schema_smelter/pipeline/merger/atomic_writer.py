"""
Atomic file writer for safe code generation.

Ensures that file writes are atomic to prevent data corruption
from interrupted operations.
"""

from __future__ import annotations

import ast
import tempfile
from collections.abc import Callable
from pathlib import Path

from ..config import OutputConfig
from ..errors import GenerationError


def validate_python(content: str) -> None:
    """Check that generated code parses.

    Raises:
        GenerationError: If the code is not valid Python
    """
    try:
        ast.parse(content)
    except (SyntaxError, ValueError) as e:
        raise GenerationError(f"Generated Python code is not valid: {e}") from e


class AtomicWriter:
    """Handles atomic file writes with validation.

    Uses a two-phase commit approach:
    1. Write to a temporary file in the same directory
    2. Validate the content
    3. Atomically replace the target file

    An interrupted write never leaves the target file in an incomplete state.
    """

    def __init__(self, config: OutputConfig | None = None, validator: Callable[[str], None] | None = None):
        """Initialize the atomic writer.

        Args:
            config: Output configuration (validation and atomicity switches)
            validator: Validation function for generated code
        """
        self.config = config or OutputConfig()
        self._validate = validator or validate_python

    def write(self, path: Path, content: str) -> None:
        """Write content to file atomically.

        Args:
            path: Target file path
            content: Content to write

        Raises:
            GenerationError: If validation fails
            OSError: If file operations fail
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        if self.config.validate_before_write:
            self._validate(content)

        if not self.config.atomic_write:
            path.write_text(content, encoding="utf-8")
            return

        # Same directory ensures atomic rename on the same filesystem
        temp_fd, temp_path_str = tempfile.mkstemp(
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            text=True,
        )
        temp_path = Path(temp_path_str)

        try:
            with open(temp_fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(content)
            temp_path.replace(path)
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise
