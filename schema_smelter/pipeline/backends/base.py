"""
Base class for code generation backends.

Defines the interface that all backends must implement.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import jinja2

from ...runtime.types import TypeDescriptor
from ..analyzer.ir_nodes import ModuleSpec
from ..config import CodeGeneratorConfig


class CodeBackend(ABC):
    """Abstract base class for code generation backends."""

    # Template directory name
    TEMPLATE_LANG: str = ""

    # File extension
    FILE_EXTENSION: str = ""

    def __init__(self, config: CodeGeneratorConfig):
        """
        Initialize the backend.

        Args:
            config: Code generation configuration
        """
        self.config = config
        self._setup_templates()

    def _setup_templates(self) -> None:
        """Set up Jinja2 templates."""
        template_dir = Path(__file__).parent.parent.parent / "templates" / self.TEMPLATE_LANG
        self.jinja_env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            lstrip_blocks=True,
            trim_blocks=True,
            keep_trailing_newline=True,
        )

        self.prefix_template = self.jinja_env.get_template(f"prefix.{self.FILE_EXTENSION}.jinja2")
        self.module_template = self.jinja_env.get_template(f"module.{self.FILE_EXTENSION}.jinja2")
        self.suffix_template = self.jinja_env.get_template(f"suffix.{self.FILE_EXTENSION}.jinja2")

    @abstractmethod
    def generate(self, spec: ModuleSpec, generation_comment: str = "") -> str:
        """
        Generate code for one module.

        Args:
            spec: The analyzed module
            generation_comment: Comment line placed at the top, if any

        Returns:
            Generated code as a string
        """

    @abstractmethod
    def translate_type(self, descriptor: TypeDescriptor) -> str:
        """
        Translate a type descriptor to a source expression.

        Args:
            descriptor: The type descriptor

        Returns:
            Source expression constructing the descriptor
        """

    @abstractmethod
    def format_default_value(self, value: Any) -> str:
        """
        Format a default value for the target language.

        Args:
            value: The default value

        Returns:
            Formatted default value string
        """

    def _get_comment_prefix(self) -> str:
        """Get the comment prefix for the language."""
        return "#" if self.TEMPLATE_LANG == "python" else "//"
