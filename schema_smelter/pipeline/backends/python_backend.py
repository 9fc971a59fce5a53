"""
Python code generation backend.

Generates a Python module holding a field table built from runtime type
descriptors, plus ``fields``, ``new`` and ``register`` functions.
"""

from __future__ import annotations

import json
import math
from typing import Any

from ...runtime.types import (
    ArrayOf,
    Const,
    Enum,
    FormattedString,
    Opaque,
    Primitive,
    Reference,
    TypeDescriptor,
    VariantOf,
)
from ..analyzer.analyzer import value_set_key
from ..analyzer.ir_nodes import FieldDescriptor, ModuleSpec
from ..config import CodeGeneratorConfig
from ..errors import GenerationError
from .base import CodeBackend

# Names every generated module imports
BASE_IMPORTS = ("Field", "build")

DESCRIPTOR_CLASSES = (ArrayOf, Const, Enum, FormattedString, Opaque, Primitive, Reference, VariantOf)


class PythonBackend(CodeBackend):
    """Python code generation backend."""

    TEMPLATE_LANG = "python"
    FILE_EXTENSION = "py"

    def __init__(self, config: CodeGeneratorConfig):
        super().__init__(config)
        self.runtime_imports: set[str] = set()
        self.value_set_names: dict[str, str] = {}

    def generate(self, spec: ModuleSpec, generation_comment: str = "") -> str:
        """Generate Python code for one module."""
        # Reset import tracking
        self.runtime_imports = set(BASE_IMPORTS)
        self.value_set_names = {value_set_key(d.values): d.name for d in spec.enum_declarations}

        fields = [self._prepare_field_context(field) for field in spec.fields]

        module = self.module_template.render(
            enums=[
                {"name": declaration.name, "values": self.format_default_value(declaration.values)}
                for declaration in spec.enum_declarations
            ],
            fields=fields,
            required_fields=self.format_default_value(tuple(spec.required_fields)),
        )

        # Imports are only known once every field type has been translated
        prefix = self.prefix_template.render(
            generation_comment=generation_comment,
            docstring=self._format_docstring(spec),
            runtime_module=self.config.runtime_module,
            runtime_imports=sorted(self.runtime_imports, key=lambda name: (name[0].islower(), name)),
            module_name=self.format_default_value(spec.module_name),
        )

        suffix = self.suffix_template.render()

        return prefix + module + suffix

    def translate_type(self, descriptor: TypeDescriptor) -> str:
        """Translate a type descriptor to the expression that builds it."""
        class_name = type(descriptor).__name__
        if not isinstance(descriptor, DESCRIPTOR_CLASSES):
            class_name = "Opaque"
        self.runtime_imports.add(class_name)

        if isinstance(descriptor, Primitive):
            return f"Primitive({self.format_default_value(descriptor.kind)})"

        if isinstance(descriptor, FormattedString):
            return f"FormattedString({self.format_default_value(descriptor.format)})"

        if isinstance(descriptor, (Enum, Const)):
            values = self.value_set_names.get(value_set_key(descriptor.values))
            if values is None:
                values = self.format_default_value(descriptor.values)
            return f"{class_name}({values})"

        if isinstance(descriptor, ArrayOf):
            return f"ArrayOf({self.translate_type(descriptor.item)})"

        if isinstance(descriptor, Reference):
            return f"Reference({self.format_default_value(descriptor.module)})"

        if isinstance(descriptor, VariantOf):
            variants = self._format_tuple([self.translate_type(v) for v in descriptor.variants])
            args = [self.format_default_value(descriptor.tag), variants]
            if descriptor.tags:
                args.append(f"tags={self.format_default_value(descriptor.tags)}")
            if descriptor.required:
                args.append(f"required={self.format_default_value(descriptor.required)}")
            return f"VariantOf({', '.join(args)})"

        return "Opaque()"

    def format_default_value(self, value: Any) -> str:
        """Format a JSON value as a Python literal."""
        if value is None or isinstance(value, (bool, int)):
            return repr(value)

        if isinstance(value, float):
            if not math.isfinite(value):
                raise GenerationError(f"{value!r} has no Python literal")
            return repr(value)

        if isinstance(value, str):
            return json.dumps(_encodable(value), ensure_ascii=False)

        if isinstance(value, tuple):
            return self._format_tuple([self.format_default_value(item) for item in value])

        if isinstance(value, list):
            return "[" + ", ".join(self.format_default_value(item) for item in value) + "]"

        if isinstance(value, dict):
            items = [f"{self.format_default_value(str(k))}: {self.format_default_value(v)}" for k, v in value.items()]
            return "{" + ", ".join(items) + "}"

        return repr(value)

    def _format_tuple(self, items: list[str]) -> str:
        if len(items) == 1:
            return f"({items[0]},)"
        return "(" + ", ".join(items) + ")"

    def _prepare_field_context(self, field: FieldDescriptor) -> dict[str, Any]:
        """
        Prepare the template context for a field.

        Args:
            field: The field descriptor

        Returns:
            Dictionary of template variables, already formatted as source
        """
        return {
            "name": self.format_default_value(field.name),
            "type": self.translate_type(field.type if field.type is not None else Opaque()),
            "description": self.format_default_value(field.description) if field.description is not None else None,
            "required": field.required,
            "default": self.format_default_value(field.default) if field.default is not None else None,
            "nullable": field.nullable,
        }

    def _format_docstring(self, spec: ModuleSpec) -> str:
        """Build the module docstring body (without the quotes)."""
        parts = [spec.doc_title]
        if spec.doc_description:
            parts.append(spec.doc_description)
        if spec.source_file_basename:
            parts.append(f"Generated from: {spec.source_file_basename}")
        text = _encodable("\n\n".join(parts))
        return text.replace("\\", "\\\\").replace('"""', '\\"\\"\\"')


def _encodable(text: str) -> str:
    """Return ``text`` if it can be written as UTF-8 source."""
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise GenerationError(f"String {text[:40]!r} cannot be encoded as UTF-8: {e.reason}") from e
    return text
