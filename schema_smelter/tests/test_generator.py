import ast
import importlib.util
import json
from pathlib import Path

import pytest

from schema_smelter import __version__
from schema_smelter.pipeline.backends import PythonBackend
from schema_smelter.pipeline.config import CodeGeneratorConfig
from schema_smelter.pipeline.errors import CircularReferenceError, GenerationError, ReferencedFileError, SchemaParseError
from schema_smelter.pipeline.generator import PipelineGenerator, compile_schema, parse_schema
from schema_smelter.runtime import Record, ValidationError

SCHEMAS = Path(__file__).parent / "test_data" / "schemas"
SHOPPING = SCHEMAS / "2026-01-11" / "shopping"


def make_config(**kwargs) -> CodeGeneratorConfig:
    config = CodeGeneratorConfig(module_prefix="Example", add_generation_comment=False)
    for key, value in kwargs.items():
        setattr(config, key, value)
    return config


def import_generated(code: str, path: Path):
    """Write generated code to a file and import it"""
    path.write_text(code, encoding="utf-8")
    spec = importlib.util.spec_from_file_location(f"generated_{path.stem}", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def write_json(path: Path, content: dict) -> Path:
    path.write_text(json.dumps(content), encoding="utf-8")
    return path


class TestGeneratedSource:
    """Test the text of generated modules"""

    def test_buyer_module(self):
        code = compile_schema(SHOPPING / "types" / "buyer.json", make_config())
        ast.parse(code)

        expected = [
            '"""Buyer\n\nThe person placing the order.\n\nGenerated from: buyer.json\n"""',
            "from __future__ import annotations",
            "from schema_smelter.runtime import Field, Primitive, build",
            'MODULE_NAME = "Example.Shopping.Types.Buyer"',
            '    Field(\n        "email",\n        Primitive("string"),\n        description="Email of the buyer.",\n        required=True,\n    ),',
            '        description="E.164 phone number.",\n        nullable=True,',
            'REQUIRED_FIELDS = ("email",)',
            "def fields():",
            "def new(params=None, registry=None):",
            "def register(registry):",
        ]
        for pattern in expected:
            assert pattern in code, f"Expected '{pattern}' not found in output:\n{code}"
        assert code.startswith('"""Buyer')
        assert code.endswith("\n") and not code.endswith("\n\n")

    def test_fields_are_sorted(self):
        code = compile_schema(SHOPPING / "checkout.json", make_config())
        module = ast.parse(code)
        fields = next(n for n in module.body if isinstance(n, ast.Assign) and n.targets[0].id == "FIELDS")
        names = [call.args[0].value for call in fields.value.elts]
        assert names == sorted(names)
        assert "buyer" in names and "expires_at" in names

    def test_checkout_descriptors(self):
        code = compile_schema(SHOPPING / "checkout.json", make_config())
        expected = [
            "from schema_smelter.runtime import ArrayOf, Enum, Field, FormattedString, Primitive, Reference, VariantOf, build",
            'STATUS_VALUES = ("incomplete", "requires_escalation", "ready_for_complete", "completed", "canceled")',
            "Enum(STATUS_VALUES)",
            'Reference("Example.Shopping.Types.Buyer")',
            'ArrayOf(Reference("Example.Shopping.Types.LineItem"))',
            'VariantOf("one_of", (Reference("Example.Shopping.Types.CardPaymentInstrument"), Reference("Example.Shopping.Types.WalletPaymentInstrument")))',
            'FormattedString("date-time")',
            "default=[],",
            'REQUIRED_FIELDS = ("id", "status", "currency", "line_items", "totals")',
        ]
        for pattern in expected:
            assert pattern in code, f"Expected '{pattern}' not found in output:\n{code}"

    def test_const_and_inline_variants(self):
        card = compile_schema(SHOPPING / "types" / "card_payment_instrument.json", make_config())
        assert 'TYPE_VALUES = ("card",)' in card
        assert "Const(TYPE_VALUES)" in card
        assert "Enum(BRAND_VALUES)" in card

        fulfillment = compile_schema(SHOPPING / "fulfillment_option.json", make_config())
        assert "tags=(\"shipping\", \"pickup\")" in fulfillment
        assert "required=((\"type\", \"address\"), (\"type\", \"location_id\"))" in fulfillment

    def test_all_of_fields(self):
        code = compile_schema(SHOPPING / "discount.json", make_config())
        assert 'REQUIRED_FIELDS = ("code", "amount")' in code
        assert "default=False," in code

    def test_explicit_module_name(self):
        code = compile_schema(SHOPPING / "types" / "item.json", make_config(), module_name="Shop.Item")
        assert 'MODULE_NAME = "Shop.Item"' in code

    def test_output_is_deterministic(self):
        config = make_config(add_generation_comment=True)
        first = compile_schema(SHOPPING / "checkout.json", config)
        second = compile_schema(SHOPPING / "checkout.json", config)
        assert first == second

    def test_generation_comment(self):
        code = compile_schema(SHOPPING / "types" / "item.json", make_config(add_generation_comment=True))
        assert code.splitlines()[0] == f"# Generated by schema_smelter v{__version__} : schema_smelter"
        ast.parse(code)

    def test_custom_runtime_module(self):
        code = compile_schema(SHOPPING / "types" / "item.json", make_config(runtime_module="my_app.smelter_runtime"))
        assert "from my_app.smelter_runtime import Field, Primitive, build" in code

    def test_docstring_is_escaped(self, tmp_path):
        schema = write_json(tmp_path / "odd.json", {"title": 'Say """hi"""', "description": "C:\\temp", "properties": {}})
        code = compile_schema(schema, make_config())
        module = import_generated(code, tmp_path / "odd.py")
        assert module.__doc__.startswith('Say """hi"""\n\nC:\\temp')
        assert module.FIELDS == ()
        assert module.REQUIRED_FIELDS == ()

    def test_unicode_and_quotes_in_values(self, tmp_path):
        schema = write_json(
            tmp_path / "labels.json",
            {"properties": {"label": {"type": "string", "enum": ['say "hi"', "café", "a\nb"], "default": "café"}}},
        )
        module = import_generated(compile_schema(schema, make_config()), tmp_path / "labels.py")
        assert module.LABEL_VALUES == ('say "hi"', "café", "a\nb")
        assert module.new({}).get("label") == "café"


def test_non_finite_default_cannot_be_emitted():
    backend = PythonBackend(make_config())
    with pytest.raises(GenerationError):
        backend.format_default_value(float("inf"))
    with pytest.raises(GenerationError):
        backend.format_default_value({"ratio": [float("nan")]})


def test_unencodable_description_is_a_generation_error(tmp_path):
    schema = tmp_path / "note.json"
    schema.write_text('{"description": "bad \\ud800", "properties": {}}', encoding="utf-8")
    with pytest.raises(GenerationError):
        compile_schema(schema, make_config())


class TestGeneratedBehaviour:
    """Test importing generated modules and building records"""

    def test_new_and_fields(self, tmp_path):
        module = import_generated(compile_schema(SHOPPING / "types" / "buyer.json", make_config()), tmp_path / "buyer.py")
        assert module.MODULE_NAME == "Example.Shopping.Types.Buyer"
        assert [f.name for f in module.fields()] == ["email", "first_name", "last_name", "phone_number"]

        record = module.new({"email": "a@b.c", "phone_number": None})
        assert isinstance(record, Record)
        assert record["email"] == "a@b.c"

        with pytest.raises(ValidationError) as info:
            module.new({"first_name": "Ada"})
        assert info.value.errors == {"email": ["is required"]}

    def test_all_missing_required_fields_are_reported(self, tmp_path):
        schema = write_json(
            tmp_path / "order.json",
            {
                "title": "Order",
                "required": ["currency", "line_items"],
                "properties": {
                    "currency": {"type": "string"},
                    "line_items": {"type": "array", "items": {"type": "object"}},
                },
            },
        )
        module = import_generated(compile_schema(schema, make_config()), tmp_path / "order.py")
        with pytest.raises(ValidationError) as info:
            module.new({})
        assert info.value.errors == {"currency": ["is required"], "line_items": ["is required"]}

    def test_null_is_rejected_unless_nullable(self, tmp_path):
        module = import_generated(compile_schema(SHOPPING / "types" / "buyer.json", make_config()), tmp_path / "buyer.py")
        with pytest.raises(ValidationError) as info:
            module.new({"email": "a@b.c", "first_name": None})
        assert info.value.errors == {"first_name": ["can't be null"]}

    def test_enum_is_enforced(self, tmp_path):
        module = import_generated(compile_schema(SHOPPING / "types" / "total.json", make_config()), tmp_path / "total.py")
        assert module.new({"type": "tax", "amount": 5})["type"] == "tax"
        with pytest.raises(ValidationError) as info:
            module.new({"type": "tip", "amount": 5})
        assert "type" in info.value.errors

    def test_default_is_applied(self, tmp_path):
        module = import_generated(compile_schema(SHOPPING / "types" / "line_item.json", make_config()), tmp_path / "line_item.py")
        record = module.new({"id": "l1", "item": {"id": "i"}, "totals": []})
        assert record["quantity"] == 1


class TestFallback:
    """Test direct generation when resolution fails"""

    def test_cycle_falls_back(self, tmp_path):
        schema = write_json(
            tmp_path / "node.json",
            {"title": "Node", "properties": {"name": {"type": "string"}, "parent": {"$ref": "#"}}, "required": ["name"]},
        )
        generator = PipelineGenerator(schema, make_config())
        code = generator.generate()
        assert isinstance(generator.fallback_reason, CircularReferenceError)
        assert "Opaque()" in code

        module = import_generated(code, tmp_path / "node.py")
        assert module.new({"name": "root", "parent": {"name": "x"}})["parent"] == {"name": "x"}

    def test_missing_file_falls_back(self, tmp_path):
        schema = write_json(tmp_path / "a.json", {"properties": {"b": {"$ref": "missing.json"}, "c": {"type": "integer"}}})
        generator = PipelineGenerator(schema, make_config())
        code = generator.generate()
        assert isinstance(generator.fallback_reason, ReferencedFileError)
        assert 'Primitive("integer")' in code

    def test_fallback_can_be_disabled(self, tmp_path):
        schema = write_json(tmp_path / "node.json", {"properties": {"parent": {"$ref": "#"}}})
        with pytest.raises(CircularReferenceError):
            compile_schema(schema, make_config(allow_fallback=False))

    def test_fallback_failure(self, tmp_path):
        schema = write_json(tmp_path / "a.json", {"properties": {"b": {"$ref": "missing.json"}, "c": True}})
        with pytest.raises(GenerationError):
            compile_schema(schema, make_config())

    def test_loader_errors_are_not_recovered(self, tmp_path):
        schema = tmp_path / "broken.json"
        schema.write_text("{", encoding="utf-8")
        with pytest.raises(SchemaParseError):
            compile_schema(schema, make_config())

    def test_successful_run_has_no_fallback_reason(self):
        generator = PipelineGenerator(SHOPPING / "checkout.json", make_config())
        generator.generate()
        assert generator.fallback_reason is None


def test_parse_schema():
    resolved = parse_schema(SHOPPING / "checkout.json", make_config())
    assert resolved["properties"]["buyer"]["_ref_module"] == "Example.Shopping.Types.Buyer"


def test_derive_module_name_with_explicit_root():
    config = make_config(schemas_dir=str(SHOPPING))
    assert PipelineGenerator(SHOPPING / "types" / "buyer.json", config).derive_module_name() == "Example.Types.Buyer"


if __name__ == "__main__":
    pytest.main([__file__])
