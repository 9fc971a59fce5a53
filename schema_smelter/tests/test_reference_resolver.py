import copy
import json
from pathlib import Path

import pytest

from schema_smelter.pipeline.analyzer.reference_resolver import (
    COMPOSITION,
    REF,
    REF_MODULE,
    REF_NAME,
    SOURCE_PATH,
    ResolutionCache,
    Resolver,
    deep_merge,
    strip_annotations,
)
from schema_smelter.pipeline.config import CodeGeneratorConfig
from schema_smelter.pipeline.errors import (
    CircularReferenceError,
    ReferencedFileError,
    RefNotFoundError,
    ResolutionError,
    SchemaFileNotFoundError,
)
from schema_smelter.pipeline.loader import SchemaLoader

SCHEMAS = Path(__file__).parent / "test_data" / "schemas"
SHOPPING = SCHEMAS / "2026-01-11" / "shopping"


class CountingLoader(SchemaLoader):
    """Loader recording every file it reads"""

    def __init__(self):
        self.reads: list[Path] = []

    def _read(self, path: Path) -> str:
        self.reads.append(path)
        return super()._read(path)


def write_json(path: Path, content: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(content), encoding="utf-8")
    return path


def resolve_file(path: Path, prefix: str = "Example", loader: SchemaLoader | None = None) -> dict:
    loader = loader or SchemaLoader()
    config = CodeGeneratorConfig(module_prefix=prefix)
    return Resolver(config, loader).resolve(loader.load(path))


class TestCrossFileReferences:
    """Test annotation of references to other files"""

    def test_cross_file_sites_are_annotated(self):
        resolved = resolve_file(SHOPPING / "checkout.json")
        buyer = resolved["properties"]["buyer"]
        assert buyer[REF] == "types/buyer.json"
        assert buyer[REF_MODULE] == "Example.Shopping.Types.Buyer"
        # Cross-file targets are not inlined
        assert "properties" not in buyer

    def test_array_items_are_annotated(self):
        resolved = resolve_file(SHOPPING / "checkout.json")
        items = resolved["properties"]["line_items"]["items"]
        assert items[REF_MODULE] == "Example.Shopping.Types.LineItem"

    def test_reference_relative_to_referencing_file(self):
        resolved = resolve_file(SHOPPING / "types" / "line_item.json")
        assert resolved["properties"]["item"][REF_MODULE] == "Example.Shopping.Types.Item"

    def test_root_is_annotated_with_source_path(self):
        resolved = resolve_file(SHOPPING / "checkout.json")
        assert resolved[SOURCE_PATH] == str((SHOPPING / "checkout.json").resolve())

    def test_one_of_is_annotated(self):
        resolved = resolve_file(SHOPPING / "checkout.json")
        payment = resolved["properties"]["payment_instrument"]
        tag, branches = payment[COMPOSITION]
        assert tag == "one_of"
        assert [b[REF_MODULE] for b in branches] == [
            "Example.Shopping.Types.CardPaymentInstrument",
            "Example.Shopping.Types.WalletPaymentInstrument",
        ]

    def test_missing_file(self, tmp_path):
        schema = write_json(tmp_path / "a.json", {"properties": {"b": {"$ref": "missing.json"}}})
        with pytest.raises(ReferencedFileError) as info:
            resolve_file(schema)
        assert info.value.code == "file_error"
        assert info.value.ref == "missing.json"
        assert isinstance(info.value.__cause__, SchemaFileNotFoundError)
        assert "missing.json" in str(info.value)

    def test_invalid_referenced_file(self, tmp_path):
        (tmp_path / "broken.json").write_text("{", encoding="utf-8")
        schema = write_json(tmp_path / "a.json", {"properties": {"b": {"$ref": "broken.json"}}})
        with pytest.raises(ReferencedFileError):
            resolve_file(schema)

    def test_missing_pointer_in_other_file(self, tmp_path):
        write_json(tmp_path / "types.json", {"$defs": {"money": {"type": "integer"}}})
        schema = write_json(tmp_path / "a.json", {"properties": {"b": {"$ref": "types.json#/$defs/nope"}}})
        with pytest.raises(RefNotFoundError) as info:
            resolve_file(schema)
        assert info.value.ref == "types.json#/$defs/nope"

    def test_pointer_into_other_file_names_the_definition(self, tmp_path):
        write_json(tmp_path / "types.json", {"$defs": {"money_amount": {"type": "integer"}}})
        schema = write_json(tmp_path / "a.json", {"properties": {"b": {"$ref": "types.json#/$defs/money_amount"}}})
        resolved = resolve_file(schema, prefix="P")
        assert resolved["properties"]["b"][REF_MODULE] == "P.Types.MoneyAmount"


class TestLocalReferences:
    """Test inlining of references inside the same document"""

    def test_local_reference_is_inlined(self):
        resolved = resolve_file(SHOPPING / "checkout.json")
        message = resolved["properties"]["messages"]["items"]
        assert set(message["properties"]) == {"type", "content"}
        assert message[REF] == "#/$defs/message"
        assert message[REF_NAME] == "Example.Shopping.Checkout.Message"
        assert REF_MODULE not in message

    def test_site_keys_win_over_target(self, tmp_path):
        schema = write_json(
            tmp_path / "a.json",
            {
                "$defs": {"code": {"type": "string", "description": "from definition", "maxLength": 8}},
                "properties": {"code": {"$ref": "#/$defs/code", "description": "from site"}},
            },
        )
        code = resolve_file(schema)["properties"]["code"]
        assert code["description"] == "from site"
        assert code["type"] == "string"
        assert code["maxLength"] == 8

    def test_missing_local_pointer(self, tmp_path):
        schema = write_json(tmp_path / "a.json", {"properties": {"b": {"$ref": "#/$defs/nope"}}})
        with pytest.raises(RefNotFoundError) as info:
            resolve_file(schema)
        assert info.value.code == "ref_not_found"
        assert "#/$defs/nope" in str(info.value)

    def test_self_reference_is_a_cycle(self, tmp_path):
        schema = write_json(tmp_path / "node.json", {"properties": {"child": {"$ref": "#"}}})
        with pytest.raises(CircularReferenceError) as info:
            resolve_file(schema)
        assert info.value.code == "circular_reference"
        assert isinstance(info.value, ResolutionError)

    def test_mutual_definitions_are_a_cycle(self, tmp_path):
        schema = write_json(
            tmp_path / "a.json",
            {
                "$defs": {
                    "a": {"properties": {"b": {"$ref": "#/$defs/b"}}},
                    "b": {"properties": {"a": {"$ref": "#/$defs/a"}}},
                },
                "properties": {"start": {"$ref": "#/$defs/a"}},
            },
        )
        with pytest.raises(CircularReferenceError) as info:
            resolve_file(schema)
        assert [pointer for _, pointer in info.value.chain] == ["/$defs/a", "/$defs/b", "/$defs/a"]

    def test_repeated_reference_is_not_a_cycle(self, tmp_path):
        schema = write_json(
            tmp_path / "a.json",
            {
                "$defs": {"money": {"type": "integer"}},
                "properties": {"x": {"$ref": "#/$defs/money"}, "y": {"$ref": "#/$defs/money"}},
            },
        )
        resolved = resolve_file(schema)
        assert resolved["properties"]["x"]["type"] == "integer"
        assert resolved["properties"]["y"]["type"] == "integer"


class TestCompositions:
    """Test allOf merging and oneOf/anyOf annotation"""

    def test_all_of_is_merged(self):
        resolved = resolve_file(SHOPPING / "discount.json")
        assert "allOf" not in resolved
        assert set(resolved["properties"]) == {"code", "title", "amount", "automatic"}
        assert resolved["required"] == ["code", "amount"]
        assert resolved[COMPOSITION][0] == "all_of"

    def test_all_of_later_branches_win(self, tmp_path):
        schema = write_json(
            tmp_path / "a.json",
            {"allOf": [{"properties": {"x": {"type": "string"}}}, {"properties": {"x": {"type": "integer"}}}]},
        )
        assert resolve_file(schema)["properties"]["x"] == {"type": "integer"}

    def test_any_of_branches_are_resolved(self):
        resolved = resolve_file(SHOPPING / "fulfillment_option.json")
        tag, branches = resolved["properties"]["destination"][COMPOSITION]
        assert tag == "any_of"
        assert branches[0]["properties"]["address"][REF_MODULE] == "Example.Shopping.Types.PostalAddress"

    def test_deep_merge(self):
        base = {"a": {"x": 1}, "l": [1], "s": "old"}
        override = {"a": {"y": 2}, "l": [2], "s": "new"}
        assert deep_merge(base, override) == {"a": {"x": 1, "y": 2}, "l": [1, 2], "s": "new"}
        assert base == {"a": {"x": 1}, "l": [1], "s": "old"}


class TestResolutionRun:
    """Test run-level behaviour: caching, purity and idempotence"""

    def test_each_file_is_read_once(self, tmp_path):
        write_json(tmp_path / "money.json", {"$defs": {"amount": {"type": "integer"}, "code": {"type": "string"}}})
        schema = write_json(
            tmp_path / "order.json",
            {
                "properties": {
                    "subtotal": {"$ref": "money.json#/$defs/amount"},
                    "total": {"$ref": "money.json#/$defs/amount"},
                    "currency": {"$ref": "money.json#/$defs/code"},
                    "history": {"type": "array", "items": {"$ref": "money.json"}},
                }
            },
        )
        loader = CountingLoader()
        resolve_file(schema, loader=loader)
        assert [p.name for p in loader.reads] == ["order.json", "money.json"]

    def test_reference_to_own_file_is_not_reread(self, tmp_path):
        schema = write_json(
            tmp_path / "self.json",
            {"$defs": {"x": {"type": "string"}}, "properties": {"x": {"$ref": "self.json#/$defs/x"}}},
        )
        loader = CountingLoader()
        resolve_file(schema, loader=loader)
        assert len(loader.reads) == 1

    def test_input_is_not_modified(self):
        loader = SchemaLoader()
        document = loader.load(SHOPPING / "discount.json")
        before = copy.deepcopy(document.content)
        Resolver(CodeGeneratorConfig(), loader).resolve(document)
        assert document.content == before

    def test_resolution_is_idempotent(self):
        first = resolve_file(SHOPPING / "checkout.json")
        second = resolve_file(SHOPPING / "checkout.json")
        assert first == second

    def test_raw_schema_needs_a_path(self):
        with pytest.raises(ValueError):
            Resolver().resolve({"properties": {}})

    def test_raw_schema_with_path(self):
        resolved = Resolver().resolve({"properties": {"id": {"type": "string"}}}, SHOPPING / "checkout.json")
        assert resolved["properties"]["id"] == {"type": "string"}

    def test_strip_annotations(self):
        resolved = resolve_file(SHOPPING / "checkout.json")
        stripped = strip_annotations(resolved)
        assert SOURCE_PATH not in stripped
        assert REF_MODULE not in stripped["properties"]["buyer"]
        assert stripped["properties"]["buyer"] == {"$ref": "types/buyer.json"}

    def test_cache_counts(self):
        cache = ResolutionCache()
        assert cache.get("/a.json", None) is None
        cache.put("/a.json", None, {"x": 1})
        assert cache.get(Path("/a.json"), None) == {"x": 1}
        assert ("/a.json", None) in cache
        assert len(cache) == 1
        assert (cache.hits, cache.misses) == (1, 1)


if __name__ == "__main__":
    pytest.main([__file__])
