"""
Tests for mapping files and layer resolution
"""
import json

import pytest

from catalog_extractor.mapping_config import (
    MappingConfigError,
    MappingFile,
    build_mapping,
    load_mapping_file,
    mapping_to_dict,
    merge_files,
    parse_mapping,
    resolve_mapping,
)
from catalog_extractor.schema import DEFAULT_MAPPING, FieldMapping


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestLayers:
    """Supplier over tenant over default"""

    def test_first_layer_wins(self):
        supplier = {"p_brand": FieldMapping("p_brand", "constant", constant_value="ANSMANN")}
        tenant = {
            "p_brand": FieldMapping("p_brand", "constant", constant_value="Tenant"),
            "p_country": FieldMapping("p_country", "constant", constant_value="Deutschland"),
        }
        mapping = build_mapping(supplier, tenant)

        assert mapping["p_brand"].constant_value == "ANSMANN"
        assert mapping["p_country"].constant_value == "Deutschland"
        assert mapping["v_ean"] == DEFAULT_MAPPING["v_ean"]

    def test_missing_layers_skipped(self):
        assert build_mapping() == DEFAULT_MAPPING
        assert resolve_mapping([None, {}, None]) == {}


class TestEntries:
    """Persisted entry shapes"""

    def test_short_keys(self):
        entry = FieldMapping.from_dict("v_ean", {"source": "scraped", "field": "ean"})
        assert entry.source_field_name == "ean"

    def test_long_keys(self):
        entry = FieldMapping.from_dict("p_country", {"source": "constant", "constantValue": "China"})
        assert entry.constant_value == "China"

    def test_ai_generated_alias(self):
        assert FieldMapping.from_dict("v_customs_tariff_number", {"source": "ai_generated"}).source == "ai"

    def test_unknown_source(self):
        with pytest.raises(MappingConfigError):
            parse_mapping({"p_brand": {"source": "magic"}})

    def test_entry_must_be_object(self):
        with pytest.raises(MappingConfigError):
            parse_mapping({"p_brand": "ANSMANN"})

    def test_round_trip(self):
        mapping = {"v_ean": FieldMapping("v_ean", "scraped", source_field_name="eanCode")}
        assert parse_mapping(mapping_to_dict(mapping)) == mapping


class TestMappingFiles:
    """Loading mapping JSON files"""

    def test_bare_file(self, tmp_path):
        path = write_json(tmp_path / "ansmann.json", {"v_purchase_price": {"source": "scraped", "field": "preis"}})
        loaded = load_mapping_file(path)

        assert loaded.mapping["v_purchase_price"].source_field_name == "preis"
        assert loaded.fixed_values == {}

    def test_sectioned_file(self, tmp_path):
        path = write_json(tmp_path / "ansmann.json", {
            "mapping": {"p_brand": {"source": "constant", "value": "ANSMANN"}},
            "fixedValues": {"p_country": "Deutschland"},
            "autoGenerate": {"p_group_path[de]": {"dependsOn": "marke", "rule": "Akkus > {{marke}}"}},
        })
        loaded = load_mapping_file(path)

        assert loaded.mapping["p_brand"].constant_value == "ANSMANN"
        assert loaded.fixed_values == {"p_country": "Deutschland"}
        rule = loaded.auto_generate["p_group_path[de]"]
        assert rule.depends_on == "marke"
        assert rule.fallback is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(MappingConfigError):
            load_mapping_file(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(MappingConfigError):
            load_mapping_file(path)

    def test_top_level_list(self, tmp_path):
        with pytest.raises(MappingConfigError):
            load_mapping_file(write_json(tmp_path / "list.json", []))

    def test_incomplete_rule(self, tmp_path):
        path = write_json(tmp_path / "rule.json", {"autoGenerate": {"p_group_path[de]": {"rule": "x"}}})
        with pytest.raises(MappingConfigError):
            load_mapping_file(path)


class TestMerge:
    """Combining supplier and tenant files"""

    def test_merge_priority(self):
        supplier = MappingFile(
            mapping={"p_brand": FieldMapping("p_brand", "constant", constant_value="ANSMANN")},
            fixed_values={"p_country": "Deutschland"},
        )
        tenant = MappingFile(fixed_values={"p_country": "China", "p_condition": "Neu"})

        merged = merge_files([supplier, None, tenant])

        assert merged.mapping["p_brand"].constant_value == "ANSMANN"
        assert merged.mapping["v_ean"] == DEFAULT_MAPPING["v_ean"]
        assert merged.fixed_values == {"p_country": "Deutschland", "p_condition": "Neu"}

    def test_merge_nothing(self):
        merged = merge_files([None, None])
        assert merged.mapping == DEFAULT_MAPPING
        assert merged.auto_generate == {}
