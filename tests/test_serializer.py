"""
Tests for delimited-text serialization
"""
import csv
import io

import pytest

from catalog_extractor.mapper import map_record
from catalog_extractor.schema import DEFAULT_MAPPING, column_keys, get_field
from catalog_extractor.serializer import format_value, normalize_delimiter, to_delimited_text

SMALL_SCHEMA = [
    get_field("p_name[de]"),
    get_field("v_price[Eur]"),
    get_field("v_weight"),
    get_field("p_never_out_of_stock"),
]


class TestFormatValue:
    """Single cell rendering"""

    def test_none_is_empty(self):
        assert format_value(None) == ""

    def test_booleans(self):
        assert format_value(True) == "true"
        assert format_value(False) == "false"

    def test_price_two_decimals(self):
        assert format_value(23.8, get_field("v_price[Eur]")) == "23.80"

    def test_numbers_without_trailing_zeros(self):
        assert format_value(1500.0, get_field("v_weight")) == "1500"
        assert format_value(2.5) == "2.5"


class TestDelimitedText:
    """Header, column order and quoting"""

    def test_header_only_for_no_rows(self):
        assert to_delimited_text([]) == ",".join(column_keys()) + "\n"

    def test_row_order_follows_schema(self):
        row = {"p_never_out_of_stock": False, "v_weight": 1500.0, "p_name[de]": "Akku", "v_price[Eur]": 23.8}
        text = to_delimited_text([row], SMALL_SCHEMA)

        assert text == (
            "p_name[de],v_price[Eur],v_weight,p_never_out_of_stock\n"
            "Akku,23.80,1500,false\n"
        )

    def test_delimiter_in_value_is_quoted(self):
        text = to_delimited_text([{"p_name[de]": "Netzteil, 12V"}], SMALL_SCHEMA)
        assert text.splitlines()[1] == '"Netzteil, 12V",,,'

    def test_quotes_doubled(self):
        text = to_delimited_text([{"p_name[de]": 'Akku "Mignon"'}], SMALL_SCHEMA)
        assert text.splitlines()[1] == '"Akku ""Mignon""",,,'

    def test_custom_delimiter(self):
        text = to_delimited_text([{"p_name[de]": "Netzteil, 12V"}], SMALL_SCHEMA, delimiter=";")
        assert text.splitlines()[1] == "Netzteil, 12V;;;"

    def test_round_trip_through_reader(self):
        rows = [{"p_name[de]": 'Ladegerät "Smart", 4-fach\nmit USB', "v_price[Eur]": 9.5}]
        text = to_delimited_text(rows, SMALL_SCHEMA)

        parsed = list(csv.reader(io.StringIO(text)))
        assert parsed[1] == ['Ladegerät "Smart", 4-fach\nmit USB', "9.50", "", ""]

    def test_mapped_row(self, sample_record):
        row = map_record(sample_record, DEFAULT_MAPPING, "Ansmann")
        parsed = list(csv.DictReader(io.StringIO(to_delimited_text([row]))))

        assert len(parsed) == 1
        assert parsed[0]["p_item_number"] == "1522-0045"
        assert parsed[0]["v_price[Eur]"] == "23.80"
        assert parsed[0]["v_weight"] == "102"
        assert parsed[0]["v_supplier[Eur]"] == "Ansmann"
        assert parsed[0]["p_description[de]"] == ""


class TestDelimiter:
    """Delimiter resolution"""

    def test_default_from_config(self, monkeypatch):
        monkeypatch.setattr("catalog_extractor.config.CSV_DELIMITER", ";")
        assert normalize_delimiter(None) == ";"
        assert to_delimited_text([], SMALL_SCHEMA).startswith("p_name[de];v_price[Eur]")

    @pytest.mark.parametrize("alias", ["\\t", "tab", "\t"])
    def test_tab_aliases(self, alias):
        assert normalize_delimiter(alias) == "\t"
        text = to_delimited_text([], SMALL_SCHEMA, delimiter=alias)
        assert text == "p_name[de]\tv_price[Eur]\tv_weight\tp_never_out_of_stock\n"

    @pytest.mark.parametrize("delimiter", [";;", "||", "\\x"])
    def test_multi_character_rejected(self, delimiter):
        with pytest.raises(ValueError, match="single character"):
            to_delimited_text([], SMALL_SCHEMA, delimiter=delimiter)
