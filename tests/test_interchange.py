import json

import pytest

from salesledger.interchange import (
    CSV_EXPORT_FILENAME,
    INVALID_FILE_MESSAGE,
    JSON_EXPORT_FILENAME,
    NOT_AN_ARRAY_MESSAGE,
    ImportRejected,
    build_csv,
    export_csv,
    export_json,
    format_number,
    parse_items,
    read_import_file,
    serialize_items,
)
from salesledger.models import Item


def test_format_number():
    assert format_number(23) == "23"
    assert format_number(23.0) == "23"
    assert format_number(2.5) == "2.5"
    assert format_number(0) == "0"


def test_serialize_is_compact_by_default(scenario_items):
    text = serialize_items(scenario_items)
    assert "\n" not in text
    assert json.loads(text)[0] == {
        "id": "a",
        "name": "Widget",
        "price": 10,
        "cost": 4,
        "amazonFees": 1,
        "sold": 3,
    }


def test_serialize_keeps_unicode():
    text = serialize_items([Item(id="u", name="Café ☕")])
    assert "Café ☕" in text


def test_csv_scenario(scenario_items):
    rows = build_csv(scenario_items).split("\n")
    assert len(rows) == 4
    assert rows[0] == '"name","price","cost","amazonFees","sold","profit"'
    assert rows[1] == '"Widget","10","4","1","3","15"'
    assert rows[2] == '"Gadget","20","10","2","1","8"'
    assert rows[3] == '"TOTALS","50","22","5","4","23"'
    assert rows[3].split(",")[-1] == '"23"'


def test_csv_has_no_trailing_newline(scenario_items):
    assert not build_csv(scenario_items).endswith("\n")


def test_csv_escapes_quotes_and_commas():
    items = [Item(id="q", name='Say "hi", world', price=2.5, sold=2)]
    rows = build_csv(items).split("\n")
    assert rows[1] == '"Say ""hi"", world","2.5","0","0","2","5"'


def test_csv_empty_ledger_has_header_and_totals():
    rows = build_csv([]).split("\n")
    assert rows == [
        '"name","price","cost","amazonFees","sold","profit"',
        '"TOTALS","0","0","0","0","0"',
    ]


def test_parse_items_rejects_invalid_json():
    with pytest.raises(ImportRejected) as exc:
        parse_items("{nope")
    assert str(exc.value) == INVALID_FILE_MESSAGE


@pytest.mark.parametrize("text", ['{"a":1}', '"text"', "42", "null"])
def test_parse_items_rejects_non_arrays(text):
    with pytest.raises(ImportRejected) as exc:
        parse_items(text)
    assert str(exc.value) == NOT_AN_ARRAY_MESSAGE


@pytest.mark.parametrize("text", ["[1]", "[null]", '[{"name":"ok"}, "x"]'])
def test_parse_items_rejects_entries_that_are_not_objects(text):
    with pytest.raises(ImportRejected) as exc:
        parse_items(text)
    assert str(exc.value) == INVALID_FILE_MESSAGE


def test_parse_items_uses_given_id_factory():
    items = parse_items('[{"name":"A"}, {"id":"keep","name":"B"}]', id_factory=lambda: "minted")
    assert [it.id for it in items] == ["minted", "keep"]


def test_parse_items_sanitizes_entries():
    items = parse_items('[{"name":"Widget","price":"10","cost":"x","sold":5}]')
    assert len(items) == 1
    assert items[0].id
    assert (items[0].price, items[0].cost, items[0].amazon_fees, items[0].sold) == (10, 0, 0, 5)


def test_export_json_writes_pretty_file(tmp_path, scenario_items):
    path = export_json(scenario_items, tmp_path / "out")
    assert path.name == JSON_EXPORT_FILENAME
    text = path.read_text(encoding="utf-8")
    assert text.startswith("[\n  {")
    assert [d["id"] for d in json.loads(text)] == ["a", "b"]


def test_export_csv_writes_file(tmp_path, scenario_items):
    path = export_csv(scenario_items, tmp_path)
    assert path.name == CSV_EXPORT_FILENAME
    assert path.read_text(encoding="utf-8") == build_csv(scenario_items)


def test_exported_json_imports_back(tmp_path, scenario_items):
    path = export_json(scenario_items, tmp_path)
    assert read_import_file(path) == scenario_items


def test_read_import_file_missing(tmp_path):
    with pytest.raises(ImportRejected, match="Cannot read"):
        read_import_file(tmp_path / "missing.json")


def test_read_import_file_binary_is_invalid(tmp_path):
    path = tmp_path / "blob.json"
    path.write_bytes(b"\xff\xfe\x00garbage")
    with pytest.raises(ImportRejected) as exc:
        read_import_file(path)
    assert str(exc.value) == INVALID_FILE_MESSAGE
