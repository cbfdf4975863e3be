from esodm.core.serde import json_dumps_document, json_loads


def test_document_json_keeps_key_order_and_unicode() -> None:
    s = json_dumps_document({"z": 1, "a": "Ünïcode"})
    assert s == '{"z":1,"a":"Ünïcode"}'


def test_loads_round_trip() -> None:
    doc = {"k": [1, 2], "m": {"n": None}}
    assert json_loads(json_dumps_document(doc)) == doc
    assert json_loads(b'{"a": 1}') == {"a": 1}
