import json
import logging
import pathlib
import sys

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from utils.logging_config import StructuredFormatter, set_request_id


def make_record(**extra):
    record = logging.LogRecord("quickbid.test", logging.WARNING, __file__, 10, "saved %s", ("x",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formats_json_with_extra_fields():
    out = json.loads(StructuredFormatter().format(make_record(record_id="abc", total=12.5)))
    assert out["severity"] == "WARNING"
    assert out["message"] == "saved x"
    assert out["logger"] == "quickbid.test"
    assert out["record_id"] == "abc"
    assert out["total"] == 12.5
    assert out["timestamp"].endswith("Z")


def test_includes_request_id_when_set():
    set_request_id("req-1")
    try:
        out = json.loads(StructuredFormatter().format(make_record()))
    finally:
        set_request_id(None)
    assert out["request_id"] == "req-1"
