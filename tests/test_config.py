import json
import logging

from config import JSONFormatter


def _record(**extra):
    return logging.makeLogRecord({"name": "sep", "levelname": "INFO",
                                  "msg": "scenario %s done", "args": ("B",), **extra})


def test_json_formatter_includes_context_fields():
    out = json.loads(JSONFormatter().format(_record(scenario_id="B", store_key="sep_hr_v1")))
    assert out["message"] == "scenario B done"
    assert out["scenario_id"] == "B"
    assert out["store_key"] == "sep_hr_v1"


def test_json_formatter_omits_absent_context():
    out = json.loads(JSONFormatter().format(_record()))
    assert "scenario_id" not in out
    assert "store_key" not in out
