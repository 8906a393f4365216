import json
import logging
from pathlib import Path

import pytest

from flashparse.utils.component_registry import available, create_component_instance, get, register
from flashparse.utils.logging import configure_logging, get_logger, log_event


def test_register_and_create_component():
    @register("test_category", "thing")
    class Thing:
        def __init__(self, size=1):
            self.size = size

    assert get("test_category", "thing") is Thing
    assert "thing" in available("test_category")
    assert create_component_instance("test_category", "thing", size=3).size == 3


def test_unknown_component_errors():
    with pytest.raises(KeyError):
        get("no_such_category", "x")
    with pytest.raises(ValueError):
        create_component_instance("matcher", "no_such_matcher")


def test_log_event_appends_jsonl():
    log_event("unit", {"value": 1}, log_dir="logs")
    log_event("unit", {"value": 2}, log_dir="logs")
    (path,) = Path("logs").glob("unit_*.jsonl")
    entries = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [e["value"] for e in entries] == [1, 2]
    assert all(e["event_type"] == "unit" for e in entries)


def test_configure_logging_writes_file():
    configure_logging(level=logging.INFO, log_to_file=True, log_dir="logs")
    get_logger("flashparse.test").info("hello from the test")
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "hello from the test" in Path("logs", "flashparse.log").read_text(encoding="utf-8")
