"""Tests for the JSONL log handler."""

import json
import logging

import pytest

from title_editor_client.logging_setup import JsonlHandler
from title_editor_client.logging_setup import init_json_logging


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "logs" / "te.jsonl"
    root = logging.getLogger()
    old_level = root.level
    yield path
    for handler in list(root.handlers):
        if isinstance(handler, JsonlHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(old_level)


def _lines(path):
    return [json.loads(line) for line in path.read_text().splitlines()]


class TestInitJsonLogging:
    def test_writes_one_json_object_per_record(self, log_file):
        init_json_logging(str(log_file), "debug")
        logging.getLogger("title_editor_client.test").info("Created Patch 5", extra={"patch_id": 5})

        records = _lines(log_file)
        assert len(records) == 1
        record = records[0]
        assert record["lvl"] == "INFO"
        assert record["logger"] == "title_editor_client.test"
        assert record["message"] == "Created Patch 5"
        assert record["patch_id"] == 5
        assert record["schema"]["name"] == "title_editor.log"

    def test_level_filters(self, log_file):
        init_json_logging(str(log_file), "WARNING")
        logger = logging.getLogger("title_editor_client.test")
        logger.info("quiet")
        logger.warning("loud")
        assert [r["message"] for r in _lines(log_file)] == ["loud"]

    def test_reinit_replaces_handler(self, log_file):
        init_json_logging(str(log_file), "INFO")
        init_json_logging(str(log_file), "INFO")
        handlers = [h for h in logging.getLogger().handlers if isinstance(h, JsonlHandler)]
        assert len(handlers) == 1

    def test_exception_is_recorded(self, log_file):
        init_json_logging(str(log_file), "INFO")
        try:
            raise ValueError("bad value")
        except ValueError:
            logging.getLogger("title_editor_client.test").exception("failed")
        record = _lines(log_file)[0]
        assert record["error"] == {"type": "ValueError", "message": "bad value"}
