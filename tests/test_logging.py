"""
Tests for logging setup — levels, file output and dev-server mapping.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from sitepipe.core.observability.logging_config import dev_server_level, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    werkzeug_level = logging.getLogger("werkzeug").level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("werkzeug").setLevel(werkzeug_level)


class TestSetupLogging:
    def test_console_level(self):
        setup_logging(level="INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert root.handlers[0].level == logging.INFO

    def test_unknown_level_falls_back(self):
        setup_logging(level="chatty")
        assert logging.getLogger().level == logging.WARNING

    def test_file_handler_lowers_root_level(self, tmp_path: Path):
        log_file = tmp_path / "build.log"
        setup_logging(level="WARNING", log_file=str(log_file), log_file_level="DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert [h.level for h in root.handlers] == [logging.WARNING, logging.DEBUG]

        logging.getLogger("sitepipe.test").debug("stage detail")
        for handler in root.handlers:
            handler.flush()
        assert "stage detail" in log_file.read_text()

    @pytest.mark.parametrize(
        ("level", "expected"),
        [
            ("WARNING", "WARNING: Style entry not found"),
            ("INFO", "[sitepipe.core.services.stages.styles] Style entry not found"),
            ("DEBUG", "WARNING sitepipe.core.services.stages.styles:"),
        ],
    )
    def test_console_layout_per_level(self, level: str, expected: str):
        setup_logging(level=level)
        record = logging.LogRecord(
            "sitepipe.core.services.stages.styles", logging.WARNING, __file__, 1,
            "Style entry not found", None, None,
        )
        assert expected in logging.getLogger().handlers[0].format(record)

    def test_third_party_quieted(self):
        setup_logging(level="INFO")
        assert logging.getLogger("werkzeug").level == logging.WARNING


class TestDevServerLevel:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("debug", logging.DEBUG),
            ("info", logging.INFO),
            ("WARNING", logging.WARNING),
            ("nonsense", logging.INFO),
        ],
    )
    def test_mapping(self, name: str, expected: int):
        assert dev_server_level(name) == expected

    def test_silent(self):
        assert dev_server_level("silent") > logging.CRITICAL
