"""
Tests for logging setup.
"""

import json
import logging

from modelsync.logging import JsonFormatter, configure_logging, get_logger


class TestGetLogger:
    """Tests for the logger hierarchy."""

    def test_prefixes_foreign_names(self):
        assert get_logger("engine").name == "modelsync.engine"

    def test_keeps_package_names(self):
        assert get_logger("modelsync.services.copy").name == "modelsync.services.copy"
        assert get_logger("modelsync").name == "modelsync"


class TestConfigureLogging:
    """Tests for handler installation."""

    def test_replaces_handlers(self):
        configure_logging("INFO")
        root = configure_logging("DEBUG")

        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
        assert root.propagate is False

    def test_json_output(self):
        root = configure_logging("WARNING", json_output=True)

        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_json_record(self):
        record = logging.LogRecord("modelsync.x", logging.INFO, __file__, 1, "copied %s", ("m",), None)

        payload = json.loads(JsonFormatter().format(record))

        assert payload["level"] == "info"
        assert payload["logger"] == "modelsync.x"
        assert payload["message"] == "copied m"
