"""
Tests for access logging.
"""

import json
import logging

import pytest

from heron.accesslog import (
    AccessLog,
    CombinedLogFormatter,
    DevLogFormatter,
    StructuredLogFormatter,
)


REQUEST = dict(client="127.0.0.1", method="GET", path="/users/:id", status=200, duration_ms=12.5)


def access_records(caplog):
    return [r for r in caplog.records if r.name == "heron.access"]


# ============================================================================
# Formatters
# ============================================================================


class TestFormatters:

    def test_combined(self):
        line = CombinedLogFormatter().format_request(content_length=42, **REQUEST)
        assert line.startswith("127.0.0.1 - - [")
        assert '"GET /users/:id HTTP/1.1" 200 42' in line

    def test_structured(self):
        data = json.loads(StructuredLogFormatter().format_request(**REQUEST))
        assert data["path"] == "/users/:id"
        assert data["status"] == 200
        assert data["duration_ms"] == 12.5
        assert "timestamp" in data

    def test_dev(self):
        line = DevLogFormatter().format_request(**REQUEST)
        assert "/users/:id" in line
        assert "(200)" in line


# ============================================================================
# AccessLog
# ============================================================================


class TestAccessLog:

    def test_record_carries_extra_fields(self, caplog):
        with caplog.at_level(logging.INFO, logger="heron.access"):
            AccessLog(format="structured").record(**REQUEST)
        [record] = access_records(caplog)
        assert record.levelno == logging.INFO
        assert record.client == "127.0.0.1"
        assert record.method == "GET"
        assert record.path == "/users/:id"
        assert record.status == 200
        assert record.duration_ms == 12.5

    def test_server_errors_logged_as_errors(self, caplog):
        with caplog.at_level(logging.INFO, logger="heron.access"):
            AccessLog().record(**{**REQUEST, "status": 500})
        assert access_records(caplog)[0].levelno == logging.ERROR

    def test_slow_requests_warn(self, caplog):
        with caplog.at_level(logging.INFO, logger="heron.access"):
            AccessLog(slow_threshold_ms=5).record(**REQUEST)
        [record] = access_records(caplog)
        assert record.levelno == logging.WARNING
        assert record.getMessage().startswith("SLOW ")

    def test_missing_client(self, caplog):
        with caplog.at_level(logging.INFO, logger="heron.access"):
            AccessLog().record(**{**REQUEST, "client": None})
        assert access_records(caplog)[0].client == "-"

    @pytest.mark.parametrize("log", [
        AccessLog(enabled=False),
        AccessLog(skip_paths={"/users/:id"}),
    ])
    def test_suppressed(self, caplog, log):
        with caplog.at_level(logging.INFO, logger="heron.access"):
            log.record(**REQUEST)
        assert access_records(caplog) == []

    def test_unknown_format_falls_back_to_dev(self):
        assert isinstance(AccessLog(format="fancy")._formatter, DevLogFormatter)

    def test_custom_logger_name(self, caplog):
        with caplog.at_level(logging.INFO, logger="shop.access"):
            AccessLog(logger_name="shop.access").record(**REQUEST)
        assert [r.name for r in caplog.records] == ["shop.access"]
