"""
Logging configuration tests
"""

import json
import logging
from unittest.mock import MagicMock

from aimarker.utils.logger import (
    AuditLogger, RequestLogger, json_formatter, load_logging_config, setup_logging
)


def test_default_config_when_file_missing(tmp_path):
    config = load_logging_config(str(tmp_path / "missing.yaml"))
    assert set(config['formatters']) == {'default', 'detailed', 'json'}


def test_yaml_config_is_loaded(tmp_path):
    path = tmp_path / "logging.yaml"
    path.write_text(
        "version: 1\n"
        "formatters:\n"
        "  plain:\n"
        "    format: '%(message)s'\n"
        "handlers:\n"
        "  console:\n"
        "    class: logging.StreamHandler\n"
        "    formatter: plain\n"
        "root:\n"
        "  handlers: [console]\n"
        "  level: WARNING\n"
    )
    config = load_logging_config(str(path))
    assert 'plain' in config['formatters']


def test_setup_logging_overrides_level_and_format():
    config = setup_logging(log_level="debug", log_format="json")
    assert all(handler['formatter'] == 'json' for handler in config['handlers'].values())
    assert logging.getLogger("aimarker").level == logging.DEBUG
    setup_logging(log_level="INFO")


def test_request_logger():
    request_logger = RequestLogger()
    request_logger.logger = MagicMock()
    request_logger.log_request("GET", "/api/health", 200, 0.0123, ip_address="1.2.3.4")

    message = request_logger.logger.info.call_args.args[0]
    extra = request_logger.logger.info.call_args.kwargs["extra"]
    assert message == "GET /api/health 200 0.012s"
    assert extra["ip_address"] == "1.2.3.4"
    assert extra["event_type"] == "http_request"


def test_audit_logger_uses_severity():
    audit_logger = AuditLogger()
    audit_logger.logger = MagicMock()
    audit_logger.log_system_event("content_flagged", "moderation", severity="warning")

    audit_logger.logger.warning.assert_called_once()
    assert audit_logger.logger.warning.call_args.kwargs["extra"]["component"] == "moderation"


def test_json_formatter_renders_extra_fields():
    record = logging.LogRecord("aimarker.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    record.ip_address = "1.2.3.4"

    payload = json.loads(json_formatter().format(record))

    assert payload["event"] == "hello world"
    assert payload["level"] == "info"
    assert payload["logger"] == "aimarker.test"
    assert payload["ip_address"] == "1.2.3.4"


def test_system_event_keeps_json_message():
    audit_logger = AuditLogger()
    audit_logger.logger = MagicMock()
    audit_logger.log_system_event("content_flagged", "moderation")
    extra = audit_logger.logger.info.call_args.kwargs["extra"]
    assert "event" not in extra

    record = logging.LogRecord(
        "aimarker.audit", logging.INFO, __file__, 1,
        audit_logger.logger.info.call_args.args[0], (), None
    )
    for key, value in extra.items():
        setattr(record, key, value)

    payload = json.loads(json_formatter().format(record))
    assert payload["event"] == "System event: content_flagged in moderation"
    assert payload["system_event"] == "content_flagged"
