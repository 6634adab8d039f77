import json
import logging

from novel_agent.infrastructure.logging import logger as logger_module
from novel_agent.infrastructure.logging.logger import JsonFormatter, redact_fields


def make_record(extra):
    record = logging.LogRecord("novel_agent", logging.WARNING, __file__, 1, "Skipped malformed stream chunk", None, None)
    record.extra = extra
    return record


def test_content_fields_redacted(monkeypatch):
    monkeypatch.setattr(logger_module.settings, "log_redact_content", True)
    line = JsonFormatter().format(make_record({"chunk": "secret", "provider": "deepseek"}))
    payload = json.loads(line)
    assert "secret" not in line
    assert payload["chunk"] == "<redacted 6 chars>"
    assert payload["provider"] == "deepseek"


def test_content_fields_kept_without_redaction(monkeypatch):
    monkeypatch.setattr(logger_module.settings, "log_redact_content", False)
    payload = json.loads(JsonFormatter().format(make_record({"chunk": "secret"})))
    assert payload["chunk"] == "secret"


def test_redact_fields_leaves_other_keys():
    fields = {"content": "正文", "user_input": "你好", "latency_ms": 12, "error": "Expecting value"}
    redacted = redact_fields(fields)
    assert redacted["content"] == "<redacted 2 chars>"
    assert redacted["user_input"] == "<redacted 2 chars>"
    assert redacted["latency_ms"] == 12
    assert redacted["error"] == "Expecting value"
    assert fields["content"] == "正文"
