"""Tests for the package logger."""

import logging

from agentwire.utils.log import AgentwireLogger, StructuredFormatter, level_from_env


def _record(**extra):
    record = logging.LogRecord("agentwire.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_extra_fields_as_json():
    formatter = StructuredFormatter("%(levelname)s: %(message)s")

    assert formatter.format(_record()) == "INFO: hello world"
    assert formatter.format(_record(pid=42, argv=["claude"])) == (
        'INFO: hello world | {"argv": ["claude"], "pid": 42}'
    )


def test_formatter_timestamps_are_utc_iso():
    record = _record()
    record.created = 0.0

    assert StructuredFormatter().formatTime(record) == "1970-01-01T00:00:00.000Z"


def test_level_from_env(monkeypatch):
    monkeypatch.delenv("AGENTWIRE_LOG_LEVEL", raising=False)
    assert level_from_env() == logging.WARNING

    monkeypatch.setenv("AGENTWIRE_LOG_LEVEL", "debug")
    assert level_from_env() == logging.DEBUG

    monkeypatch.setenv("AGENTWIRE_LOG_LEVEL", "chatty")
    assert level_from_env() == logging.WARNING


def test_file_handler_receives_module_logs(tmp_path):
    logger = AgentwireLogger(name="agentwire-test-file")
    log_file = logger.attach_file_handler(tmp_path / "logs" / "agentwire.log")
    try:
        logger.debug("[test] Adapter message", extra={"turn": 1})
        logging.getLogger("agentwire-test-file.child").info("Child message")
    finally:
        logger.detach_file_handler()

    content = log_file.read_text(encoding="utf-8")
    assert '[test] Adapter message | {"turn": 1}' in content
    assert "agentwire-test-file.child: Child message" in content
    assert logger.log_file is None


def test_console_handler_is_reused():
    first = AgentwireLogger(name="agentwire-test-console")
    second = AgentwireLogger(name="agentwire-test-console")

    assert len(second.logger.handlers) == 1
    second.set_console_level(logging.ERROR)
    assert first.logger.handlers[0].level == logging.ERROR
