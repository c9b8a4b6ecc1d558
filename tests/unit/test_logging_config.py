"""Unit tests for smoothlimiter logging configuration."""

from __future__ import annotations

import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler, TimedRotatingFileHandler
from unittest import mock

import smoothlimiter
from smoothlimiter import create
from smoothlimiter.logging_config import (
    LOGGER_NAME,
    JsonFormatter,
    _clear_handlers,
    _get_level,
    _get_logger,
)


def _non_null_handlers() -> list[logging.Handler]:
    return [h for h in _get_logger().handlers if not isinstance(h, logging.NullHandler)]


class TestSilentByDefault:
    def test_using_a_limiter_prints_nothing(self, capfd, stopwatch):
        limiter = create(5.0, stopwatch=stopwatch)
        limiter.acquire()
        limiter.set_rate(10.0)

        captured = capfd.readouterr()
        assert captured.out == ""
        assert captured.err == ""

    def test_logger_has_null_handler(self):
        logger = logging.getLogger(LOGGER_NAME)
        assert any(isinstance(h, logging.NullHandler) for h in logger.handlers)


class TestLimiterRecords:
    """What the limiter itself logs, observed through caplog."""

    def test_rate_change_logged_at_info(self, caplog, stopwatch):
        limiter = create(5.0, stopwatch=stopwatch)
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            limiter.set_rate(7.5)

        assert "Rate set to 7.5 permits/s" in caplog.messages

    def test_reservations_logged_at_debug(self, caplog, stopwatch):
        limiter = create(5.0, stopwatch=stopwatch)
        with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
            limiter.acquire()
            limiter.acquire()
            limiter.try_acquire()

        messages = caplog.messages
        assert "Reserved 1 permit(s) at 0us; wait=0us" in messages
        assert "Reserved 1 permit(s) at 0us; wait=200000us" in messages
        assert "Rejected 1 permit(s) at 200000us; timeout=0us" in messages

    def test_debug_not_emitted_at_info(self, caplog, stopwatch):
        limiter = create(5.0, stopwatch=stopwatch)
        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            limiter.acquire()

        assert not any(r.levelno == logging.DEBUG for r in caplog.records)


class TestEnableConsoleLogging:
    def test_adds_stream_handler_and_level(self):
        handler = smoothlimiter.enable_console_logging(level="DEBUG")

        assert handler in _get_logger().handlers
        assert _get_logger().level == logging.DEBUG

    def test_writes_to_stderr(self, capfd, stopwatch):
        smoothlimiter.enable_console_logging(level="INFO")
        create(5.0, stopwatch=stopwatch).set_rate(3.0)

        captured = capfd.readouterr()
        assert "Rate set to 3.0 permits/s" in captured.err
        assert captured.out == ""

    def test_custom_format(self, capfd):
        smoothlimiter.enable_console_logging(format="[%(levelname)s] %(message)s")
        _get_logger().info("hello")

        assert "[INFO] hello" in capfd.readouterr().err


class TestEnableFileLogging:
    def test_rotating_handler(self, tmp_path):
        handler = smoothlimiter.enable_file_logging(tmp_path / "sl.log", max_bytes=1024)

        assert isinstance(handler, RotatingFileHandler)
        assert handler.maxBytes == 1024

    def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "sl.log"
        smoothlimiter.enable_file_logging(path)
        assert path.parent.is_dir()

    def test_writes_records(self, tmp_path, stopwatch):
        path = tmp_path / "sl.log"
        handler = smoothlimiter.enable_file_logging(path, level="DEBUG")
        create(5.0, stopwatch=stopwatch).acquire()
        handler.flush()

        content = path.read_text()
        assert "Rate set to 5.0 permits/s" in content
        assert "Reserved 1 permit(s)" in content

    def test_timed_rotation(self, tmp_path):
        handler = smoothlimiter.enable_timed_file_logging(tmp_path / "sl.log", when="H")

        assert isinstance(handler, TimedRotatingFileHandler)
        assert handler.when == "H"


class TestJsonLogging:
    def test_console_outputs_json_lines(self, capfd):
        smoothlimiter.enable_json_logging()
        _get_logger().info("json test")

        line = capfd.readouterr().err.strip().splitlines()[-1]
        data = json.loads(line)
        assert data["message"] == "json test"
        assert data["level"] == "INFO"
        assert data["logger"] == LOGGER_NAME
        assert "timestamp" in data

    def test_file_outputs_json_lines(self, tmp_path):
        path = tmp_path / "sl.jsonl"
        handler = smoothlimiter.enable_json_file_logging(path)
        _get_logger().warning("to file")
        handler.flush()

        data = json.loads(path.read_text().strip())
        assert data["message"] == "to file"
        assert data["level"] == "WARNING"


class TestConfigureFromEnv:
    def test_level_from_env(self):
        with mock.patch.dict(os.environ, {"SL_LOGGING": "warning"}, clear=False):
            smoothlimiter.configure_from_env()

        assert _get_logger().level == logging.WARNING
        assert len(_non_null_handlers()) == 1

    def test_file_from_env(self, tmp_path):
        path = tmp_path / "env.log"
        with mock.patch.dict(os.environ, {"SL_LOG_FILE": str(path)}, clear=False):
            os.environ.pop("SL_LOGGING", None)
            smoothlimiter.configure_from_env()

        handlers = _non_null_handlers()
        assert len(handlers) == 1
        assert isinstance(handlers[0], RotatingFileHandler)
        assert _get_logger().level == logging.INFO

    def test_json_from_env(self, capfd):
        env = {"SL_LOGGING": "INFO", "SL_LOG_JSON": "1"}
        with mock.patch.dict(os.environ, env, clear=False):
            smoothlimiter.configure_from_env()
        _get_logger().info("env json")

        data = json.loads(capfd.readouterr().err.strip().splitlines()[-1])
        assert data["message"] == "env json"

    def test_nothing_without_env(self):
        with mock.patch.dict(os.environ, {}, clear=False):
            for key in ("SL_LOGGING", "SL_LOG_FILE", "SL_LOG_JSON"):
                os.environ.pop(key, None)
            smoothlimiter.configure_from_env()

        assert _non_null_handlers() == []


class TestLevels:
    def test_set_level(self):
        smoothlimiter.set_level("ERROR")
        assert _get_logger().level == logging.ERROR
        smoothlimiter.set_level(logging.DEBUG)
        assert _get_logger().level == logging.DEBUG

    def test_set_module_level(self):
        smoothlimiter.set_module_level("rate_limiter", "DEBUG")
        try:
            assert logging.getLogger(f"{LOGGER_NAME}.rate_limiter").level == logging.DEBUG
        finally:
            logging.getLogger(f"{LOGGER_NAME}.rate_limiter").setLevel(logging.NOTSET)

    def test_disable_logging(self, capfd):
        smoothlimiter.enable_console_logging(level="DEBUG")
        smoothlimiter.disable_logging()
        _get_logger().critical("should not appear")

        assert capfd.readouterr().err == ""
        assert _non_null_handlers() == []


class TestHelpers:
    def test_get_level(self):
        assert _get_level("debug") == logging.DEBUG
        assert _get_level(logging.ERROR) == logging.ERROR
        assert _get_level("NOPE") == logging.INFO

    def test_clear_handlers_keeps_null_handler(self):
        smoothlimiter.enable_console_logging()
        _clear_handlers()

        handlers = _get_logger().handlers
        assert handlers
        assert all(isinstance(h, logging.NullHandler) for h in handlers)

    def test_json_formatter_includes_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.getLogger("x").makeRecord(
                "x", logging.ERROR, __file__, 1, "failed", None, exc_info=sys.exc_info()
            )

        data = json.loads(JsonFormatter().format(record))
        assert data["message"] == "failed"
        assert "ValueError: boom" in data["exception"]
