import logging
from pathlib import Path

from order_logistics_sync.config.logging_config import (
    get_logger,
    default_log_path_for_input,
)


def _reset(name: str) -> logging.Logger:
    lg = logging.getLogger(name)
    for h in list(lg.handlers):
        lg.removeHandler(h)
        h.close()
    return lg


def test_default_log_path_for_input():
    assert default_log_path_for_input(
        "/x/y/orders.json") == Path("/x/y/orders.log")
    assert default_log_path_for_input("orders.json") == Path("orders.log")


def test_get_logger_idempotent_no_duplicate_handlers(tmp_path):
    _reset("ols.test")
    log_path = tmp_path / "run.log"

    logger = get_logger("ols.test", level="DEBUG",
                        log_file=log_path, console=False)
    logger2 = get_logger("ols.test", level="DEBUG",
                         log_file=log_path, console=False)

    assert logger is logger2
    assert len(logger.handlers) == 1  # just the file handler


def test_get_logger_writes_to_file(tmp_path):
    _reset("ols.file")
    log_file = tmp_path / "logs" / "app.log"
    logger = get_logger("ols.file", level="INFO",
                        log_file=log_file, console=False)
    logger.info("hello world")

    assert log_file.exists()
    assert "hello world" in log_file.read_text(encoding="utf-8")


def test_get_logger_respects_level_env(monkeypatch, tmp_path):
    _reset("ols.level.env")
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    log_file = tmp_path / "lvl.log"
    logger = get_logger("ols.level.env", log_file=log_file, console=False)

    logger.info("should NOT appear")
    logger.error("should appear")

    text = log_file.read_text(encoding="utf-8")
    assert "should appear" in text
    assert "should NOT appear" not in text


def test_console_then_file_gives_two_handlers(tmp_path):
    name = "ols.multi"
    _reset(name)

    lg1 = get_logger(name, level="INFO", console=True, log_file=None)
    lg2 = get_logger(name, level="INFO", console=True,
                     log_file=tmp_path / "x.log")

    assert lg1 is lg2
    assert len(lg2.handlers) == 2


def test_redacted_values_never_reach_handlers(tmp_path):
    _reset("ols.redact")
    _reset("ols.redact.child")
    log_file = tmp_path / "r.log"
    get_logger("ols.redact", level="DEBUG", log_file=log_file,
               console=False, redact=["tok-12345"])

    logging.getLogger("ols.redact.child").warning(
        "headers=%s", {"17token": "tok-12345"})

    text = log_file.read_text(encoding="utf-8")
    assert "tok-12345" not in text
    assert "***" in text


def test_repeated_call_updates_handler_level(tmp_path):
    _reset("ols.relevel")
    log_file = tmp_path / "l.log"
    get_logger("ols.relevel", level="ERROR", log_file=log_file, console=False)
    lg = get_logger("ols.relevel", level="DEBUG", log_file=log_file, console=False)

    lg.debug("now visible")

    assert "now visible" in log_file.read_text(encoding="utf-8")
