from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, Optional, Union
import os
import sys

# Tag configured loggers so repeated calls don't stack handlers.
_OLS_LOGGER_MARK = "_ols_logger_configured"
_OLS_REDACT_ATTR = "_ols_redact_filter"

# timestamp | level | logger | message
_DEFAULT_FMT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}


def _coerce_level(level: Optional[Union[int, str]]) -> int:
    """
    Accepts logging levels as int or str (e.g., 'INFO', 'debug').
    Falls back to LOG_LEVEL env, then INFO.
    """
    if level is None:
        level = os.getenv("LOG_LEVEL") or None

    if isinstance(level, int):
        return level
    if isinstance(level, str):
        return _LEVELS.get(level.strip().upper(), logging.INFO)
    return logging.INFO


class RedactFilter(logging.Filter):
    """Masks secret values (API tokens) in the rendered message."""

    MASK = "***"

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        super().__init__()
        self.secrets: set[str] = set()
        self.add(secrets)

    def add(self, secrets: Iterable[str]) -> None:
        self.secrets.update(s for s in secrets if s and len(s) >= 4)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        message = record.getMessage()
        masked = message
        for secret in self.secrets:
            masked = masked.replace(secret, self.MASK)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _redact_filter(logger: logging.Logger) -> RedactFilter:
    # one shared instance per logger, attached to its handlers so records
    # propagated from child loggers are masked too
    f = getattr(logger, _OLS_REDACT_ATTR, None)
    if f is None:
        f = RedactFilter()
        setattr(logger, _OLS_REDACT_ATTR, f)
    return f


def default_log_path_for_input(input_path: Union[str, Path]) -> Path:
    """orders.json -> orders.log in the same directory."""
    return Path(input_path).with_suffix(".log")


def get_logger(
    name: Optional[str] = None,
    *,
    level: Optional[Union[int, str]] = None,
    log_file: Optional[Union[str, Path]] = None,
    console: bool = True,
    propagate: bool = False,
    fmt: str = _DEFAULT_FMT,
    datefmt: str = _DEFAULT_DATEFMT,
    max_bytes: int = 5_000_000,
    backup_count: int = 5,
    redact: Iterable[str] = (),
) -> logging.Logger:
    """
    Create/configure a logger. Safe to call multiple times:
    - won't duplicate existing handlers
    - will add missing targets (e.g., add a file later)
    - existing handlers follow the latest level
    - values in `redact` are masked in every message this logger emits
    """
    logger = logging.getLogger(name)
    logger.setLevel(_coerce_level(level))
    redactor = _redact_filter(logger)
    redactor.add(redact)
    for h in logger.handlers:
        h.setLevel(logger.level)
    logger.propagate = propagate

    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    def _has_console() -> bool:
        for h in logger.handlers:
            if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler):
                if getattr(h, "stream", None) in (sys.stderr, sys.stdout):
                    return True
        return False

    def _has_file(path: Path) -> bool:
        for h in logger.handlers:
            if isinstance(h, RotatingFileHandler) and h.baseFilename == os.path.abspath(path):
                return True
        return False

    if console and not _has_console():
        sh = logging.StreamHandler(stream=sys.stderr)
        sh.setFormatter(formatter)
        sh.setLevel(logger.level)
        logger.addHandler(sh)

    if log_file is not None:
        log_path = Path(log_file)
        if not _has_file(log_path):
            log_path.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(
                filename=str(log_path),
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
                delay=True,
            )
            fh.setFormatter(formatter)
            fh.setLevel(logger.level)
            logger.addHandler(fh)

    for h in logger.handlers:
        if redactor not in h.filters:
            h.addFilter(redactor)

    setattr(logger, _OLS_LOGGER_MARK, True)
    return logger
