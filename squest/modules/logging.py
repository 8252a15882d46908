# squest/modules/logging.py
# -*- coding: utf-8 -*-
"""
Squest logging

Features:
 - "squest" root logger shared by every module
 - Console color formatter (ANSI, disabled when not a TTY or on request)
 - Optional rotating file handler (LOG_FILE)
 - get_logger(module) returns a LoggerAdapter that tags records with squest_module
"""

from __future__ import annotations

import sys
import logging
import logging.handlers
import threading
from pathlib import Path
from typing import List, Optional

from squest.modules.errors import FileAccessError

_ROOT_NAME = "squest"
_CONSOLE_FMT = "[%(levelname)s] [%(squest_module)s] %(message)s"
_FILE_FMT = "%(asctime)s %(levelname)s [%(squest_module)s] %(message)s"


# ----------------------
# Color formatter
# ----------------------
class ColorFormatter(logging.Formatter):
    COLORS = {
        logging.DEBUG: "\033[37m",    # light gray
        logging.INFO: "\033[36m",     # cyan
        logging.WARNING: "\033[33m",  # yellow
        logging.ERROR: "\033[31m",    # red
        logging.CRITICAL: "\033[41;37m", # white on red
    }
    RESET = "\033[0m"

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None, color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.color = color

    def format(self, record):
        msg = super().format(record)
        if self.color:
            color = self.COLORS.get(record.levelno, "")
            return f"{color}{msg}{self.RESET}"
        return msg


class _ModuleTagFilter(logging.Filter):
    """Records emitted without an adapter still need squest_module for the formatters."""

    def filter(self, record):
        if not hasattr(record, "squest_module"):
            record.squest_module = record.name
        return True


_lock = threading.RLock()
_handlers: List[logging.Handler] = []


def configure_logging(level: str = "INFO", log_file: Optional[str] = None, color: Optional[bool] = None) -> logging.Logger:
    """(Re)install the console and file handlers on the squest root logger."""
    root = logging.getLogger(_ROOT_NAME)
    with _lock:
        for h in list(_handlers):
            root.removeHandler(h)
            h.close()
        _handlers.clear()

        numeric = getattr(logging, str(level).upper(), None)
        if not isinstance(numeric, int):
            raise ValueError(f"unknown log level: {level}")
        root.setLevel(numeric)

        if color is None:
            color = sys.stderr.isatty()
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(numeric)
        ch.addFilter(_ModuleTagFilter())
        ch.setFormatter(ColorFormatter(_CONSOLE_FMT, color=color))
        root.addHandler(ch)
        _handlers.append(ch)

        if log_file:
            path = Path(log_file).expanduser()
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                fh = logging.handlers.RotatingFileHandler(str(path), maxBytes=10 * 1024 * 1024, backupCount=5,
                                                          encoding="utf-8")
            except OSError as e:
                raise FileAccessError("open log file", str(path), e.strerror or str(e))
            fh.setLevel(logging.DEBUG)
            fh.addFilter(_ModuleTagFilter())
            fh.setFormatter(logging.Formatter(_FILE_FMT))
            root.addHandler(fh)
            _handlers.append(fh)
    return root


def get_logger(module: str) -> logging.LoggerAdapter:
    """Return a LoggerAdapter that injects 'squest_module' into records."""
    return logging.LoggerAdapter(logging.getLogger(f"{_ROOT_NAME}.{module}"), {"squest_module": module})
