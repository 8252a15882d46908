# squest/modules/config.py
# -*- coding: utf-8 -*-
"""
Squest configuration loader

Features:
- Read a KEY=VALUE file from the first candidate location (explicit path, $SQUEST_CONFIG, /etc/squest.conf)
- Merge with authoritative DEFAULTS and coerce types (booleans, paths)
- Strict validation: unknown keys, missing '=', empty keys or values are fatal and name the line and file
- Typed access via the Config dataclass, built once by the caller and passed to every component
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from squest.modules.errors import ConfigError, FileAccessError
from squest.modules.logging import get_logger

logger = get_logger("config")

DEFAULT_CONFIG_PATH = "/etc/squest.conf"
CONFIG_ENV = "SQUEST_CONFIG"
ROOT_ENV = "ROOT"

# ----------------------------
# DEFAULT configuration (authoritative base)
# ----------------------------
DEFAULTS: Dict[str, Optional[str]] = {
    "TMPDIR": "/tmp/SBo",
    "CLEANUP": "true",
    "REPO_ROOT": "/var/lib/squest/repo",
    "REPO_GIT_URL": "https://gitlab.com/SlackBuilds.org/slackbuilds.git",
    "REPO_GIT_BRANCH": "15.0",
    "LOG_LEVEL": "INFO",
    "LOG_FILE": None,
}

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")
_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ----------------------------
# Dataclass to hold config
# ----------------------------
@dataclass
class Config:
    tmpdir: str = DEFAULTS["TMPDIR"]
    cleanup: bool = True
    repo_root: str = DEFAULTS["REPO_ROOT"]
    repo_git_url: str = DEFAULTS["REPO_GIT_URL"]
    repo_git_branch: str = DEFAULTS["REPO_GIT_BRANCH"]
    log_level: str = DEFAULTS["LOG_LEVEL"]
    log_file: Optional[str] = None
    root: str = field(default_factory=lambda: os.environ.get(ROOT_ENV) or "/")
    source: Optional[str] = None  # file the values came from, None for pure defaults

    @property
    def output_dir(self) -> str:
        """Build scripts drop their archives here."""
        return self.tmpdir

    def as_dict(self) -> Dict[str, object]:
        return {
            "TMPDIR": self.tmpdir,
            "CLEANUP": self.cleanup,
            "REPO_ROOT": self.repo_root,
            "REPO_GIT_URL": self.repo_git_url,
            "REPO_GIT_BRANCH": self.repo_git_branch,
            "LOG_LEVEL": self.log_level,
            "LOG_FILE": self.log_file,
            "ROOT": self.root,
        }


# ----------------------------
# Utilities
# ----------------------------
def _expand_path(val: str) -> str:
    return os.path.abspath(os.path.expanduser(os.path.expandvars(val)))


def _parse_bool(val: str, path: str, lineno: int, line: str) -> bool:
    v = val.lower()
    if v in _TRUE:
        return True
    if v in _FALSE:
        return False
    raise ConfigError(path, lineno, line, f"invalid boolean value '{val}'")


def _strip_comment(line: str) -> str:
    idx = line.find("#")
    return line if idx < 0 else line[:idx]


def parse_config_text(text: str, path: str) -> Dict[str, str]:
    """Parse KEY=VALUE text; nothing is returned unless every line is valid."""
    values: Dict[str, str] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = _strip_comment(raw).strip()
        if not line:
            continue
        if "=" not in line:
            raise ConfigError(path, lineno, raw, "expected KEY=VALUE")
        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip()
        if not key:
            raise ConfigError(path, lineno, raw, "empty key")
        if not val:
            raise ConfigError(path, lineno, raw, "empty value")
        if key not in DEFAULTS:
            raise ConfigError(path, lineno, raw, f"unknown key '{key}'")
        if key == "CLEANUP":
            _parse_bool(val, path, lineno, raw)
        if key == "LOG_LEVEL" and val.upper() not in _LEVELS:
            raise ConfigError(path, lineno, raw, f"invalid log level '{val}'")
        values[key] = val
    return values


def _find_candidates(explicit: Optional[str] = None) -> List[Path]:
    candidates: List[Path] = []
    env = os.environ.get(CONFIG_ENV)
    if explicit:
        candidates.append(Path(explicit))
    if env:
        candidates.append(Path(env))
    candidates.append(Path(DEFAULT_CONFIG_PATH))
    return candidates


# ----------------------------
# Loading
# ----------------------------
def load(explicit_path: Optional[str] = None) -> Config:
    """
    Load the configuration file and merge it over DEFAULTS.

    An explicitly requested file (argument or $SQUEST_CONFIG) must exist; the
    system-wide default file is optional.
    """
    candidates = _find_candidates(explicit_path)
    chosen: Optional[Path] = None
    for p in candidates:
        if p.exists():
            chosen = p
            break
        if str(p) != DEFAULT_CONFIG_PATH:
            raise FileAccessError("open", str(p), "No such file or directory")

    values: Dict[str, str] = {}
    if chosen is not None:
        try:
            text = chosen.read_text(encoding="utf-8")
        except OSError as e:
            raise FileAccessError("read", str(chosen), e.strerror or str(e))
        except UnicodeDecodeError:
            raise FileAccessError("read", str(chosen), "file is not valid UTF-8")
        values = parse_config_text(text, str(chosen))

    merged = {k: v for k, v in DEFAULTS.items()}
    merged.update(values)
    cfg = Config(
        tmpdir=_expand_path(merged["TMPDIR"]),
        cleanup=str(merged["CLEANUP"]).lower() in _TRUE,
        repo_root=_expand_path(merged["REPO_ROOT"]),
        repo_git_url=merged["REPO_GIT_URL"],
        repo_git_branch=merged["REPO_GIT_BRANCH"],
        log_level=str(merged["LOG_LEVEL"]).upper(),
        log_file=_expand_path(merged["LOG_FILE"]) if merged["LOG_FILE"] else None,
        source=str(chosen) if chosen else None,
    )
    logger.debug("config: loaded (from=%s)", cfg.source or "<defaults>")
    return cfg
