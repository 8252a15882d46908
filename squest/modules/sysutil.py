# squest/modules/sysutil.py
"""
sysutil.py - filesystem and process helpers

Every wrapper either succeeds or raises a SquestError subclass that names the
operation, the path and the OS reason. run_command tees child output to our
stdout while capturing it for later inspection.
"""

from __future__ import annotations

import os
import sys
import shutil
import hashlib
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from squest.modules.errors import CommandError, FileAccessError, PrivilegeError
from squest.modules.logging import get_logger

logger = get_logger("sysutil")


def _reason(e: OSError) -> str:
    return e.strerror or str(e)


# -----------------------
# Filesystem
# -----------------------
def ensure_dir(path: str) -> str:
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise FileAccessError("create directory", path, _reason(e))
    return path


def remove_tree(path: str) -> None:
    if not os.path.lexists(path):
        return
    try:
        shutil.rmtree(path)
    except OSError as e:
        raise FileAccessError("remove", path, _reason(e))


def remove_file(path: str) -> None:
    try:
        os.remove(path)
    except OSError as e:
        raise FileAccessError("remove", path, _reason(e))


def copy_tree(src: str, dst: str) -> None:
    """Copy the contents of src into dst, nested directories included."""
    try:
        shutil.copytree(src, dst, symlinks=True, dirs_exist_ok=True)
    except shutil.Error as e:
        first = e.args[0][0] if e.args and e.args[0] else (src, dst, str(e))
        raise FileAccessError("copy", first[0], first[2])
    except OSError as e:
        raise FileAccessError("copy", getattr(e, "filename", None) or src, _reason(e))


def list_dir(path: str) -> List[str]:
    try:
        return sorted(os.listdir(path))
    except OSError as e:
        raise FileAccessError("list directory", path, _reason(e))


def md5sum(path: str) -> str:
    h = hashlib.md5()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(1024 * 1024), b""):
                h.update(chunk)
    except OSError as e:
        raise FileAccessError("read", path, _reason(e))
    return h.hexdigest()


# -----------------------
# Privileges
# -----------------------
def require_root(action: str) -> None:
    if os.geteuid() != 0:
        raise PrivilegeError(action)


# -----------------------
# Processes
# -----------------------
@dataclass
class CommandResult:
    command: List[str]
    returncode: int
    output: str


def run_command(cmd: Sequence[str], cwd: Optional[str] = None, env: Optional[Dict[str, str]] = None,
                check: bool = True, echo: bool = True) -> CommandResult:
    """
    Run cmd to completion, streaming its combined stdout/stderr to our stdout
    (unless echo is False) and capturing it. The child is terminated if we are
    interrupted while waiting.
    """
    cmd = [str(c) for c in cmd]
    logger.debug("RUN: %s (cwd=%s)", " ".join(cmd), cwd)
    try:
        proc = subprocess.Popen(cmd, cwd=cwd, env=env, stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
                                text=True, errors="replace")
    except OSError as e:
        raise FileAccessError("execute", cmd[0], _reason(e))
    captured: List[str] = []
    try:
        for line in proc.stdout:
            captured.append(line)
            if echo:
                sys.stdout.write(line)
                sys.stdout.flush()
        rc = proc.wait()
    except BaseException:
        proc.terminate()
        try:
            proc.wait(timeout=10)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
        raise
    finally:
        proc.stdout.close()
    result = CommandResult(cmd, rc, "".join(captured))
    if check and rc != 0:
        raise CommandError(cmd, rc, result.output)
    return result

