# squest/modules/errors.py
"""
errors.py - exception hierarchy shared by every Squest module

Every fatal condition is a SquestError subclass; the CLI reports str(exc) on a
single "squest: error:" line and exits nonzero. Nothing here is retried.
"""

from __future__ import annotations

from typing import List, Optional, Sequence


class SquestError(Exception):
    """Base class for all fatal Squest conditions."""


# (a) filesystem / I/O
class FileAccessError(SquestError):
    def __init__(self, operation: str, path: str, reason: str):
        self.operation = operation
        self.path = path
        self.reason = reason
        super().__init__(f"cannot {operation} '{path}': {reason}")


# (b) external commands
class CommandError(SquestError):
    def __init__(self, command: Sequence[str], status: int, output: str = ""):
        self.command = list(command)
        self.status = status
        self.output = output
        super().__init__(f"command '{' '.join(self.command)}' failed with exit status {status}")


# (c) parse errors
class ParseError(SquestError):
    def __init__(self, path: str, lineno: int, line: str, reason: str = "malformed line"):
        self.path = path
        self.lineno = lineno
        self.line = line
        self.reason = reason
        super().__init__(f"{reason} at line {lineno} of '{path}': {line!r}")


class ConfigError(ParseError):
    pass


# (d) network / integrity
class DownloadError(SquestError):
    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"download of '{url}' failed: {reason}")


class ChecksumError(SquestError):
    def __init__(self, url: str, expected: str, actual: str):
        self.url = url
        self.expected = expected
        self.actual = actual
        super().__init__(f"checksum mismatch for '{url}': expected {expected}, got {actual}")


# (e) lookup
class PackageNotFoundError(SquestError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"package not found: '{name}'")


class UnresolvedDependencyError(PackageNotFoundError):
    def __init__(self, name: str, required_by: str):
        self.required_by = required_by
        SquestError.__init__(self, f"unresolved dependency '{name}' required by {required_by}")
        self.name = name


class CircularDependencyError(SquestError):
    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        super().__init__("circular dependency: " + " -> ".join(self.cycle))


# (f) privileges
class PrivilegeError(SquestError):
    def __init__(self, action: str):
        self.action = action
        super().__init__(f"root privileges are required to {action}")


# pipeline
class UnsupportedArchError(SquestError):
    def __init__(self, identifier: str, arch: str):
        self.identifier = identifier
        self.arch = arch
        super().__init__(f"{identifier} is unsupported on {arch}")


class ArtifactNotFoundError(SquestError):
    def __init__(self, identifier: str, version: str, directory: str):
        self.identifier = identifier
        self.version = version
        self.directory = directory
        super().__init__(f"no package archive for {identifier} {version} found in '{directory}'")


class AbortedError(SquestError):
    def __init__(self, signame: str, signum: Optional[int] = None):
        self.signame = signame
        self.signum = signum
        super().__init__(f"interrupted by {signame}")
