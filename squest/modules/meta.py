# squest/modules/meta.py
"""
meta.py - loader and runtime model for SlackBuild .info descriptors

Features:
- Parse the flat KEY="value" .info format, including backslash continuation lines
- Normalize a descriptor into a typed Package record (paths, download lists, requires)
- Architecture overrides: DOWNLOAD_<arch>/MD5SUM_<arch> for the non-default variant,
  and the UNSUPPORTED sentinel that marks a package unbuildable on the host
- %README% marker handling (dependency list known to be incomplete)
- Explicit per-caller PackageCache with a bypass flag for re-reading mutated descriptors
"""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from squest.modules.errors import FileAccessError, PackageNotFoundError, ParseError
from squest.modules.logging import get_logger
from squest.modules.repo import RepoIndex

logger = get_logger("meta")

README_MARKER = "%README%"
UNSUPPORTED = "UNSUPPORTED"
DEFAULT_ARCH = "i586"
# architectures whose descriptor fields carry an _<arch> suffix
VARIANT_ARCHES = ("x86_64",)


def host_arch(machine: Optional[str] = None) -> str:
    m = machine or platform.machine()
    if m in ("i386", "i486", "i586", "i686"):
        return DEFAULT_ARCH
    if m.startswith("arm") and m != "arm64":
        return "arm"
    return m


# -----------------------
# Descriptor parsing
# -----------------------
class Descriptor(dict):
    """KEY -> value mapping that also remembers where each key was defined."""

    def __init__(self):
        super().__init__()
        self.lines: Dict[str, Tuple[int, str]] = {}


def _unquote(val: str) -> str:
    val = val.strip()
    if len(val) >= 2 and val[0] == val[-1] and val[0] in ('"', "'"):
        return val[1:-1]
    return val


def parse_descriptor_file(path: str) -> Descriptor:
    """
    Parse a KEY="value" descriptor into a dict.

    A trailing backslash continues the value on the next line; the pieces are
    joined with exactly one space, so a continued value equals the same value
    written on one line.
    """
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise FileAccessError("open", path, e.strerror or str(e))

    data = Descriptor()
    pending: List[str] = []
    start = 0
    for lineno, line in enumerate(lines, start=1):
        if not pending:
            start = lineno
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
        if line.rstrip().endswith("\\"):
            piece = line.rstrip()[:-1].strip()
            if piece:
                pending.append(piece)
            continue
        piece = line.strip()
        if piece:
            pending.append(piece)
        _store(data, " ".join(pending), path, start, lines[start - 1])
        pending = []
    if pending:
        _store(data, " ".join(pending), path, start, lines[start - 1])
    return data


def _store(data: Descriptor, logical: str, path: str, lineno: int, raw: str) -> None:
    if "=" not in logical:
        raise ParseError(path, lineno, raw, "expected KEY=\"value\"")
    key, val = logical.split("=", 1)
    key = key.strip()
    if not key or not key.replace("_", "").isalnum():
        raise ParseError(path, lineno, raw, "invalid key")
    data[key] = " ".join(_unquote(val).split())
    data.lines[key] = (lineno, raw)


# -----------------------
# Data models
# -----------------------
@dataclass
class Package:
    """Normalized view of one descriptor directory."""
    identifier: str
    directory: str
    prgnam: str
    version: str
    homepage: str = ""
    maintainer_name: str = ""
    maintainer_email: str = ""
    download_urls: List[str] = field(default_factory=list)
    checksums: List[str] = field(default_factory=list)
    arch_download_urls: List[str] = field(default_factory=list)
    arch_checksums: List[str] = field(default_factory=list)
    effective_download_urls: List[str] = field(default_factory=list)
    effective_checksums: List[str] = field(default_factory=list)
    unsupported_on_arch: bool = False
    requires: List[str] = field(default_factory=list)
    has_extra_undeclared_deps: bool = False
    arch: str = DEFAULT_ARCH
    extra: Dict[str, str] = field(default_factory=dict)

    @property
    def category(self) -> str:
        return self.identifier.split("/", 1)[0]

    @property
    def name(self) -> str:
        return self.identifier.split("/", 1)[1]

    @property
    def info_file(self) -> str:
        return os.path.join(self.directory, f"{self.name}.info")

    @property
    def build_script_file(self) -> str:
        return os.path.join(self.directory, f"{self.name}.SlackBuild")

    @property
    def readme_file(self) -> str:
        return os.path.join(self.directory, "README")

    @property
    def desc_file(self) -> str:
        return os.path.join(self.directory, "slack-desc")

    def sources(self) -> List[tuple]:
        """(url, md5) pairs the pipeline must fetch on this host."""
        return list(zip(self.effective_download_urls, self.effective_checksums))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "identifier": self.identifier,
            "version": self.version,
            "homepage": self.homepage,
            "maintainer": self.maintainer_name,
            "email": self.maintainer_email,
            "directory": self.directory,
            "download": list(self.download_urls),
            "md5sum": list(self.checksums),
            f"download_{self.arch}": list(self.arch_download_urls),
            f"md5sum_{self.arch}": list(self.arch_checksums),
            "unsupported_on_arch": self.unsupported_on_arch,
            "requires": list(self.requires),
            "has_extra_undeclared_deps": self.has_extra_undeclared_deps,
        }


class PackageCache:
    """Identifier -> Package memo, owned by whoever drives a resolution."""

    def __init__(self):
        self._items: Dict[str, Package] = {}
        self.hits = 0
        self.misses = 0

    def get(self, identifier: str) -> Optional[Package]:
        pkg = self._items.get(identifier)
        if pkg is None:
            self.misses += 1
        else:
            self.hits += 1
        return pkg

    def put(self, pkg: Package) -> None:
        self._items[pkg.identifier] = pkg

    def clear(self) -> None:
        self._items.clear()

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._items

    def __len__(self) -> int:
        return len(self._items)


# -----------------------
# MetaLoader
# -----------------------
class MetaLoader:
    """
    Turns names into Package records: resolve through the RepoIndex, parse the
    .info file, apply architecture and README-marker rules.
    """

    def __init__(self, index: RepoIndex, arch: Optional[str] = None, cache: Optional[PackageCache] = None):
        self.index = index
        self.arch = arch or host_arch()
        self.cache = cache if cache is not None else PackageCache()

    def load_package(self, name: str, bypass_cache: bool = False) -> Package:
        identifier = self.index.resolve_identifier(name)
        if identifier is None:
            raise PackageNotFoundError(name)
        if not bypass_cache:
            cached = self.cache.get(identifier)
            if cached is not None:
                return cached
        pkg = self._build(identifier)
        self.cache.put(pkg)
        return pkg

    def _build(self, identifier: str) -> Package:
        directory = self.index.package_dir(identifier)
        prgnam = identifier.split("/", 1)[1]
        info_path = os.path.join(directory, f"{prgnam}.info")
        data = parse_descriptor_file(info_path)
        logger.debug("parsed %s", info_path)

        downloads = data.get("DOWNLOAD", "").split()
        md5s = data.get("MD5SUM", "").split()
        self._check_parallel(info_path, data, "DOWNLOAD", downloads, "MD5SUM", md5s)

        arch_downloads: List[str] = []
        arch_md5s: List[str] = []
        if self.arch in VARIANT_ARCHES:
            arch_downloads = data.get(f"DOWNLOAD_{self.arch}", "").split()
            arch_md5s = data.get(f"MD5SUM_{self.arch}", "").split()

        unsupported = False
        eff_downloads, eff_md5s = list(downloads), list(md5s)
        if arch_downloads == [UNSUPPORTED]:
            unsupported = True
            eff_downloads, eff_md5s = [], []
        elif arch_downloads and arch_md5s:
            self._check_parallel(info_path, data, f"DOWNLOAD_{self.arch}", arch_downloads,
                                 f"MD5SUM_{self.arch}", arch_md5s)
            eff_downloads, eff_md5s = list(arch_downloads), list(arch_md5s)
        elif self.arch not in VARIANT_ARCHES and downloads == [UNSUPPORTED]:
            unsupported = True
            eff_downloads, eff_md5s = [], []

        requires = data.get("REQUIRES", "").split()
        extra_deps = README_MARKER in requires
        requires = [r for r in requires if r != README_MARKER]

        known = {"PRGNAM", "VERSION", "HOMEPAGE", "DOWNLOAD", "MD5SUM", "REQUIRES", "MAINTAINER", "EMAIL"}
        extra = {k: v for k, v in data.items() if k not in known and not k.startswith(("DOWNLOAD_", "MD5SUM_"))}

        return Package(
            identifier=identifier,
            directory=directory,
            prgnam=data.get("PRGNAM") or prgnam,
            version=data.get("VERSION", ""),
            homepage=data.get("HOMEPAGE", ""),
            maintainer_name=data.get("MAINTAINER", ""),
            maintainer_email=data.get("EMAIL", ""),
            download_urls=downloads,
            checksums=md5s,
            arch_download_urls=arch_downloads,
            arch_checksums=arch_md5s,
            effective_download_urls=eff_downloads,
            effective_checksums=eff_md5s,
            unsupported_on_arch=unsupported,
            requires=requires,
            has_extra_undeclared_deps=extra_deps,
            arch=self.arch,
            extra=extra,
        )

    @staticmethod
    def _check_parallel(path: str, data: Descriptor, url_key: str, urls: List[str],
                        sum_key: str, sums: List[str]) -> None:
        if urls == [UNSUPPORTED] and not sums:
            return
        if len(urls) != len(sums):
            lineno, raw = data.lines.get(url_key, (0, f"{url_key}/{sum_key}"))
            raise ParseError(path, lineno, raw,
                             f"{url_key} lists {len(urls)} entries but {sum_key} lists {len(sums)}")
