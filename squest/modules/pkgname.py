# squest/modules/pkgname.py
"""
pkgname.py - Slackware package archive names

    <prgnam>-<version>-<arch>-<build>_SBo.tgz

prgnam may contain hyphens but version never does, so the last hyphen of
<prgnam>-<version> is the split point. The prgnam found that way must then
resolve to a package in the RepoIndex.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple

from squest.modules.repo import RepoIndex

TAG = "_SBo"
EXTENSIONS = (".tgz", ".txz", ".tbz", ".tlz")
ARCHES = frozenset({"noarch", "i386", "i486", "i586", "i686", "x86_64", "arm", "armv7hl", "aarch64", "fw"})

_BUILD_RE = re.compile(r"^[0-9]+_SBo$")


@dataclass(frozen=True)
class ArtifactName:
    identifier: str
    version: str


def _strip_ext(name: str) -> str:
    for ext in EXTENSIONS:
        if name.endswith(ext):
            return name[: -len(ext)]
    return name


def split_artifact_filename(name: str) -> Optional[Tuple[str, str, str]]:
    """Split into (prgnam-version, arch, build) without consulting the index."""
    base = _strip_ext(name.strip())
    parts = base.rsplit("-", 2)
    if len(parts) != 3:
        return None
    stem, arch, build = parts
    if not stem or not _BUILD_RE.match(build) or arch not in ARCHES:
        return None
    return stem, arch, build


def parse_artifact_filename(name: str, index: RepoIndex) -> Optional[ArtifactName]:
    split = split_artifact_filename(name)
    if split is None:
        return None
    # version is hyphen-free, so only the last hyphen can separate it from prgnam
    prgnam, sep, version = split[0].rpartition("-")
    if not sep or not prgnam or not version:
        return None
    identifier = index.resolve_identifier(prgnam)
    if identifier is None:
        return None
    return ArtifactName(identifier, version)


def format_artifact_filename(prgnam: str, version: str, arch: str, build: str, ext: str = ".tgz") -> str:
    build = str(build)
    if not build.endswith(TAG):
        build += TAG
    return f"{prgnam}-{version}-{arch}-{build}{ext}"
