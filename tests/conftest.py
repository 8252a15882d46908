"""Shared fixtures: an on-disk SlackBuilds mirror plus fake builder/installer."""

from __future__ import annotations

import hashlib
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from squest.modules.buildsystem import Builder
from squest.modules.config import Config
from squest.modules.errors import CommandError
from squest.modules.meta import MetaLoader, Package, PackageCache
from squest.modules.pkgname import format_artifact_filename
from squest.modules.pkgtool import Installer
from squest.modules.repo import RepoIndex


def md5_of(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


class Mirror:
    """Writes descriptor directories under root/<category>/<name>/."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def add(self, identifier: str, version: str = "1.0", requires: str = "", download: str = "",
            md5sum: str = "", extra: Optional[Dict[str, str]] = None, info_text: Optional[str] = None) -> Path:
        category, name = identifier.split("/")
        pkgdir = self.root / category / name
        pkgdir.mkdir(parents=True, exist_ok=True)
        if info_text is None:
            fields = {
                "PRGNAM": name,
                "VERSION": version,
                "HOMEPAGE": f"https://example.org/{name}",
                "DOWNLOAD": download,
                "MD5SUM": md5sum,
                "DOWNLOAD_x86_64": "",
                "MD5SUM_x86_64": "",
                "REQUIRES": requires,
                "MAINTAINER": "Jane Builder",
                "EMAIL": "jane@example.org",
            }
            fields.update(extra or {})
            info_text = "".join(f'{k}="{v}"\n' for k, v in fields.items())
        (pkgdir / f"{name}.info").write_text(info_text)
        (pkgdir / f"{name}.SlackBuild").write_text("#!/bin/sh\nexit 0\n")
        (pkgdir / "slack-desc").write_text(f"{name}: {name} (test package)\n")
        (pkgdir / "README").write_text(f"{name} readme\n")
        return pkgdir


class FakeBuilder(Builder):
    """Drops an archive named after the package into OUTPUT instead of running a script."""

    def __init__(self, fail_on: Optional[str] = None, produce: bool = True):
        self.calls: List[str] = []
        self.staged_files: Dict[str, List[str]] = {}
        self.envs: Dict[str, Dict[str, str]] = {}
        self.fail_on = fail_on
        self.produce = produce

    def build(self, pkg: Package, workdir: str, env: Dict[str, str]) -> None:
        self.calls.append(pkg.identifier)
        self.envs[pkg.identifier] = dict(env)
        files = []
        for base, _dirs, names in os.walk(workdir):
            for n in names:
                files.append(os.path.relpath(os.path.join(base, n), workdir))
        self.staged_files[pkg.identifier] = sorted(files)
        if pkg.identifier == self.fail_on:
            raise CommandError(["sh", f"{pkg.name}.SlackBuild"], 1)
        if self.produce:
            name = format_artifact_filename(pkg.name, pkg.version, pkg.arch, "1")
            Path(env["OUTPUT"], name).write_bytes(b"archive")


class FakeInstaller(Installer):
    """Maintains a package database under root the way pkgtools would."""

    def __init__(self):
        self.installed: List[str] = []
        self.removed: List[str] = []

    def _dbdir(self, root: str) -> Path:
        d = Path(root, "var/lib/pkgtools/packages")
        d.mkdir(parents=True, exist_ok=True)
        return d

    def install(self, archive: str, root: str) -> None:
        entry = os.path.basename(archive).rsplit(".", 1)[0]
        prgnam = entry.rsplit("-", 3)[0]
        dbdir = self._dbdir(root)
        for old in dbdir.iterdir():
            if old.name.rsplit("-", 3)[0] == prgnam:
                old.unlink()
        (dbdir / entry).write_text("PACKAGE NAME: " + entry + "\n")
        self.installed.append(entry)

    def remove(self, package_name: str, root: str) -> None:
        dbdir = self._dbdir(root)
        for old in dbdir.iterdir():
            if old.name == package_name:
                old.unlink()
        self.removed.append(package_name)


def mark_installed(root: Path, entry: str) -> None:
    dbdir = root / "var/lib/pkgtools/packages"
    dbdir.mkdir(parents=True, exist_ok=True)
    (dbdir / entry).write_text("PACKAGE NAME: " + entry + "\n")


def allow(action: str) -> None:
    return None


@pytest.fixture(autouse=True)
def _reset_squest_logger():
    yield
    root = logging.getLogger("squest")
    for h in list(root.handlers):
        root.removeHandler(h)
    root.setLevel(logging.NOTSET)


@pytest.fixture
def mirror(tmp_path: Path) -> Mirror:
    return Mirror(tmp_path / "repo")


@pytest.fixture
def cfg(tmp_path: Path, mirror: Mirror) -> Config:
    (tmp_path / "root").mkdir()
    return Config(
        tmpdir=str(tmp_path / "tmp"),
        cleanup=True,
        repo_root=str(mirror.root),
        root=str(tmp_path / "root"),
    )


@pytest.fixture
def index(mirror: Mirror) -> RepoIndex:
    return RepoIndex(str(mirror.root))


@pytest.fixture
def loader(index: RepoIndex) -> MetaLoader:
    return MetaLoader(index, arch="x86_64", cache=PackageCache())


@pytest.fixture
def dist(tmp_path: Path) -> Path:
    d = tmp_path / "dist"
    d.mkdir()
    return d
