# squest/modules/buildsystem.py
# -*- coding: utf-8 -*-
"""
buildsystem.py - build engine for Squest

Main API:
  bs = BuildSystem(cfg, loader, pkgtool=pkgtool)
  path = bs.build_artifact(pkg)        # stage, run the SlackBuild, locate the archive
  done = bs.install("foo")             # resolve, build and install the whole queue

Behaviour:
  - Staging: a fresh directory under TMPDIR holding a copy of the descriptor
    directory plus every verified source download.
  - The build script runs through a Builder (default SlackBuildBuilder: sh <prgnam>.SlackBuild).
  - Fail-fast: the first error aborts the remaining queue.
  - CLEANUP=true removes staging directories on every exit path and the
    archive after installation.
"""

from __future__ import annotations

import os
import tempfile
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from squest.modules.config import Config
from squest.modules.errors import ArtifactNotFoundError, UnsupportedArchError
from squest.modules.fetcher import Fetcher
from squest.modules.logging import get_logger
from squest.modules.meta import MetaLoader, Package
from squest.modules.pkgname import parse_artifact_filename
from squest.modules.pkgtool import PackageTool
from squest.modules.resolver import Resolver
from squest.modules.sysutil import copy_tree, ensure_dir, list_dir, remove_tree, require_root, run_command

logger = get_logger("buildsystem")


# --- Builder capability ---
class Builder(ABC):
    @abstractmethod
    def build(self, pkg: Package, workdir: str, env: Dict[str, str]) -> None:
        """Run pkg's build script inside workdir; raise CommandError on failure."""


class SlackBuildBuilder(Builder):
    def build(self, pkg: Package, workdir: str, env: Dict[str, str]) -> None:
        script = os.path.basename(pkg.build_script_file)
        run_command(["sh", script], cwd=workdir, env=env)


def assemble_env(pkg: Package, cfg: Config) -> Dict[str, str]:
    env = dict(os.environ)
    env.update({
        "VERSION": pkg.version,
        "ARCH": pkg.arch,
        "OUTPUT": cfg.output_dir,
        "TMP": cfg.tmpdir,
    })
    return env


# --- main BuildSystem class ---
class BuildSystem:
    def __init__(self, cfg: Config, loader: MetaLoader, fetcher: Optional[Fetcher] = None,
                 builder: Optional[Builder] = None, pkgtool: Optional[PackageTool] = None,
                 privilege_check: Callable[[str], None] = require_root):
        self.cfg = cfg
        self.loader = loader
        self.fetcher = fetcher or Fetcher()
        self.builder = builder or SlackBuildBuilder()
        self.pkgtool = pkgtool or PackageTool(cfg, loader.index, privilege_check=privilege_check)
        self.privilege_check = privilege_check

    def prepare_workdir(self, pkg: Package) -> str:
        ensure_dir(self.cfg.tmpdir)
        return tempfile.mkdtemp(prefix=f"squest-{pkg.name}-", dir=self.cfg.tmpdir)

    def cleanup(self, workdir: str) -> None:
        if self.cfg.cleanup:
            logger.debug("removing %s", workdir)
            remove_tree(workdir)
        else:
            logger.info("keeping staging directory %s", workdir)

    def stage_package(self, pkg: Package) -> str:
        """Return a staging directory holding pkg's descriptor files and verified sources."""
        if pkg.unsupported_on_arch:
            raise UnsupportedArchError(pkg.identifier, pkg.arch)
        workdir = self.prepare_workdir(pkg)
        try:
            copy_tree(pkg.directory, workdir)
            for url, md5 in pkg.sources():
                self.fetcher.fetch(url, md5, workdir)
        except BaseException:
            self.cleanup(workdir)
            raise
        logger.debug("staged %s in %s", pkg.identifier, workdir)
        return workdir

    @contextmanager
    def staged(self, pkg: Package) -> Iterator[str]:
        workdir = self.stage_package(pkg)
        try:
            yield workdir
        finally:
            self.cleanup(workdir)

    def find_artifact(self, pkg: Package) -> str:
        outdir = self.cfg.output_dir
        candidates: List[str] = []
        if os.path.isdir(outdir):
            for entry in list_dir(outdir):
                decoded = parse_artifact_filename(entry, self.loader.index)
                if decoded is None:
                    continue
                if decoded.identifier == pkg.identifier and decoded.version == pkg.version:
                    candidates.append(os.path.join(outdir, entry))
        if not candidates:
            raise ArtifactNotFoundError(pkg.identifier, pkg.version, outdir)
        return os.path.abspath(max(candidates, key=os.path.getmtime))

    def build_artifact(self, pkg: Package) -> str:
        self.privilege_check(f"build {pkg.identifier}")
        logger.info("building %s %s", pkg.identifier, pkg.version)
        ensure_dir(self.cfg.output_dir)
        with self.staged(pkg) as workdir:
            self.builder.build(pkg, workdir, assemble_env(pkg, self.cfg))
        path = self.find_artifact(pkg)
        logger.info("built %s", os.path.basename(path))
        return path

    def install(self, name: str, rebuild: bool = False) -> List[Package]:
        """
        Resolve name's dependency queue, then build and install each package in
        order. Dependencies already installed at the queued version are skipped
        unless rebuild is set; the requested package itself is always built.
        Returns the packages that were installed.
        """
        self.privilege_check(f"install {name}")
        queue = Resolver(self.loader).resolve_build_queue(name)
        for pkg in queue:
            if pkg.has_extra_undeclared_deps:
                logger.warning("%s lists optional or undeclared dependencies in %s", pkg.identifier, pkg.readme_file)
        installed = self.pkgtool.list_installed_managed_packages()
        done: List[Package] = []
        for pos, pkg in enumerate(queue):
            is_target = pos == len(queue) - 1
            if not rebuild and not is_target and installed.get(pkg.identifier) == pkg.version:
                logger.info("%s %s already installed, skipping", pkg.identifier, pkg.version)
                continue
            artifact = self.build_artifact(pkg)
            self.pkgtool.install_artifact(artifact)
            done.append(pkg)
        return done
