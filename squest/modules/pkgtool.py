# squest/modules/pkgtool.py
"""
pkgtool.py - install, remove and inventory of Slackware packages

Features:
- Installer capability with a pkgtools-backed implementation (upgradepkg / removepkg)
- Alternate root support through the ROOT environment variable pkgtools already honour
- Inventory of SBo-built packages from the package database, decoded against the mirror
- Optional removal of the installed archive (CLEANUP)
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from squest.modules.config import Config
from squest.modules.errors import FileAccessError
from squest.modules.logging import get_logger
from squest.modules.pkgname import TAG, parse_artifact_filename
from squest.modules.repo import RepoIndex
from squest.modules.sysutil import list_dir, remove_file, require_root, run_command

logger = get_logger("pkgtool")

PKGDB_DIRS = ("var/lib/pkgtools/packages", "var/log/packages")


@dataclass(frozen=True)
class InstalledPackage:
    identifier: str
    version: str
    entry: str              # package database entry, e.g. htop-3.2.1-x86_64-1_SBo


# -----------------------
# Installer capability
# -----------------------
class Installer(ABC):
    @abstractmethod
    def install(self, archive: str, root: str) -> None:
        """Install or upgrade from archive, replacing any other version of the same package."""

    @abstractmethod
    def remove(self, package_name: str, root: str) -> None:
        """Remove the installed package called package_name."""


class SlackwareInstaller(Installer):
    def _env(self, root: str) -> Dict[str, str]:
        env = dict(os.environ)
        env["ROOT"] = root
        return env

    def install(self, archive: str, root: str) -> None:
        run_command(["upgradepkg", "--install-new", "--reinstall", archive], env=self._env(root))

    def remove(self, package_name: str, root: str) -> None:
        run_command(["removepkg", package_name], env=self._env(root))


def package_db_dir(root: str) -> Optional[str]:
    for rel in PKGDB_DIRS:
        path = os.path.join(root, rel)
        if os.path.isdir(path):
            return path
    return None


# -----------------------
# PackageTool
# -----------------------
class PackageTool:
    def __init__(self, cfg: Config, index: RepoIndex, installer: Optional[Installer] = None,
                 privilege_check: Callable[[str], None] = require_root):
        self.cfg = cfg
        self.index = index
        self.installer = installer or SlackwareInstaller()
        self.privilege_check = privilege_check

    def install_artifact(self, path: str) -> None:
        self.privilege_check(f"install {os.path.basename(path)}")
        if not os.path.isfile(path):
            raise FileAccessError("install", path, "No such file or directory")
        logger.info("installing %s (root=%s)", os.path.basename(path), self.cfg.root)
        self.installer.install(path, self.cfg.root)
        if self.cfg.cleanup:
            remove_file(path)

    def remove_artifact(self, package_name: str) -> None:
        self.privilege_check(f"remove {package_name}")
        logger.info("removing %s (root=%s)", package_name, self.cfg.root)
        self.installer.remove(package_name, self.cfg.root)

    def list_installed_entries(self) -> Dict[str, InstalledPackage]:
        """identifier -> InstalledPackage for every SBo package the mirror knows."""
        dbdir = package_db_dir(self.cfg.root)
        if dbdir is None:
            logger.debug("no package database under %s", self.cfg.root)
            return {}
        installed: Dict[str, InstalledPackage] = {}
        for entry in list_dir(dbdir):
            if TAG not in entry:
                continue
            decoded = parse_artifact_filename(entry, self.index)
            if decoded is None:
                logger.debug("skipping %s: not in the mirror", entry)
                continue
            installed[decoded.identifier] = InstalledPackage(decoded.identifier, decoded.version, entry)
        return installed

    def list_installed_managed_packages(self) -> Dict[str, str]:
        return {ident: p.version for ident, p in self.list_installed_entries().items()}
