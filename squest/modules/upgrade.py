# squest/modules/upgrade.py
# -*- coding: utf-8 -*-
"""
upgrade.py - update checking and upgrades for installed SBo packages

Responsibilities:
 - Compare the installed inventory against the mirror (descriptors re-read, never cached);
   packages no longer in the mirror are already dropped from the inventory
 - Upgrade every pending package, or a named subset, through BuildSystem.install
 - Fail-fast: the first failing upgrade stops the run

Versions are opaque: any difference between installed and available counts
as an update.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from squest.modules.buildsystem import BuildSystem
from squest.modules.errors import PackageNotFoundError
from squest.modules.logging import get_logger

logger = get_logger("upgrade")


@dataclass(frozen=True)
class Update:
    identifier: str
    installed: str
    available: str


class UpgradeManager:
    def __init__(self, buildsystem: BuildSystem):
        self.bs = buildsystem
        self.loader = buildsystem.loader
        self.pkgtool = buildsystem.pkgtool

    def check_updates(self) -> List[Update]:
        updates: List[Update] = []
        for identifier, installed in sorted(self.pkgtool.list_installed_managed_packages().items()):
            pkg = self.loader.load_package(identifier, bypass_cache=True)
            if pkg.version != installed:
                updates.append(Update(identifier, installed, pkg.version))
        return updates

    def upgrade(self, names: Optional[Iterable[str]] = None) -> List[Update]:
        pending = self.check_updates()
        if names is not None:
            wanted = set()
            for n in names:
                ident = self.loader.index.resolve_identifier(n)
                if ident is None:
                    raise PackageNotFoundError(n)
                wanted.add(ident)
            pending = [u for u in pending if u.identifier in wanted]
        if not pending:
            logger.info("all packages are up to date")
            return []
        for upd in pending:
            logger.info("upgrading %s: %s -> %s", upd.identifier, upd.installed, upd.available)
            self.bs.install(upd.identifier)
        return pending
