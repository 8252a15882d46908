# squest/modules/repo.py
"""
repo.py - index of the local SlackBuilds mirror

The mirror is laid out as <root>/<category>/<prgnam>/. Dot-directories
(.git and friends) are version-control metadata and never count as
categories or packages.
"""

from __future__ import annotations

import os
from typing import List, Optional

from squest.modules.sysutil import list_dir
from squest.modules.logging import get_logger

logger = get_logger("repo")


def _visible_dirs(path: str) -> List[str]:
    return [n for n in list_dir(path) if not n.startswith(".") and os.path.isdir(os.path.join(path, n))]


class RepoIndex:
    """Read-only view over the descriptor mirror rooted at `root`."""

    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def list_categories(self) -> List[str]:
        return _visible_dirs(self.root)

    def list_packages(self, category: str) -> List[str]:
        return _visible_dirs(os.path.join(self.root, category))

    def list_all_package_identifiers(self) -> List[str]:
        out: List[str] = []
        for cat in self.list_categories():
            out.extend(f"{cat}/{name}" for name in self.list_packages(cat))
        return out

    def package_dir(self, identifier: str) -> str:
        return os.path.join(self.root, identifier)

    def resolve_identifier(self, name: Optional[str]) -> Optional[str]:
        """
        Map a bare or qualified package name to "category/name".

        A qualified name must exist exactly as given. A bare name is looked up
        in every category; when several categories carry it, the first in
        sorted category order wins.
        """
        if name is None:
            return None
        name = name.strip()
        if not name:
            return None
        if "/" in name:
            parts = name.split("/")
            if len(parts) != 2 or not parts[0] or not parts[1]:
                return None
            if parts[0].startswith(".") or parts[1].startswith("."):
                return None
            return name if os.path.isdir(os.path.join(self.root, name)) else None
        if name.startswith("."):
            return None
        for cat in self.list_categories():
            if os.path.isdir(os.path.join(self.root, cat, name)):
                return f"{cat}/{name}"
        return None

    def search(self, term: str) -> List[str]:
        """Identifiers whose package name contains term, case-insensitively."""
        needle = term.strip().lower()
        return [ident for ident in self.list_all_package_identifiers() if needle in ident.split("/", 1)[1].lower()]
