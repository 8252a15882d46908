# squest/modules/resolver.py
"""
resolver.py - dependency resolver

Features:
- Depth-first walk over REQUIRES in declared order
- Deduplicated build queue in post-order: every package after all of its dependencies
- Cycle detection along the current traversal path (root included)
- Unresolvable dependencies reported together with the package that requires them
"""

from __future__ import annotations

from typing import List, Set

from squest.modules.errors import (CircularDependencyError, PackageNotFoundError,
                                   UnresolvedDependencyError)
from squest.modules.logging import get_logger
from squest.modules.meta import MetaLoader, Package

logger = get_logger("resolver")


class Resolver:
    def __init__(self, loader: MetaLoader):
        self.loader = loader

    def resolve_build_queue(self, root: str) -> List[Package]:
        """Return the packages to build for `root`, dependencies first, root last."""
        pkg = self.loader.load_package(root)
        queue: List[Package] = []
        visited: Set[str] = set()
        self._visit(pkg, [], visited, queue)
        logger.debug("queue for %s: %s", pkg.identifier, " ".join(p.identifier for p in queue))
        return queue

    def _visit(self, pkg: Package, path: List[str], visited: Set[str], queue: List[Package]) -> None:
        if pkg.identifier in path:
            start = path.index(pkg.identifier)
            raise CircularDependencyError(path[start:] + [pkg.identifier])
        if pkg.identifier in visited:
            return
        path.append(pkg.identifier)
        for dep in pkg.requires:
            try:
                child = self.loader.load_package(dep)
            except PackageNotFoundError:
                raise UnresolvedDependencyError(dep, pkg.identifier) from None
            self._visit(child, path, visited, queue)
        path.pop()
        visited.add(pkg.identifier)
        queue.append(pkg)
