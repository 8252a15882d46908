"""Dependency queue ordering, deduplication and failure modes."""

from __future__ import annotations

import pytest

from squest.modules import meta as meta_mod
from squest.modules.errors import CircularDependencyError, PackageNotFoundError, UnresolvedDependencyError
from squest.modules.resolver import Resolver


def _queue(loader, name):
    return [p.identifier for p in Resolver(loader).resolve_build_queue(name)]


class TestOrdering:
    def test_leaf(self, mirror, loader) -> None:
        mirror.add("system/leaf")
        assert _queue(loader, "leaf") == ["system/leaf"]

    def test_single_dependency(self, mirror, loader) -> None:
        mirror.add("libraries/dep")
        mirror.add("system/app", requires="dep")
        assert _queue(loader, "app") == ["libraries/dep", "system/app"]

    def test_declared_order_post_order(self, mirror, loader) -> None:
        mirror.add("x/A", requires="E C B D")
        mirror.add("x/B", requires="D")
        for n in ("C", "D", "E"):
            mirror.add(f"x/{n}")
        assert _queue(loader, "A") == ["x/E", "x/C", "x/D", "x/B", "x/A"]

    def test_diamond_each_package_once_after_its_deps(self, mirror, loader) -> None:
        mirror.add("x/top", requires="left right")
        mirror.add("x/left", requires="base")
        mirror.add("x/right", requires="base")
        mirror.add("x/base")
        q = _queue(loader, "top")
        assert q == ["x/base", "x/left", "x/right", "x/top"]
        assert len(q) == len(set(q))

    def test_shared_dependency_parsed_once(self, mirror, loader, monkeypatch) -> None:
        mirror.add("x/top", requires="left right")
        mirror.add("x/left", requires="base")
        mirror.add("x/right", requires="base")
        mirror.add("x/base")
        parsed = []
        real = meta_mod.parse_descriptor_file
        monkeypatch.setattr(meta_mod, "parse_descriptor_file", lambda p: parsed.append(p) or real(p))
        _queue(loader, "top")
        assert sum(1 for p in parsed if p.endswith("base.info")) == 1

    def test_readme_marker_is_not_a_dependency(self, mirror, loader) -> None:
        mirror.add("x/app", requires="%README% lib")
        mirror.add("x/lib")
        assert _queue(loader, "app") == ["x/lib", "x/app"]


class TestFailures:
    def test_unknown_root(self, mirror, loader) -> None:
        with pytest.raises(PackageNotFoundError, match="nothing"):
            _queue(loader, "nothing")

    def test_unresolved_dependency_names_both(self, mirror, loader) -> None:
        mirror.add("x/app", requires="ghost")
        with pytest.raises(UnresolvedDependencyError) as exc:
            _queue(loader, "app")
        assert exc.value.name == "ghost"
        assert exc.value.required_by == "x/app"
        assert "ghost" in str(exc.value) and "x/app" in str(exc.value)

    def test_cycle_through_root(self, mirror, loader) -> None:
        mirror.add("x/a", requires="b")
        mirror.add("x/b", requires="a")
        with pytest.raises(CircularDependencyError) as exc:
            _queue(loader, "a")
        assert exc.value.cycle == ["x/a", "x/b", "x/a"]
        assert "x/a -> x/b -> x/a" in str(exc.value)

    def test_cycle_below_root(self, mirror, loader) -> None:
        mirror.add("x/top", requires="a")
        mirror.add("x/a", requires="b")
        mirror.add("x/b", requires="a")
        with pytest.raises(CircularDependencyError) as exc:
            _queue(loader, "top")
        assert exc.value.cycle == ["x/a", "x/b", "x/a"]

    def test_self_dependency(self, mirror, loader) -> None:
        mirror.add("x/selfish", requires="selfish")
        with pytest.raises(CircularDependencyError):
            _queue(loader, "selfish")
