#!/usr/bin/env python3
# squest/cli.py
"""
Squest CLI - SlackBuilds.org package manager

How it works:
- loads the configuration once and hands it to every component
- each subcommand delegates to the module that owns the operation
- rich for tables and status lines, PyYAML for machine-readable `info --yaml`
- every SquestError is reported as a single "squest: error:" line (exit 1);
  SIGINT/SIGTERM abort the current operation (exit 130)
"""

from __future__ import annotations

import sys
import signal
import argparse
from typing import Callable, List, Optional

import requests
import yaml
from rich.console import Console
from rich.table import Table

from squest import __version__
from squest.modules import config as config_mod
from squest.modules.buildsystem import BuildSystem, Builder
from squest.modules.errors import AbortedError, PackageNotFoundError, SquestError
from squest.modules.fetcher import Fetcher
from squest.modules.logging import configure_logging, get_logger
from squest.modules.meta import MetaLoader, PackageCache
from squest.modules.pkgtool import Installer, PackageTool
from squest.modules.repo import RepoIndex
from squest.modules.repo_sync import GitRepoSync, RepoSync
from squest.modules.resolver import Resolver
from squest.modules.sysutil import require_root
from squest.modules.upgrade import UpgradeManager

logger = get_logger("cli")

console = Console()
err_console = Console(stderr=True)


# -----------------------
# Small pretty helpers
# -----------------------
def print_ok(msg: str):
    console.print(f"[bold green]✔[/] {msg}", highlight=False, soft_wrap=True)


def print_warn(msg: str):
    console.print(f"[bold yellow]![/] {msg}", highlight=False, soft_wrap=True)


def print_err(msg: str):
    err_console.print(f"squest: error: {msg}", style="bold red", markup=False, highlight=False, soft_wrap=True)


def print_info(msg: str):
    console.print(f"[cyan]{msg}[/cyan]", highlight=False, soft_wrap=True)


def _set_color(enabled: bool):
    global console, err_console
    console = Console(no_color=not enabled)
    err_console = Console(stderr=True, no_color=not enabled)


# -----------------------
# CLI Implementation
# -----------------------
class SquestCLI:
    def __init__(self, cfg: config_mod.Config, arch: Optional[str] = None, builder: Optional[Builder] = None,
                 installer: Optional[Installer] = None, syncer: Optional[RepoSync] = None,
                 session: Optional[requests.Session] = None,
                 privilege_check: Callable[[str], None] = require_root):
        self.cfg = cfg
        self.index = RepoIndex(cfg.repo_root)
        self.loader = MetaLoader(self.index, arch=arch, cache=PackageCache())
        self.pkgtool = PackageTool(cfg, self.index, installer=installer, privilege_check=privilege_check)
        self.buildsystem = BuildSystem(cfg, self.loader, fetcher=Fetcher(session), builder=builder,
                                       pkgtool=self.pkgtool, privilege_check=privilege_check)
        self.upgrader = UpgradeManager(self.buildsystem)
        self.syncer = syncer or GitRepoSync(cfg)

    def update(self) -> int:
        path = self.syncer.sync()
        print_ok(f"mirror up to date: {path}")
        return 0

    def search(self, term: str) -> int:
        hits = self.index.search(term)
        if not hits:
            print_warn(f"no packages match '{term}'")
            return 0
        for ident in hits:
            console.print(ident, highlight=False, soft_wrap=True)
        return 0

    def info(self, name: str, as_yaml: bool = False) -> int:
        pkg = self.loader.load_package(name)
        if as_yaml:
            sys.stdout.write(yaml.safe_dump(pkg.to_dict(), sort_keys=False, default_flow_style=False))
            return 0
        table = Table(title=pkg.identifier, show_header=False)
        table.add_column("field", style="bold")
        table.add_column("value")
        table.add_row("version", pkg.version)
        table.add_row("homepage", pkg.homepage)
        table.add_row("maintainer", f"{pkg.maintainer_name} <{pkg.maintainer_email}>")
        table.add_row("requires", " ".join(pkg.requires) or "-")
        table.add_row("sources", "\n".join(pkg.effective_download_urls) or "-")
        if pkg.unsupported_on_arch:
            table.add_row("arch", f"unsupported on {pkg.arch}")
        console.print(table)
        if pkg.has_extra_undeclared_deps:
            print_warn(f"see {pkg.readme_file} for additional dependencies")
        return 0

    def deps(self, name: str) -> int:
        for pkg in Resolver(self.loader).resolve_build_queue(name):
            console.print(f"{pkg.identifier} {pkg.version}", highlight=False, soft_wrap=True)
        return 0

    def build(self, name: str) -> int:
        pkg = self.loader.load_package(name)
        path = self.buildsystem.build_artifact(pkg)
        print_ok(f"built {path}")
        return 0

    def install(self, name: str, rebuild: bool = False) -> int:
        done = self.buildsystem.install(name, rebuild=rebuild)
        for pkg in done:
            print_ok(f"installed {pkg.identifier} {pkg.version}")
        return 0

    def remove(self, name: str) -> int:
        ident = self.index.resolve_identifier(name)
        installed = self.pkgtool.list_installed_entries().get(ident) if ident else None
        if installed is None:
            raise PackageNotFoundError(name)
        self.pkgtool.remove_artifact(installed.entry)
        print_ok(f"removed {ident}")
        return 0

    def installed(self) -> int:
        inv = self.pkgtool.list_installed_managed_packages()
        if not inv:
            print_info("no SBo packages installed")
            return 0
        table = Table()
        table.add_column("package")
        table.add_column("version")
        for ident in sorted(inv):
            table.add_row(ident, inv[ident])
        console.print(table)
        return 0

    def upgrade(self, names: Optional[List[str]] = None, check_only: bool = False) -> int:
        if check_only:
            updates = self.upgrader.check_updates()
            if not updates:
                print_info("all packages are up to date")
                return 0
            table = Table()
            table.add_column("package")
            table.add_column("installed")
            table.add_column("available")
            for u in updates:
                table.add_row(u.identifier, u.installed, u.available)
            console.print(table)
            return 0
        for u in self.upgrader.upgrade(names or None):
            print_ok(f"upgraded {u.identifier} {u.installed} -> {u.available}")
        return 0


# -----------------------
# Signals
# -----------------------
def _abort(signum, frame):
    raise AbortedError(signal.Signals(signum).name, signum)


def install_signal_handlers():
    """Route SIGINT/SIGTERM to AbortedError; returns the previous handlers."""
    return {s: signal.signal(s, _abort) for s in (signal.SIGINT, signal.SIGTERM)}


def restore_signal_handlers(previous):
    for s, h in previous.items():
        signal.signal(s, h)


# -----------------------
# Argparse wiring
# -----------------------
def make_parser():
    ap = argparse.ArgumentParser(prog="squest", description="SlackBuilds.org package manager")
    ap.add_argument("--config", help="configuration file (default: $SQUEST_CONFIG or /etc/squest.conf)")
    ap.add_argument("--no-color", action="store_true", help="disable colored output")
    ap.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = ap.add_subparsers(dest="cmd")

    sub.add_parser("update", help="sync the SlackBuilds mirror")

    p_search = sub.add_parser("search", help="find packages by name")
    p_search.add_argument("term")

    p_info = sub.add_parser("info", help="show package metadata")
    p_info.add_argument("package")
    p_info.add_argument("--yaml", action="store_true", help="print as YAML")

    p_deps = sub.add_parser("deps", help="show the build queue")
    p_deps.add_argument("package")

    p_build = sub.add_parser("build", help="build a package archive without installing")
    p_build.add_argument("package")

    p_install = sub.add_parser("install", help="build and install a package with its dependencies")
    p_install.add_argument("package")
    p_install.add_argument("--rebuild", action="store_true", help="rebuild dependencies already installed")

    p_remove = sub.add_parser("remove", help="remove an installed package")
    p_remove.add_argument("package")

    sub.add_parser("installed", help="list installed SBo packages")

    p_upgrade = sub.add_parser("upgrade", help="upgrade installed packages")
    p_upgrade.add_argument("packages", nargs="*")
    p_upgrade.add_argument("--check", action="store_true", help="only list pending updates")

    return ap


def dispatch(cli: SquestCLI, args) -> int:
    if args.cmd == "update":
        return cli.update()
    if args.cmd == "search":
        return cli.search(args.term)
    if args.cmd == "info":
        return cli.info(args.package, as_yaml=args.yaml)
    if args.cmd == "deps":
        return cli.deps(args.package)
    if args.cmd == "build":
        return cli.build(args.package)
    if args.cmd == "install":
        return cli.install(args.package, rebuild=args.rebuild)
    if args.cmd == "remove":
        return cli.remove(args.package)
    if args.cmd == "installed":
        return cli.installed()
    if args.cmd == "upgrade":
        return cli.upgrade(args.packages, check_only=args.check)
    raise ValueError(f"unknown command {args.cmd}")


def main(argv: Optional[List[str]] = None) -> int:
    argv = argv if argv is not None else sys.argv[1:]
    parser = make_parser()
    args = parser.parse_args(argv)
    if not args.cmd:
        parser.print_help()
        return 1
    _set_color(not args.no_color)

    previous = install_signal_handlers()
    try:
        cfg = config_mod.load(args.config)
        configure_logging("DEBUG" if args.verbose else cfg.log_level, cfg.log_file,
                          color=False if args.no_color else None)
        return dispatch(SquestCLI(cfg), args)
    except AbortedError as e:
        print_err(str(e))
        return 130
    except KeyboardInterrupt:
        print_err("interrupted")
        return 130
    except SquestError as e:
        logger.debug("fatal: %r", e)
        print_err(str(e))
        return 1
    finally:
        restore_signal_handlers(previous)


if __name__ == "__main__":
    sys.exit(main())
