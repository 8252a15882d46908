"""Squest - a package manager for SlackBuilds.org build scripts."""

__version__ = "1.0.0"
