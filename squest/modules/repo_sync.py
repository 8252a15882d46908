# squest/modules/repo_sync.py
"""
repo_sync.py - keep the local SlackBuilds mirror current

Features:
- RepoSync capability; GitRepoSync is the git-backed implementation
- Shallow clone of the configured branch when the mirror is absent
- fetch + checkout + hard reset to origin/<branch> when it is present
- The command runner is injectable so tests never touch the network
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from squest.modules.config import Config
from squest.modules.errors import FileAccessError
from squest.modules.logging import get_logger
from squest.modules.sysutil import ensure_dir, list_dir, run_command

logger = get_logger("repo_sync")

Runner = Callable[..., object]


class RepoSync(ABC):
    @abstractmethod
    def sync(self) -> str:
        """Bring the mirror up to date and return its path."""


class GitRepoSync(RepoSync):
    def __init__(self, cfg: Config, runner: Optional[Runner] = None):
        self.cfg = cfg
        self.runner = runner or run_command

    def _git(self, args: List[str], cwd: Optional[str] = None) -> None:
        self.runner(["git"] + args, cwd=cwd)

    def _ensure_clone(self) -> str:
        repo_dir = self.cfg.repo_root
        url = self.cfg.repo_git_url
        branch = self.cfg.repo_git_branch
        if os.path.isdir(os.path.join(repo_dir, ".git")):
            logger.info("updating %s (%s)", repo_dir, branch)
            self._git(["fetch", "origin", branch], cwd=repo_dir)
            self._git(["checkout", branch], cwd=repo_dir)
            self._git(["reset", "--hard", f"origin/{branch}"], cwd=repo_dir)
            return repo_dir
        if os.path.isdir(repo_dir) and list_dir(repo_dir):
            raise FileAccessError("sync", repo_dir, "directory exists and is not a git checkout")
        logger.info("cloning %s (%s) into %s", url, branch, repo_dir)
        ensure_dir(os.path.dirname(repo_dir) or ".")
        self._git(["clone", "--depth", "1", "--branch", branch, url, repo_dir])
        return repo_dir

    def sync(self) -> str:
        return self._ensure_clone()
