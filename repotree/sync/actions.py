"""Planned actions and their execution."""

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from ..config import SyncOptions
from ..errors import VCSError
from ..vcs import LocalRepo, clone_repo
from .branch_sync import sync_repo
from .events import ActionEvent, EventKind


@dataclass(frozen=True)
class Clone:
    url: str
    path: Path


@dataclass(frozen=True)
class MoveAndSync:
    orig_path: Path
    dest_path: Path
    default_tracking_branch: str


@dataclass(frozen=True)
class Sync:
    path: Path
    default_tracking_branch: str


@dataclass(frozen=True)
class Remove:
    path: Path
    reason: str


Action = Union[Clone, MoveAndSync, Sync, Remove]


def action_path(action: Action) -> Path:
    """The local path an action starts from."""
    if isinstance(action, MoveAndSync):
        return action.orig_path
    if isinstance(action, (Clone, Sync, Remove)):
        return action.path
    raise TypeError(f"unknown action type: {type(action).__name__}")


def action_to_dict(action: Action) -> Dict[str, Any]:
    """Plain representation of an action, for listings and tool output."""
    if isinstance(action, Clone):
        return {"action": "clone", "url": action.url, "path": str(action.path)}
    if isinstance(action, MoveAndSync):
        return {
            "action": "move_and_sync",
            "orig_path": str(action.orig_path),
            "dest_path": str(action.dest_path),
            "default_tracking_branch": action.default_tracking_branch,
        }
    if isinstance(action, Sync):
        return {
            "action": "sync",
            "path": str(action.path),
            "default_tracking_branch": action.default_tracking_branch,
        }
    if isinstance(action, Remove):
        return {"action": "remove", "path": str(action.path), "reason": action.reason}
    raise TypeError(f"unknown action type: {type(action).__name__}")


class ActionExecutor:
    """
    Runs single actions and reports each outcome as an ActionEvent.

    Failures never propagate: a failing action yields a FAILED event so the
    scheduler can decide whether to keep going.
    """

    def __init__(
        self,
        options: SyncOptions,
        work_dir: Optional[Path] = None,
        repo_factory: Callable[[Path], LocalRepo] = LocalRepo,
        clone_func: Callable[[str, Path], None] = clone_repo,
    ):
        self.options = options
        self.work_dir = work_dir
        self.repo_factory = repo_factory
        self.clone_func = clone_func
        self.logger = logging.getLogger('repotree.sync.actions')

    def display_name(self, path: Path) -> str:
        """Path as shown to the user, relative to the working directory when possible."""
        if self.work_dir is None:
            return str(path)
        return os.path.relpath(path, self.work_dir)

    def execute(self, action: Action) -> ActionEvent:
        if isinstance(action, Clone):
            return self._clone(action)
        if isinstance(action, MoveAndSync):
            return self._move_and_sync(action)
        if isinstance(action, Sync):
            return self._sync(action)
        if isinstance(action, Remove):
            return self._remove(action)
        raise TypeError(f"unknown action type: {type(action).__name__}")

    def _clone(self, action: Clone) -> ActionEvent:
        name = self.display_name(action.path)

        if action.path.exists():
            return ActionEvent(
                EventKind.FAILED, name,
                f"would clone from {action.url}, but {name} already exists"
            )

        if self.options.dry_run:
            return ActionEvent(EventKind.CLONED, name, f"would clone from {action.url}")

        try:
            action.path.parent.mkdir(parents=True, exist_ok=True)
            self.clone_func(action.url, action.path)
        except VCSError as e:
            return ActionEvent(EventKind.FAILED, name, e.message)
        except OSError as e:
            return ActionEvent(EventKind.FAILED, name, str(e))

        self.logger.debug(f"Cloned {action.url} into {action.path}")
        return ActionEvent(EventKind.CLONED, name, f"cloned from {action.url}")

    def _move_and_sync(self, action: MoveAndSync) -> ActionEvent:
        orig_name = self.display_name(action.orig_path)
        dest_name = self.display_name(action.dest_path)

        if action.dest_path.exists():
            return ActionEvent(
                EventKind.FAILED, orig_name,
                f"would move to {dest_name}, but it already exists"
            )

        if self.options.dry_run:
            return ActionEvent(EventKind.UPDATED, dest_name, f"would move to {dest_name} and sync")

        try:
            action.dest_path.parent.mkdir(parents=True, exist_ok=True)
            os.rename(action.orig_path, action.dest_path)
        except OSError as e:
            return ActionEvent(EventKind.FAILED, orig_name, str(e))

        self.logger.debug(f"Moved {action.orig_path} to {action.dest_path}")
        return sync_repo(self.repo_factory(action.dest_path), dest_name, action.default_tracking_branch)

    def _sync(self, action: Sync) -> ActionEvent:
        name = self.display_name(action.path)

        if self.options.dry_run:
            return ActionEvent(EventKind.UPDATED, name, "would sync")

        return sync_repo(self.repo_factory(action.path), name, action.default_tracking_branch)

    def _remove(self, action: Remove) -> ActionEvent:
        name = self.display_name(action.path)

        if not self.options.prune:
            if self.options.dry_run:
                message = f"would not remove without --prune: {action.reason}"
            else:
                message = f"keeping extra repo: {action.reason} -- use --prune to remove it"
            return ActionEvent(EventKind.IGNORED, name, message)

        if self.options.dry_run:
            return ActionEvent(EventKind.REMOVED, name, f"would remove: {action.reason}")

        try:
            shutil.rmtree(action.path)
        except OSError as e:
            return ActionEvent(EventKind.FAILED, name, str(e))

        self.logger.debug(f"Removed {action.path}")
        return ActionEvent(EventKind.REMOVED, name, "removed")
