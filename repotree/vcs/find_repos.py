"""Local repository discovery."""

import logging
import os
from collections import deque
from pathlib import Path
from typing import List, Sequence, Union

from ..errors import ConfigError, LocalScanError, VCSError
from .local_repo import is_local_repo_root


def find_repos_in_dir(root: Union[str, Path]) -> List[Path]:
    """
    Breadth-first walk below root collecting git working copy roots.

    A directory classified as a repository root is not descended into.
    Symbolic links are never followed, so a link to a clone is not
    reported as a second repository.
    """
    root = Path(root)
    logger = logging.getLogger('repotree.vcs.find_repos')

    try:
        if is_local_repo_root(root):
            return [root]

        repos: List[Path] = []
        dir_queue = deque([root])

        while dir_queue:
            dir_path = dir_queue.popleft()
            try:
                children = sorted(
                    p for p in dir_path.iterdir() if p.is_dir() and not p.is_symlink()
                )
            except OSError as e:
                raise LocalScanError(f"{dir_path}: {e}", context={'path': str(dir_path)}) from e

            for child in children:
                if is_local_repo_root(child):
                    logger.debug(f"Found repository at {child}")
                    repos.append(child)
                else:
                    dir_queue.append(child)

        return repos

    except VCSError as e:
        raise LocalScanError(str(e), context=e.context) from e


def resolve_inside_root(sync_root: Path, work_dir: Path, target: str) -> Path:
    """Absolute path of target, refusing anything outside sync_root."""
    target_path = Path(target)
    if not target_path.is_absolute():
        target_path = work_dir / target_path
    target_path = Path(os.path.normpath(str(target_path)))

    try:
        target_path.relative_to(sync_root)
    except ValueError:
        raise ConfigError(f"arg {target!r} points outside sync root {str(sync_root)!r}")

    return target_path


def find_local_repos(sync_root: Path, work_dir: Path, targets: Sequence[str] = ()) -> List[Path]:
    """
    Find local repositories under the given targets, or the whole sync root.

    Targets are interpreted relative to work_dir and must stay inside
    sync_root. Missing targets are skipped. The result is de-duplicated and
    sorted so downstream matching is reproducible.
    """
    logger = logging.getLogger('repotree.vcs.find_repos')

    abs_targets = [
        resolve_inside_root(sync_root, work_dir, target) for target in targets
    ] or [sync_root]

    logger.info("Finding local repositories...")
    repo_set = set()
    for target in abs_targets:
        if not target.exists():
            logger.debug(f"Skipping missing target {target}")
            continue
        repo_set.update(find_repos_in_dir(target))

    repos = sorted(repo_set)
    logger.info(f"Found {len(repos)} local repositories")
    return repos
