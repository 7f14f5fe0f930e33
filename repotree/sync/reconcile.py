"""
Reconciliation: match local repositories to desired ones and plan actions.

Local repositories are processed in path order. Each one claims at most one
desired repository by remote URL; a claimed repository is no longer available
to later local repositories. Whatever is left unclaimed at the end is cloned.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..errors import AmbiguousMatchError
from ..vcs import LocalRepo, RemoteURLs, comparable_url
from .actions import Action, Clone, MoveAndSync, Remove, Sync
from .desired import NO_MATCH_REASON, DesiredRepo, IdealRepos, RejectionReasons

PREFERRED_REMOTE = "origin"


def _claims(
    remotes: Mapping[str, RemoteURLs],
    remaining: Mapping[str, DesiredRepo],
    rejections: Mapping[str, str],
) -> Tuple[Dict[str, str], Optional[str]]:
    """
    Find which remaining desired entries the remotes point at.

    Returns:
        (comparable URL -> remote name, last rejection reason seen or None)
    """
    claimed: Dict[str, str] = {}
    reason = None

    for name in sorted(remotes):
        fetch_url = remotes[name].fetch_url
        if not fetch_url:
            continue
        key = comparable_url(fetch_url)

        if key in remaining:
            if key not in claimed or name == PREFERRED_REMOTE:
                claimed[key] = name
        if key in rejections:
            reason = rejections[key]

    return claimed, reason


def claim_local_repo(
    path: Path,
    remotes: Mapping[str, RemoteURLs],
    remaining: Mapping[str, DesiredRepo],
    rejections: Mapping[str, str],
) -> Tuple[Action, Dict[str, DesiredRepo]]:
    """
    Decide what to do with one local repository.

    Returns:
        (action, remaining desired repos after this repository's claim); the
        input mapping is never modified

    Raises:
        AmbiguousMatchError: the remotes point at more than one desired repo
    """
    claimed, reason = _claims(remotes, remaining, rejections)

    if not claimed:
        return Remove(path=path, reason=reason or NO_MATCH_REASON), dict(remaining)

    if len(claimed) > 1:
        raise AmbiguousMatchError(
            f"{path} matches multiple remote repos: {', '.join(sorted(claimed))}",
            context={'repository_path': str(path)}
        )

    (key, remote_name), = claimed.items()
    ideal = remaining[key]
    left = {k: v for k, v in remaining.items() if k != key}

    default_tracking_branch = f"{remote_name}/{ideal.default_branch}"
    if Path(path) != ideal.path:
        return MoveAndSync(
            orig_path=path,
            dest_path=ideal.path,
            default_tracking_branch=default_tracking_branch,
        ), left

    return Sync(path=path, default_tracking_branch=default_tracking_branch), left


def build_action_plan(
    local_repo_paths: Sequence[Path],
    ideal_repos: IdealRepos,
    rejections: RejectionReasons,
    repo_factory: Callable[[Path], LocalRepo] = LocalRepo,
) -> List[Action]:
    """
    Build the full action list.

    Raises:
        AmbiguousMatchError: before returning any action, when some local
            repository matches several desired ones
        VCSError: reading a local repository's remotes failed
    """
    logger = logging.getLogger('repotree.sync.reconcile')

    actions: List[Action] = []
    remaining: Dict[str, DesiredRepo] = dict(ideal_repos)
    adopted: Dict[str, Path] = {}

    for path in sorted(local_repo_paths):
        remotes = repo_factory(path).remotes()
        action, after = claim_local_repo(path, remotes, remaining, rejections)

        for key in remaining.keys() - after.keys():
            adopted[key] = path

        if isinstance(action, Remove) and action.reason == NO_MATCH_REASON:
            duplicate_of = _adopted_by(remotes, adopted)
            if duplicate_of is not None:
                logger.warning(f"{path} is a second clone of the repository at {duplicate_of}")

        remaining = after
        actions.append(action)

    for ideal in sorted(remaining.values(), key=lambda repo: repo.path):
        actions.append(Clone(url=ideal.url, path=ideal.path))

    logger.debug(f"Planned {len(actions)} actions")
    return actions


def _adopted_by(remotes: Mapping[str, RemoteURLs], adopted: Mapping[str, Path]) -> Optional[Path]:
    for urls in remotes.values():
        if not urls.fetch_url:
            continue
        key = comparable_url(urls.fetch_url)
        if key in adopted:
            return adopted[key]
    return None
