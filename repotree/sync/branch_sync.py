"""Per-repository branch synchronization."""

import logging
from typing import Dict, List

from ..errors import VCSError
from ..vcs import BranchInfo, LocalRepo
from .events import ActionEvent, EventKind

TRACK_BEHIND = "behind"
TRACK_GONE = "gone"


def _track_word(info: BranchInfo) -> str:
    words = info.upstream_track.split()
    return words[0].rstrip(",") if words else ""


def _switch_away_from_gone_branch(
    repo: LocalRepo, after: Dict[str, BranchInfo], default_tracking_branch: str
) -> str:
    """Check out the branch tracking default_tracking_branch, creating it if needed."""
    for branch in sorted(after):
        if after[branch].upstream_branch == default_tracking_branch:
            repo.switch_to_existing_branch(branch)
            break
    else:
        repo.switch_to_new_tracking_branch(default_tracking_branch)

    return repo.current_branch()


def _converge(repo: LocalRepo, default_tracking_branch: str) -> ActionEvent:
    before, before_current = repo.local_branches()

    if not repo.fetch_all_and_prune():
        return ActionEvent(EventKind.UNCHANGED, "", "no updates")

    after, current = repo.local_branches()

    before_current_info = before.get(before_current, BranchInfo())
    if (before_current
            and not before_current_info.upstream_track
            and _track_word(after.get(before_current, BranchInfo())) == TRACK_GONE):
        current = _switch_away_from_gone_branch(repo, after, default_tracking_branch)

    caveats: List[str] = []
    for branch in sorted(after):
        info = after[branch]
        word = _track_word(info)
        was_in_sync = not before.get(branch, BranchInfo()).upstream_track

        if not word:
            continue

        if word == TRACK_BEHIND:
            if branch == current:
                repo.fast_forward_merge()
            else:
                repo.reset_branch(branch, info.upstream_branch)
        elif word == TRACK_GONE and was_in_sync:
            repo.delete_branch(branch, force=True)
            caveats.append(f'deleted "{branch}"')
        else:
            caveats.append(f'left "{branch}" in place since it had unpushed changes')

    return ActionEvent(EventKind.UPDATED, "", "updated", tuple(caveats))


def sync_repo(repo: LocalRepo, name: str, default_tracking_branch: str) -> ActionEvent:
    """
    Fetch a repository and bring its local branches in line with upstream.

    Branches that are behind are fast-forwarded (or reset, when not checked
    out); branches whose upstream is gone are deleted when they were in sync
    before the fetch and left alone otherwise. A failing git call ends the
    sync with a Failed event; nothing is retried.
    """
    logger = logging.getLogger('repotree.sync.branch_sync')

    try:
        event = _converge(repo, default_tracking_branch)
    except VCSError as e:
        logger.debug(f"{name}: {e.message}")
        return ActionEvent(EventKind.FAILED, name, e.message)

    return event.named(name)
