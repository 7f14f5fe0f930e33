"""Working tree status of every repository in a sync root."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Sequence

from .vcs import LocalRepo, WorkingTreeStatus, find_local_repos
from .workspace_config import find_config_file


@dataclass(frozen=True)
class RepoListing:
    path: Path
    name: str
    status: WorkingTreeStatus

    def to_dict(self):
        return {
            "path": str(self.path),
            "name": self.name,
            "flags": self.status.flags,
            "branch_head": self.status.branch_head,
            "changed_or_renamed": self.status.changed_or_renamed,
            "unmerged": self.status.unmerged,
            "untracked": self.status.untracked,
            "ignored": self.status.ignored,
        }


def list_repositories(
    work_dir: Path,
    targets: Sequence[str] = (),
    repo_factory: Callable[[Path], LocalRepo] = LocalRepo,
) -> List[RepoListing]:
    """Status of each local repository under the sync root containing work_dir."""
    sync_root = find_config_file(work_dir).parent
    return [
        RepoListing(path=path, name=os.path.relpath(path, work_dir), status=repo_factory(path).status())
        for path in find_local_repos(sync_root, work_dir, targets)
    ]


def format_listing(listings: Sequence[RepoListing]) -> List[str]:
    """Lines of "FLAGS name branch-head", names padded to a common width."""
    width = max((len(item.name) for item in listings), default=0)
    return [f"{item.status.flags} {item.name.ljust(width)} {item.status.branch_head}" for item in listings]
