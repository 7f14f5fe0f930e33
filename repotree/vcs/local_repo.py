"""Per-repository git operations using GitPython."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple, Union

from git import Git, Repo
from git.exc import CommandError

from ..errors import VCSError

BRANCH_FORMAT = "%(refname:short)\t%(HEAD)\t%(upstream:short)\t%(upstream:track,nobracket)"
FETCHING_PREFIX = "Fetching "


@dataclass(frozen=True)
class RemoteURLs:
    """Fetch and push URLs of one remote."""
    fetch_url: str = ""
    push_url: str = ""


@dataclass(frozen=True)
class BranchInfo:
    """Upstream tracking state of one local branch."""
    upstream_branch: str = ""
    upstream_track: str = ""  # "", "behind 2", "ahead 1, behind 3", "gone", ...


@dataclass(frozen=True)
class WorkingTreeStatus:
    """Summary flags from git status."""
    branch_head: str = ""
    changed_or_renamed: bool = False
    unmerged: bool = False
    untracked: bool = False
    ignored: bool = False

    @property
    def flags(self) -> str:
        """Four-character flag column: c, U, ? and i."""
        return "".join([
            "c" if self.changed_or_renamed else " ",
            "U" if self.unmerged else " ",
            "?" if self.untracked else " ",
            "i" if self.ignored else " ",
        ])


def _git_error_text(error: CommandError) -> str:
    stderr = (error.stderr or "").strip()
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:"):].strip().strip("'").strip()
    return stderr or f"exit status {error.status}"


class LocalRepo:
    """
    A git working copy on disk.

    Every method shells out through GitPython's command wrapper and raises
    VCSError with git's own error text when the command fails.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.logger = logging.getLogger('repotree.vcs')
        self._git = Git(str(self.root))

    def __repr__(self) -> str:
        return f"LocalRepo({str(self.root)!r})"

    def _run(self, operation: str, *args: str, extended: bool = False):
        self.logger.debug(f"{self.root}: git {operation} {' '.join(args)}")
        try:
            return getattr(self._git, operation)(*args, with_extended_output=extended)
        except CommandError as e:
            raise VCSError(
                f"git {operation} failed: {_git_error_text(e)}",
                context={'repository_path': str(self.root)}
            ) from e

    def remotes(self) -> Dict[str, RemoteURLs]:
        """Map each remote name to its fetch and push URLs."""
        output = self._run("remote", "--verbose")

        fetch_urls: Dict[str, str] = {}
        push_urls: Dict[str, str] = {}
        for line in output.splitlines():
            fields = line.split()  # name URL (fetch|push)
            if len(fields) < 3:
                continue
            name, url, url_type = fields[0], fields[1], fields[2].strip("()")
            if url_type == "fetch":
                fetch_urls[name] = url
            elif url_type == "push":
                push_urls[name] = url
            else:
                raise VCSError(f"unexpected url type {url_type!r} in line {line!r}")

        return {
            name: RemoteURLs(fetch_url=fetch_urls.get(name, ""), push_url=push_urls.get(name, ""))
            for name in sorted(set(fetch_urls) | set(push_urls))
        }

    def local_branches(self) -> Tuple[Dict[str, BranchInfo], str]:
        """
        Snapshot every local branch's upstream and tracking status.

        Returns:
            (branch name -> BranchInfo, current branch), where the current
            branch is "" when HEAD is detached.
        """
        output = self._run("branch", "--list", "--format", BRANCH_FORMAT)

        branches: Dict[str, BranchInfo] = {}
        current = ""
        for line in output.splitlines():
            if not line.strip():
                continue
            fields = (line.split("\t") + ["", "", ""])[:4]
            name, head, upstream, track = fields
            if name.startswith("("):
                # "(HEAD detached at <sha>)" and similar rows are not branches
                continue
            branches[name] = BranchInfo(upstream_branch=upstream, upstream_track=track.strip())
            if head == "*":
                current = name

        return branches, current

    def current_branch(self) -> str:
        """Name of the checked-out branch, "" when detached."""
        return self._run("branch", "--show-current").strip()

    def fetch_all_and_prune(self) -> bool:
        """
        Fetch every remote, pruning deleted remote branches.

        Returns:
            True when git reported anything besides its "Fetching <remote>"
            progress lines, i.e. some ref changed.
        """
        _, stdout, stderr = self._run("fetch", "--prune", "--all", extended=True)

        for line in (stdout + "\n" + stderr).splitlines():
            if line and not line.startswith(FETCHING_PREFIX):
                return True
        return False

    def fast_forward_merge(self) -> None:
        self._run("merge", "--ff-only")

    def reset_branch(self, branch: str, start_point: str) -> None:
        """Point a branch that is not checked out at start_point."""
        self._run("branch", "--force", branch, start_point)

    def delete_branch(self, branch: str, force: bool) -> None:
        args = ["--delete"]
        if force:
            args.append("--force")
        self._run("branch", *args, branch)

    def switch_to_existing_branch(self, branch: str) -> None:
        self._run("switch", "--no-guess", branch)

    def switch_to_new_tracking_branch(self, upstream: str) -> None:
        self._run("switch", "--track", upstream)

    def status(self) -> WorkingTreeStatus:
        """Parse porcelain v2 status into summary flags."""
        output = self._run(
            "status", "--null", "--porcelain=v2", "--branch", "--ignored", "--untracked=normal"
        )

        branch_head = ""
        changed = unmerged = untracked = ignored = False
        records = iter(output.split("\0"))
        for record in records:
            if not record:
                continue
            kind = record[0]
            if kind == "#":
                parts = record.split(" ")
                if len(parts) > 2 and parts[1] == "branch.head":
                    branch_head = parts[2]
            elif kind == "1":
                changed = True
            elif kind == "2":
                changed = True
                # rename records are followed by the original path
                next(records, None)
            elif kind == "u":
                unmerged = True
            elif kind == "?":
                untracked = True
            elif kind == "!":
                ignored = True

        return WorkingTreeStatus(
            branch_head=branch_head,
            changed_or_renamed=changed,
            unmerged=unmerged,
            untracked=untracked,
            ignored=ignored,
        )


def clone_repo(url: str, path: Union[str, Path]) -> None:
    """Clone url into path, raising VCSError on failure."""
    logger = logging.getLogger('repotree.vcs')
    logger.debug(f"Cloning {url} into {path}")

    try:
        Repo.clone_from(url, str(path))
    except CommandError as e:
        raise VCSError(
            f"git clone failed: {_git_error_text(e)}",
            context={'repository_path': str(path), 'url': url}
        ) from e


def is_local_repo_root(path: Union[str, Path]) -> bool:
    """True when path is the top level of a git working copy."""
    path = Path(path)
    try:
        toplevel = Git(str(path)).rev_parse("--show-toplevel")
    except CommandError as e:
        message = str(e).lower()
        # bare repositories and .git directories have no work tree
        if "not a git repository" in message or "must be run in a work tree" in message:
            return False
        raise VCSError(
            f"git rev-parse failed: {_git_error_text(e)}",
            context={'repository_path': str(path)}
        ) from e

    return Path(toplevel.strip()).resolve() == path.resolve()
