#!/usr/bin/env python3
"""
Integration tests for local git operations with real repositories.

Each test builds a bare "upstream" repository, a seed clone used to push new
commits and branches to it, and the working copy under test.
"""

import shutil
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path

# Add the project root to the path so we can import repotree modules
sys.path.insert(0, str(Path(__file__).parent))

from repotree.errors import VCSError
from repotree.sync import EventKind, sync_repo
from repotree.vcs import (
    LocalRepo, RemoteURLs, clone_repo, find_local_repos, find_repos_in_dir, is_local_repo_root
)


def git(cwd, *args):
    """Run a git command for test setup."""
    result = subprocess.run(
        ["git", "-c", "user.name=Test User", "-c", "user.email=test@example.com", *args],
        cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


@unittest.skipUnless(shutil.which("git"), "git is not installed")
class GitTestCase(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp()).resolve()

        self.upstream = self.temp_dir / "upstream.git"
        self.upstream.mkdir()
        git(self.upstream, "init", "--bare")
        git(self.upstream, "symbolic-ref", "HEAD", "refs/heads/main")

        self.seed = self.temp_dir / "seed"
        self.seed.mkdir()
        git(self.seed, "init")
        git(self.seed, "symbolic-ref", "HEAD", "refs/heads/main")
        (self.seed / "README.md").write_text("# test\n")
        git(self.seed, "add", ".")
        git(self.seed, "commit", "-m", "Initial commit")
        git(self.seed, "remote", "add", "origin", str(self.upstream))
        git(self.seed, "push", "-u", "origin", "main")

        self.work = self.temp_dir / "tree" / "org" / "work"
        self.work.parent.mkdir(parents=True)
        clone_repo(str(self.upstream), self.work)
        self.repo = LocalRepo(self.work)

    def tearDown(self):
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def push_commit(self, message="Another commit", branch="main"):
        git(self.seed, "switch", branch)
        with open(self.seed / "README.md", "a") as f:
            f.write(message + "\n")
        git(self.seed, "commit", "-am", message)
        git(self.seed, "push", "origin", branch)
        return git(self.seed, "rev-parse", "HEAD")

    def push_branch(self, branch):
        git(self.seed, "switch", "-c", branch)
        git(self.seed, "push", "origin", branch)
        git(self.seed, "switch", "main")

    def delete_remote_branch(self, branch):
        git(self.seed, "push", "origin", "--delete", branch)


class TestLocalRepo(GitTestCase):

    def test_remotes(self):
        remotes = self.repo.remotes()
        self.assertEqual(remotes, {"origin": RemoteURLs(str(self.upstream), str(self.upstream))})

    def test_local_branches(self):
        branches, current = self.repo.local_branches()
        self.assertEqual(current, "main")
        self.assertEqual(branches["main"].upstream_branch, "origin/main")
        self.assertEqual(branches["main"].upstream_track, "")
        self.assertEqual(self.repo.current_branch(), "main")

    def test_local_branches_detached_head(self):
        git(self.work, "switch", "--detach", "HEAD")

        branches, current = self.repo.local_branches()

        self.assertEqual(current, "")
        self.assertEqual(list(branches), ["main"])
        self.assertEqual(self.repo.current_branch(), "")

    def test_fetch_reports_changes(self):
        self.assertFalse(self.repo.fetch_all_and_prune())

        self.push_commit()

        self.assertTrue(self.repo.fetch_all_and_prune())
        branches, _ = self.repo.local_branches()
        self.assertEqual(branches["main"].upstream_track, "behind 1")

    def test_status_flags(self):
        self.assertEqual(self.repo.status().flags, "    ")

        (self.work / "notes.txt").write_text("scratch")
        (self.work / "README.md").write_text("changed\n")

        status = self.repo.status()
        print(f"  Status: {status}")
        self.assertEqual(status.branch_head, "main")
        self.assertTrue(status.changed_or_renamed)
        self.assertTrue(status.untracked)
        self.assertFalse(status.unmerged)
        self.assertEqual(status.flags, "c ? ")

    def test_status_rename(self):
        git(self.work, "mv", "README.md", "README.txt")
        status = self.repo.status()
        self.assertTrue(status.changed_or_renamed)
        self.assertFalse(status.untracked)

    def test_git_failure_raises(self):
        with self.assertRaises(VCSError) as ctx:
            self.repo.switch_to_existing_branch("no-such-branch")
        self.assertTrue(ctx.exception.message.startswith("git switch failed"))

    def test_clone_failure_raises(self):
        with self.assertRaises(VCSError):
            clone_repo(str(self.temp_dir / "missing.git"), self.temp_dir / "nowhere")


class TestFindRepos(GitTestCase):

    def test_is_local_repo_root(self):
        (self.work / "sub").mkdir()
        self.assertTrue(is_local_repo_root(self.work))
        self.assertFalse(is_local_repo_root(self.work / "sub"))
        self.assertFalse(is_local_repo_root(self.temp_dir / "tree"))
        self.assertFalse(is_local_repo_root(self.upstream))

    def test_find_repos_in_dir(self):
        second = self.temp_dir / "tree" / "other" / "deep" / "second"
        second.parent.mkdir(parents=True)
        clone_repo(str(self.upstream), second)
        # a repository nested inside another is not visited
        clone_repo(str(self.upstream), self.work / "vendor")

        repos = find_repos_in_dir(self.temp_dir / "tree")

        self.assertEqual(repos, [self.work, second])
        self.assertEqual(find_repos_in_dir(self.work), [self.work])

    def test_symlinks_are_not_followed(self):
        root = self.temp_dir / "tree"
        # a link to a clone and a link to a directory holding one
        (root / "a-link").symlink_to(self.work, target_is_directory=True)
        (root / "org-link").symlink_to(root / "org", target_is_directory=True)

        self.assertEqual(find_repos_in_dir(root), [self.work])
        self.assertEqual(find_local_repos(root, root), [self.work])

    def test_find_local_repos_with_targets(self):
        root = self.temp_dir / "tree"
        self.assertEqual(find_local_repos(root, root), [self.work])
        self.assertEqual(find_local_repos(root, root / "org", ["work", "missing"]), [self.work])
        self.assertEqual(find_local_repos(root, root, ["org", "org/work"]), [self.work])


class TestSyncRepoWithGit(GitTestCase):

    def test_unchanged(self):
        event = sync_repo(self.repo, "org/work", "origin/main")
        self.assertEqual(event.kind, EventKind.UNCHANGED)

    def test_fast_forwards_current_branch(self):
        head = self.push_commit()

        event = sync_repo(self.repo, "org/work", "origin/main")

        self.assertEqual(event.kind, EventKind.UPDATED)
        self.assertEqual(git(self.work, "rev-parse", "HEAD"), head)

    def test_resets_other_branch(self):
        self.push_branch("dev")
        self.repo.fetch_all_and_prune()
        git(self.work, "branch", "--track", "dev", "origin/dev")
        head = self.push_commit(branch="dev")

        event = sync_repo(self.repo, "org/work", "origin/main")

        self.assertEqual(event.kind, EventKind.UPDATED)
        self.assertEqual(git(self.work, "rev-parse", "dev"), head)
        self.assertEqual(self.repo.current_branch(), "main")

    def test_deletes_gone_branch(self):
        self.push_branch("feature")
        self.repo.fetch_all_and_prune()
        git(self.work, "branch", "--track", "feature", "origin/feature")
        self.delete_remote_branch("feature")

        event = sync_repo(self.repo, "org/work", "origin/main")

        self.assertEqual(event.caveats, ('deleted "feature"',))
        branches, _ = self.repo.local_branches()
        self.assertNotIn("feature", branches)

    def test_leaves_gone_branch_with_local_commits(self):
        self.push_branch("feature")
        self.repo.fetch_all_and_prune()
        git(self.work, "switch", "--track", "origin/feature")
        (self.work / "local.txt").write_text("work in progress")
        git(self.work, "add", "local.txt")
        git(self.work, "commit", "-m", "Local work")
        git(self.work, "switch", "main")
        self.delete_remote_branch("feature")

        event = sync_repo(self.repo, "org/work", "origin/main")

        self.assertEqual(event.caveats, ('left "feature" in place since it had unpushed changes',))
        branches, _ = self.repo.local_branches()
        self.assertIn("feature", branches)

    def test_switches_away_from_gone_current_branch(self):
        self.push_branch("feature")
        self.repo.fetch_all_and_prune()
        git(self.work, "switch", "--track", "origin/feature")
        self.delete_remote_branch("feature")

        event = sync_repo(self.repo, "org/work", "origin/main")

        self.assertEqual(event.kind, EventKind.UPDATED)
        self.assertEqual(self.repo.current_branch(), "main")
        self.assertEqual(event.caveats, ('deleted "feature"',))


if __name__ == "__main__":
    unittest.main(verbosity=2)
