#!/usr/bin/env python3
"""
Unit tests for desired-state resolution: turning command line scope and the
host's repository listings into desired repositories and rejection reasons.
"""

import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock

# Add the project root to the path so we can import repotree modules
sys.path.insert(0, str(Path(__file__).parent))

from repotree.errors import ConfigError
from repotree.hosting import Account, RemoteRepo, RepoType
from repotree.sync.desired import resolve_desired_repos, scope_to_accounts
from repotree.workspace_config import Criteria, GitHubConfig


def make_repo(owner: str, name: str, owner_type: str = "Organization", **kwargs) -> RemoteRepo:
    return RemoteRepo(
        name=name,
        full_name=f"{owner}/{name}",
        owner=Account(login=owner, type=owner_type),
        clone_url=f"https://github.com/{owner}/{name}.git",
        default_branch="main",
        **kwargs
    )


class TestScope(unittest.TestCase):
    """Command line paths to accounts and individual repositories."""

    def setUp(self):
        self.root = Path(tempfile.gettempdir()).resolve() / "tree"
        self.config = GitHubConfig(
            server="github.com",
            orgs={"apache": None, "bloomberg": None},
            users={"alice": None},
        )

    def test_no_targets_means_everything(self):
        scope = scope_to_accounts(self.root, self.root, [], self.config)
        self.assertEqual(scope.orgs, ["apache", "bloomberg"])
        self.assertEqual(scope.users, ["alice"])
        self.assertEqual(scope.repos, [])

    def test_sync_root_target_means_everything(self):
        scope = scope_to_accounts(self.root, self.root / "apache", [".."], self.config)
        self.assertEqual(scope.orgs, ["apache", "bloomberg"])

    def test_account_and_repo_targets(self):
        scope = scope_to_accounts(self.root, self.root, ["apache", "alice/blog", "bloomberg/pystack"], self.config)
        self.assertEqual(scope.orgs, ["apache"])
        self.assertEqual(scope.users, [])
        self.assertEqual(scope.repos, ["alice/blog", "bloomberg/pystack"])

    def test_repo_under_listed_account_is_not_fetched_twice(self):
        scope = scope_to_accounts(self.root, self.root, ["apache", "apache/kafka"], self.config)
        self.assertEqual(scope.orgs, ["apache"])
        self.assertEqual(scope.repos, [])

    def test_relative_to_work_dir(self):
        scope = scope_to_accounts(self.root, self.root / "alice", ["blog"], self.config)
        self.assertEqual(scope.repos, ["alice/blog"])

    def test_outside_sync_root(self):
        with self.assertRaises(ConfigError) as ctx:
            scope_to_accounts(self.root, self.root, ["../elsewhere"], self.config)
        self.assertIn("points outside sync root", ctx.exception.message)

    def test_unknown_account(self):
        with self.assertRaises(ConfigError):
            scope_to_accounts(self.root, self.root, ["mallory"], self.config)


class TestResolveDesiredRepos(unittest.TestCase):

    def setUp(self):
        self.root = Path(tempfile.gettempdir()).resolve() / "tree"
        self.client = MagicMock()

    def test_lists_accounts_and_filters(self):
        config = GitHubConfig(
            server="github.com",
            orgs={"apache": None},
            users={"alice": None},
            archived=False,
        )
        listings = {
            "apache": [make_repo("apache", "kafka"), make_repo("apache", "ant", archived=True)],
            "alice": [make_repo("alice", "blog", owner_type="User")],
        }
        self.client.list_repos.side_effect = lambda account, repo_type: listings[account.login]

        ideal, rejections = resolve_desired_repos(self.root, self.root, [], config, self.client)

        self.assertEqual(sorted(ideal), ["github.com/alice/blog", "github.com/apache/kafka"])
        kafka = ideal["github.com/apache/kafka"]
        self.assertEqual(kafka.path, self.root / "apache" / "kafka")
        self.assertEqual(kafka.url, "https://github.com/apache/kafka.git")
        self.assertEqual(kafka.default_branch, "main")
        self.assertEqual(rejections, {"github.com/apache/ant": "repo is archived"})

        accounts = [c.args[0] for c in self.client.list_repos.call_args_list]
        self.assertEqual(accounts, [Account("apache", "Organization"), Account("alice", "User")])
        self.assertTrue(all(c.args[1] is RepoType.ALL for c in self.client.list_repos.call_args_list))

    def test_individual_repos_are_fetched_one_by_one(self):
        config = GitHubConfig(server="github.com", orgs={"apache": None, "bloomberg": None})
        self.client.get_repo.return_value = make_repo("bloomberg", "pystack")

        ideal, _ = resolve_desired_repos(self.root, self.root, ["bloomberg/pystack"], config, self.client)

        self.client.list_repos.assert_not_called()
        self.client.get_repo.assert_called_once_with("bloomberg/pystack")
        self.assertIn("github.com/bloomberg/pystack", ideal)

    def test_single_org_flat_layout(self):
        config = GitHubConfig(server="github.com", org="golang")
        self.client.list_repos.return_value = [make_repo("golang", "tools")]

        ideal, _ = resolve_desired_repos(self.root, self.root, [], config, self.client)

        self.assertEqual(ideal["github.com/golang/tools"].path, self.root / "tools")

    def test_later_duplicate_wins(self):
        config = GitHubConfig(server="github.com", orgs={"apache": None})
        first = make_repo("apache", "kafka")
        second = RemoteRepo(
            name="Kafka", full_name="apache/Kafka", owner=Account("apache", "Organization"),
            clone_url="git@github.com:apache/kafka.git", default_branch="trunk",
        )
        self.client.list_repos.return_value = [first, second]

        with self.assertLogs('repotree.sync.desired', level='WARNING'):
            ideal, _ = resolve_desired_repos(self.root, self.root, [], config, self.client)

        self.assertEqual(len(ideal), 1)
        self.assertEqual(ideal["github.com/apache/kafka"].default_branch, "trunk")

    def test_exclusions_become_rejections(self):
        config = GitHubConfig(server="github.com", orgs={"apache": None}, exclude=Criteria(names=["ant"]))
        self.client.list_repos.return_value = [make_repo("apache", "ant"), make_repo("apache", "kafka")]

        ideal, rejections = resolve_desired_repos(self.root, self.root, [], config, self.client)

        self.assertEqual(list(ideal), ["github.com/apache/kafka"])
        self.assertIn("github.com/apache/ant", rejections)


if __name__ == "__main__":
    unittest.main(verbosity=2)
