"""Desired-state resolution: which repositories should exist, and where."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence, Set, Tuple

from ..errors import ConfigError
from ..hosting import Account, GitHubRestClient, RemoteRepo, RepoType, ORGANIZATION, USER
from ..performance import get_performance_logger
from ..vcs import comparable_url
from ..vcs.find_repos import resolve_inside_root
from ..workspace_config import GitHubConfig
from .filters import rejection_reason

NO_MATCH_REASON = "did not match any remote repo URL"


@dataclass(frozen=True)
class DesiredRepo:
    """A repository that should be present in the tree."""
    comparable_url: str
    url: str
    path: Path
    default_branch: str


IdealRepos = Dict[str, DesiredRepo]
RejectionReasons = Dict[str, str]


@dataclass
class Scope:
    """Accounts to list in full and repositories to fetch one at a time."""
    orgs: List[str]
    users: List[str]
    repos: List[str]


def scope_to_accounts(
    sync_root: Path, work_dir: Path, targets: Sequence[str], config: GitHubConfig
) -> Scope:
    """
    Map command line paths onto the accounts and repositories they cover.

    No targets, or a target naming the sync root itself, means every
    configured account.
    """
    resolved = [resolve_inside_root(sync_root, work_dir, target) for target in targets]

    if not resolved or sync_root in resolved:
        return Scope(orgs=config.org_names(), users=config.user_names(), repos=[])

    orgs: Set[str] = set()
    users: Set[str] = set()
    repos: Set[str] = set()

    for target, path in zip(targets, resolved):
        org, user, repo = config.path_to_account_repo(path.relative_to(sync_root))
        account = org or user
        if not account:
            raise ConfigError(f"arg {target!r} does not correspond to any configured org or user")

        if repo:
            repos.add(f"{account}/{repo}")
        elif org:
            orgs.add(org)
        else:
            users.add(user)

    listed = orgs | users
    individual = [name for name in repos if name.split("/", 1)[0] not in listed]

    return Scope(orgs=sorted(orgs), users=sorted(users), repos=sorted(individual))


def list_remote_repos(client: GitHubRestClient, scope: Scope, server: str) -> List[RemoteRepo]:
    """Fetch the raw, unfiltered repository records covered by scope."""
    logger = logging.getLogger('repotree.sync.desired')
    records: List[RemoteRepo] = []

    accounts = [Account(login=name, type=ORGANIZATION) for name in scope.orgs]
    accounts += [Account(login=name, type=USER) for name in scope.users]

    for account in accounts:
        logger.info(f"Finding repositories in {server}/{account.login}...")
        with get_performance_logger().time_operation("list_repos", {'account': account.login}):
            listed = client.list_repos(account, RepoType.ALL)
        logger.info(f"Found {len(listed)} repositories in {server}/{account.login}")
        records.extend(listed)

    if scope.repos:
        logger.info("Finding individual repositories...")
    for full_name in scope.repos:
        records.append(client.get_repo(full_name))

    return records


def filter_repos(
    records: Sequence[RemoteRepo], sync_root: Path, config: GitHubConfig
) -> Tuple[IdealRepos, RejectionReasons]:
    """Split records into desired repositories and rejection reasons."""
    logger = logging.getLogger('repotree.sync.desired')
    ideal_repos: IdealRepos = {}
    rejections: RejectionReasons = {}

    for record in records:
        key = comparable_url(record.clone_url)

        reason = rejection_reason(record, config)
        if reason:
            logger.debug(f"Rejected {record.full_name}: {reason}")
            rejections[key] = reason
            continue

        if key in ideal_repos:
            logger.warning(
                f"{record.full_name} has the same URL as {ideal_repos[key].url}, keeping {record.clone_url}"
            )

        ideal_repos[key] = DesiredRepo(
            comparable_url=key,
            url=record.clone_url,
            path=sync_root / config.path_for_repo(record.owner.login, record.name),
            default_branch=record.default_branch,
        )

    return ideal_repos, rejections


def resolve_desired_repos(
    sync_root: Path,
    work_dir: Path,
    targets: Sequence[str],
    config: GitHubConfig,
    client: GitHubRestClient,
) -> Tuple[IdealRepos, RejectionReasons]:
    """Compute (ideal repos, rejection reasons) for the given scope."""
    scope = scope_to_accounts(sync_root, work_dir, targets, config)
    records = list_remote_repos(client, scope, config.server)
    return filter_repos(records, sync_root, config)
