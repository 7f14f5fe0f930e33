"""Building and running a sync: discovery, planning, then execution."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence, TextIO

from ..config import Config, SyncOptions, load_configuration
from ..errors import DiscoveryError
from ..hosting import GitHubRestClient
from ..performance import get_performance_logger
from ..vcs import LocalRepo, clone_repo, fill_credential, find_local_repos
from ..workspace_config import GitHubConfig, find_config_file, load_config_file
from .actions import Action, ActionExecutor, action_path
from .desired import resolve_desired_repos
from .reconcile import build_action_plan
from .reporting import Reporter, SerializingReporter, select_reporter
from .scheduler import Scheduler, SchedulerResult

ClientFactory = Callable[[GitHubConfig, Config], GitHubRestClient]


@dataclass
class SyncPlan:
    """The action list for one sync run, and where it was computed."""
    sync_root: Path
    work_dir: Path
    actions: List[Action]


def make_client(github: GitHubConfig, settings: Config) -> GitHubRestClient:
    """REST client for the configured server, authenticated by token or git credential helper."""
    logger = logging.getLogger('repotree.sync')

    token = settings.github_token
    if token is None:
        try:
            token = fill_credential("https", github.server).password or None
        except DiscoveryError as e:
            logger.warning(e.message)
        if token is None:
            logger.warning(f"No credential found for {github.server}, listing anonymously")

    return GitHubRestClient(github.server, token=token, timeout=settings.http_timeout)


def build_action_list(
    work_dir: Path,
    targets: Sequence[str] = (),
    settings: Optional[Config] = None,
    client_factory: ClientFactory = make_client,
    repo_factory: Callable[[Path], LocalRepo] = LocalRepo,
) -> SyncPlan:
    """
    Find the workspace config above work_dir and plan the sync.

    Discovery runs in a single thread and completes before anything executes.

    Raises:
        ConfigError, DiscoveryError, LocalScanError, AmbiguousMatchError
    """
    settings = settings or load_configuration()
    perf = get_performance_logger()
    work_dir = Path(work_dir)

    config_path = find_config_file(work_dir)
    workspace = load_config_file(config_path)
    sync_root = config_path.parent

    with perf.time_operation("local_scan", {'sync_root': str(sync_root)}):
        local_repos = find_local_repos(sync_root, work_dir, targets)

    with client_factory(workspace.github, settings) as client:
        with perf.time_operation("discovery", {'server': workspace.github.server}):
            ideal_repos, rejections = resolve_desired_repos(
                sync_root, work_dir, targets, workspace.github, client
            )

    with perf.time_operation("reconcile"):
        actions = build_action_plan(local_repos, ideal_repos, rejections, repo_factory)

    return SyncPlan(sync_root=sync_root, work_dir=work_dir, actions=actions)


def run_plan(
    plan: SyncPlan,
    options: SyncOptions,
    reporter: Optional[Reporter] = None,
    output: Optional[TextIO] = None,
    repo_factory: Callable[[Path], LocalRepo] = LocalRepo,
    clone_func: Callable[[str, Path], None] = clone_repo,
) -> SchedulerResult:
    """Execute a plan, reporting through reporter (chosen from output when None)."""
    logger = logging.getLogger('repotree.sync')
    executor = ActionExecutor(options, plan.work_dir, repo_factory=repo_factory, clone_func=clone_func)

    if reporter is None:
        name_width = max(
            (len(executor.display_name(action_path(action))) for action in plan.actions),
            default=0
        )
        reporter = select_reporter(len(plan.actions), name_width, options.dry_run, output)

    scheduler = Scheduler(options, executor.execute, SerializingReporter(reporter))

    with get_performance_logger().time_operation(
        "execute", {'actions': len(plan.actions), 'jobs': options.jobs}, log_level=logging.INFO
    ):
        result = scheduler.run(plan.actions)

    if result.num_failed:
        logger.debug(f"{result.num_failed} actions failed")
    return result
