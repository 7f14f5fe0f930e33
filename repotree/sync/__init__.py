"""Workspace synchronization: desired state, reconciliation and execution."""

from .events import ActionEvent, EventKind
from .actions import (
    Action, Clone, MoveAndSync, Sync, Remove, ActionExecutor, action_path, action_to_dict
)
from .desired import DesiredRepo, NO_MATCH_REASON, resolve_desired_repos, scope_to_accounts
from .reconcile import build_action_plan, claim_local_repo
from .branch_sync import sync_repo
from .reporting import (
    Reporter, PlainReporter, AnsiReporter, CollectingReporter, SerializingReporter, select_reporter
)
from .scheduler import Scheduler, SchedulerResult, STOPPED_EARLY_NOTE
from .plan import SyncPlan, build_action_list, run_plan, make_client

__all__ = [
    'ActionEvent',
    'EventKind',
    'Action',
    'Clone',
    'MoveAndSync',
    'Sync',
    'Remove',
    'ActionExecutor',
    'action_path',
    'action_to_dict',
    'DesiredRepo',
    'NO_MATCH_REASON',
    'resolve_desired_repos',
    'scope_to_accounts',
    'build_action_plan',
    'claim_local_repo',
    'sync_repo',
    'Reporter',
    'PlainReporter',
    'AnsiReporter',
    'CollectingReporter',
    'SerializingReporter',
    'select_reporter',
    'Scheduler',
    'SchedulerResult',
    'STOPPED_EARLY_NOTE',
    'SyncPlan',
    'build_action_list',
    'run_plan',
    'make_client'
]
