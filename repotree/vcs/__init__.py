"""Git collaborator: working copy operations, discovery and credentials."""

from .local_repo import LocalRepo, RemoteURLs, BranchInfo, WorkingTreeStatus, clone_repo, is_local_repo_root
from .find_repos import find_repos_in_dir, find_local_repos
from .remote_urls import comparable_url
from .credential import Credential, fill_credential

__all__ = [
    'LocalRepo',
    'RemoteURLs',
    'BranchInfo',
    'WorkingTreeStatus',
    'clone_repo',
    'is_local_repo_root',
    'find_repos_in_dir',
    'find_local_repos',
    'comparable_url',
    'Credential',
    'fill_credential'
]
