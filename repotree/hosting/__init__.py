"""Repository host collaborators."""

from .github import (
    Account, RemoteRepo, RepoType, GitHubRestClient,
    ORGANIZATION, USER, rest_api_url, detect_enterprise_server
)

__all__ = [
    'Account',
    'RemoteRepo',
    'RepoType',
    'GitHubRestClient',
    'ORGANIZATION',
    'USER',
    'rest_api_url',
    'detect_enterprise_server'
]
