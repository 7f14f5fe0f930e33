"""GitHub REST v3 client for repository discovery."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from ..errors import DiscoveryError

ORGANIZATION = "Organization"
USER = "User"


class RepoType(Enum):
    """Values accepted by the `type` parameter of the repo listing endpoints."""
    ALL = "all"
    PUBLIC = "public"
    PRIVATE = "private"
    FORKS = "forks"
    SOURCES = "sources"
    MEMBER = "member"
    INTERNAL = "internal"


@dataclass(frozen=True)
class Account:
    """Owner of a repository."""
    login: str
    type: str  # "User" or "Organization"


@dataclass(frozen=True)
class RemoteRepo:
    """Repository record as listed by the host."""
    name: str
    full_name: str
    owner: Account
    clone_url: str
    archived: bool = False
    default_branch: str = ""
    fork: bool = False
    is_template: bool = False
    language: str = ""
    private: bool = False
    topics: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "RemoteRepo":
        """Build a record from a REST API repository object."""
        try:
            owner = data["owner"]
            return cls(
                name=data["name"],
                full_name=data["full_name"],
                owner=Account(login=owner["login"], type=owner["type"]),
                clone_url=data["clone_url"],
                archived=bool(data.get("archived", False)),
                default_branch=data.get("default_branch") or "",
                fork=bool(data.get("fork", False)),
                is_template=bool(data.get("is_template", False)),
                language=data.get("language") or "",
                private=bool(data.get("private", False)),
                topics=tuple(data.get("topics") or ()),
            )
        except (KeyError, TypeError) as e:
            raise DiscoveryError(f"unexpected repository record shape: missing {e}") from e


def rest_api_url(server: str) -> str:
    """Root of the REST API for github.com or a GitHub Enterprise server."""
    if server == "github.com":
        return "https://api.github.com"
    return f"https://{server}/api/v3"


class GitHubRestClient:
    """
    Minimal GitHub REST client: list an account's repositories, fetch one
    repository, look up an account.

    Usable as a context manager; the underlying httpx.Client is closed on exit.
    """

    def __init__(
        self,
        server: str,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.server = server
        self.logger = logging.getLogger('repotree.hosting')

        headers = {"Accept": "application/vnd.github.v3+json"}
        if token:
            headers["Authorization"] = f"token {token}"

        self._client = httpx.Client(
            base_url=rest_api_url(server),
            headers=headers,
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    def __enter__(self) -> "GitHubRestClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            response = self._client.get(url, params=params)
        except httpx.HTTPError as e:
            raise DiscoveryError(f"request to {url} failed: {e}", context={'server': self.server}) from e
        return response

    def list_repos(self, account: Account, repo_type: RepoType = RepoType.ALL) -> List[RemoteRepo]:
        """
        List every repository of an organization or user.

        Follows the Link header's rel="next" until the last page.
        """
        orgs_or_users = "users" if account.type == USER else "orgs"
        next_url: Optional[str] = f"/{orgs_or_users}/{quote(account.login)}/repos"
        params: Optional[Dict[str, Any]] = {
            "type": repo_type.value,
            "per_page": 100,
            "sort": "full_name",
        }

        results: List[RemoteRepo] = []
        page = 0
        while next_url:
            page += 1
            response = self._get(next_url, params=params)
            if response.status_code != httpx.codes.OK:
                raise DiscoveryError(
                    f"bad status code {response.status_code} listing repositories of {account.login}",
                    context={'server': self.server, 'account': account.login}
                )

            try:
                records = response.json()
            except ValueError as e:
                raise DiscoveryError(f"invalid JSON listing repositories of {account.login}: {e}") from e

            results.extend(RemoteRepo.from_api(record) for record in records)
            self.logger.debug(f"{account.login}: page {page}, {len(results)} repositories so far")

            next_url = response.links.get("next", {}).get("url")
            # the next link already carries the query string
            params = None

        return results

    def get_repo(self, full_name: str) -> RemoteRepo:
        """Fetch a single repository by "owner/name"."""
        url = f"/repos/{quote(full_name, safe='/')}"
        response = self._get(url)
        if response.status_code != httpx.codes.OK:
            raise DiscoveryError(
                f"bad status code {response.status_code} from {url}",
                context={'server': self.server, 'repository': full_name}
            )
        return RemoteRepo.from_api(response.json())

    def get_account(self, name: str) -> Account:
        """Look up whether a login is a user or an organization."""
        url = f"/users/{quote(name)}"
        response = self._get(url)
        if response.status_code == httpx.codes.NOT_FOUND:
            raise DiscoveryError(f"failed to find account {name!r}", context={'server': self.server})
        if response.status_code != httpx.codes.OK:
            raise DiscoveryError(f"bad status code {response.status_code} from {url}")

        data = response.json()
        return Account(login=data["login"], type=data["type"])


def detect_enterprise_server(server: str, timeout: float = 10.0) -> bool:
    """True when server answers like a GitHub Enterprise instance."""
    try:
        response = httpx.head(f"https://{server}/api/v3", timeout=timeout)
    except httpx.HTTPError:
        return False
    return bool(response.headers.get("X-GitHub-Enterprise-Version"))
