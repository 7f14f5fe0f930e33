"""
Workspace configuration: the repotree.yaml file at the sync root.

The file names the repository host, the accounts whose repositories belong in
the tree, filter criteria, and how repositories are laid out on disk.
"""

import io
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigError
from .hosting import detect_enterprise_server

CONFIG_FILE_NAME = "repotree.yaml"
DEFAULT_ACCOUNT_PREFIX_SEPARATOR = "__"

CRITERIA_LIST_KEYS = ("names", "topics", "languages")
CRITERIA_BOOL_KEYS = ("archived", "fork", "is_template", "private")


@dataclass
class Criteria:
    """Repository filter criteria. Empty lists and None booleans match everything."""
    names: List[str] = field(default_factory=list)
    topics: List[str] = field(default_factory=list)
    languages: List[str] = field(default_factory=list)
    archived: Optional[bool] = None
    fork: Optional[bool] = None
    is_template: Optional[bool] = None
    private: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for key in CRITERIA_LIST_KEYS:
            if getattr(self, key):
                data[key] = list(getattr(self, key))
        for key in CRITERIA_BOOL_KEYS:
            if getattr(self, key) is not None:
                data[key] = getattr(self, key)
        return data


@dataclass
class CriteriaWithExclusions(Criteria):
    """Criteria plus an optional set of criteria that reject a repository."""
    exclude: Optional[Criteria] = None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.exclude is not None:
            data["exclude"] = self.exclude.to_dict()
        return data


@dataclass
class GitHubConfig(CriteriaWithExclusions):
    """
    The `github` section of the workspace config.

    The inherited criteria are global; entries in `orgs` and `users` may carry
    their own criteria, which win wherever they are set.
    """
    server: str = ""
    org: str = ""
    orgs: Dict[str, Optional[CriteriaWithExclusions]] = field(default_factory=dict)
    user: str = ""
    users: Dict[str, Optional[CriteriaWithExclusions]] = field(default_factory=dict)
    single_dir_for_all_repos: Optional[bool] = None
    account_prefix_separator: Optional[str] = None

    def validate(self) -> None:
        """Raise ConfigError for a missing server or conflicting account keys."""
        if not self.server:
            raise ConfigError("server is missing")

        if self.org:
            if self.orgs:
                raise ConfigError("cannot have org and orgs")
            if self.user:
                raise ConfigError("cannot have org and user")
            if self.users:
                raise ConfigError("cannot have org and users")

        if self.user:
            if self.orgs:
                raise ConfigError("cannot have user and orgs")
            if self.users:
                raise ConfigError("cannot have user and users")

    # Accounts

    @property
    def single_account(self) -> str:
        return self.org or self.user

    def org_names(self) -> List[str]:
        return [self.org] if self.org else sorted(self.orgs)

    def user_names(self) -> List[str]:
        return [self.user] if self.user else sorted(self.users)

    def org_or_user(self, name: str) -> Tuple[str, str]:
        """(name, "") for a configured org, ("", name) for a user, else blanks."""
        if name and (name in self.orgs or self.org == name):
            return name, ""
        if name and (name in self.users or self.user == name):
            return "", name
        return "", ""

    def criteria_for(self, login: str, account_type: str) -> Optional[CriteriaWithExclusions]:
        """Per-account criteria, or None when the account has none."""
        if account_type == "Organization":
            return self.orgs.get(login)
        if account_type == "User":
            return self.users.get(login)
        raise ConfigError(f"unexpected account type {account_type!r} for {login!r}")

    # Layout

    @property
    def single_dir(self) -> bool:
        if self.single_dir_for_all_repos is not None:
            return self.single_dir_for_all_repos
        return bool(self.single_account)

    @property
    def prefix_separator(self) -> str:
        """Separator between account and repo name in a repository directory."""
        if self.account_prefix_separator is not None:
            return self.account_prefix_separator
        if self.single_dir and not self.single_account:
            return DEFAULT_ACCOUNT_PREFIX_SEPARATOR
        return ""

    def path_for_repo(self, account: str, repo: str) -> str:
        """Directory of a repository, relative to the sync root."""
        org, user = self.org_or_user(account)
        if not org and not user:
            raise ConfigError(f"account {account!r} is neither a configured org nor user")

        separator = self.prefix_separator

        if self.single_dir:
            return f"{account}{separator}{repo}" if separator else repo

        if not repo:
            return account

        repo_dir = f"{account}{separator}{repo}" if separator else repo
        return os.path.join(account, repo_dir)

    def path_to_account_repo(self, path_inside_root: Union[str, PurePath]) -> Tuple[str, str, str]:
        """
        Inverse of path_for_repo.

        Returns (org, user, repo) with blanks for the parts the path does not
        determine; all blanks when the path does not belong to any configured
        account.
        """
        parts = [part for part in PurePath(path_inside_root).parts if part not in ("", ".")]
        if not parts:
            raise ValueError("empty path inside sync root")

        separator = self.prefix_separator

        if self.single_dir:
            if not separator:
                if not self.single_account:
                    return "", "", ""
                return self.org, self.user, parts[0]

            account, found, repo = parts[0].partition(separator)
            org, user = self.org_or_user(account)
            if not found or (not org and not user):
                return "", "", ""
            return org, user, repo

        org, user = self.org_or_user(parts[0])
        if not org and not user:
            return "", "", ""

        if len(parts) < 2:
            return org, user, ""

        if not separator:
            return org, user, parts[1]

        prefix, found, repo = parts[1].partition(separator)
        if not found or prefix != org + user:
            raise ConfigError(f"directory does not match its account prefix: {str(path_inside_root)!r}")
        return org, user, repo

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"server": self.server}
        if self.org:
            data["org"] = self.org
        if self.orgs:
            data["orgs"] = {name: (c.to_dict() or None) if c else None for name, c in self.orgs.items()}
        if self.user:
            data["user"] = self.user
        if self.users:
            data["users"] = {name: (c.to_dict() or None) if c else None for name, c in self.users.items()}
        data.update(super().to_dict())
        if self.single_dir_for_all_repos is not None:
            data["singleDirForAllRepos"] = self.single_dir_for_all_repos
        if self.account_prefix_separator is not None:
            data["accountPrefixSeparator"] = self.account_prefix_separator
        return data


@dataclass
class WorkspaceConfig:
    """Whole contents of repotree.yaml."""
    github: GitHubConfig

    def validate(self) -> None:
        self.github.validate()


# Parsing

def _expect_mapping(value: Any, where: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(f"{where}: expected a mapping, got {type(value).__name__}")
    return value


def _check_keys(data: Dict[str, Any], allowed: Tuple[str, ...], where: str) -> None:
    unknown = sorted(str(key) for key in data if key not in allowed)
    if unknown:
        raise ConfigError(f"{where}: unknown field(s) {', '.join(unknown)}")


def _string_list(value: Any, where: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{where}: expected a list of strings")
    return list(value)


def _optional_bool(value: Any, where: str) -> Optional[bool]:
    if value is not None and not isinstance(value, bool):
        raise ConfigError(f"{where}: expected true or false")
    return value


def _optional_str(value: Any, where: str) -> Optional[str]:
    if value is not None and not isinstance(value, str):
        raise ConfigError(f"{where}: expected a string")
    return value


def _criteria_kwargs(data: Dict[str, Any], where: str) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {}
    for key in CRITERIA_LIST_KEYS:
        kwargs[key] = _string_list(data.get(key), f"{where}.{key}")
    for key in CRITERIA_BOOL_KEYS:
        kwargs[key] = _optional_bool(data.get(key), f"{where}.{key}")
    return kwargs


def _parse_criteria(data: Any, where: str) -> Criteria:
    data = _expect_mapping(data, where)
    _check_keys(data, CRITERIA_LIST_KEYS + CRITERIA_BOOL_KEYS, where)
    return Criteria(**_criteria_kwargs(data, where))


def _parse_exclusions(data: Dict[str, Any], where: str) -> Optional[Criteria]:
    if data.get("exclude") is None:
        return None
    return _parse_criteria(data["exclude"], f"{where}.exclude")


def _parse_accounts(value: Any, where: str) -> Dict[str, Optional[CriteriaWithExclusions]]:
    if value is None:
        return {}
    accounts = {}
    for name, data in _expect_mapping(value, where).items():
        if not isinstance(name, str):
            raise ConfigError(f"{where}: account names must be strings, got {name!r}")
        entry_where = f"{where}.{name}"
        if data is None:
            accounts[name] = None
            continue
        data = _expect_mapping(data, entry_where)
        _check_keys(data, CRITERIA_LIST_KEYS + CRITERIA_BOOL_KEYS + ("exclude",), entry_where)
        accounts[name] = CriteriaWithExclusions(
            exclude=_parse_exclusions(data, entry_where),
            **_criteria_kwargs(data, entry_where)
        )
    return accounts


GITHUB_KEYS = (
    "server", "org", "orgs", "user", "users", "exclude",
    "singleDirForAllRepos", "accountPrefixSeparator",
) + CRITERIA_LIST_KEYS + CRITERIA_BOOL_KEYS


def _parse_github(data: Any) -> GitHubConfig:
    where = "github"
    data = _expect_mapping(data, where)
    _check_keys(data, GITHUB_KEYS, where)

    return GitHubConfig(
        server=_optional_str(data.get("server"), "github.server") or "",
        org=_optional_str(data.get("org"), "github.org") or "",
        orgs=_parse_accounts(data.get("orgs"), "github.orgs"),
        user=_optional_str(data.get("user"), "github.user") or "",
        users=_parse_accounts(data.get("users"), "github.users"),
        single_dir_for_all_repos=_optional_bool(
            data.get("singleDirForAllRepos"), "github.singleDirForAllRepos"
        ),
        account_prefix_separator=_optional_str(
            data.get("accountPrefixSeparator"), "github.accountPrefixSeparator"
        ),
        exclude=_parse_exclusions(data, where),
        **_criteria_kwargs(data, where)
    )


def _yaml() -> YAML:
    yaml = YAML(typ="safe")
    yaml.allow_duplicate_keys = False
    yaml.default_flow_style = False
    return yaml


def parse_config(text: str) -> WorkspaceConfig:
    """Parse and validate workspace config text."""
    try:
        loaded = _yaml().load(text)
    except YAMLError as e:
        raise ConfigError(f"decoding error: {e}") from e

    if loaded is None:
        raise ConfigError("empty config")

    data = _expect_mapping(loaded, "config")
    _check_keys(data, ("github",), "config")
    if data.get("github") is None:
        raise ConfigError("empty config")

    config = WorkspaceConfig(github=_parse_github(data["github"]))
    config.validate()
    return config


def load_config_file(path: Union[str, Path]) -> WorkspaceConfig:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"failed to read {path}: {e}", context={'path': str(path)}) from e
    return parse_config(text)


def find_config_file(work_dir: Union[str, Path]) -> Path:
    """
    Walk up from work_dir to the nearest repotree.yaml.

    Raises:
        ConfigError: no config file exists in work_dir or any parent
    """
    work_dir = Path(work_dir)
    if not work_dir.is_absolute():
        raise ValueError(f"work_dir should be absolute, got {str(work_dir)!r}")

    for directory in (work_dir, *work_dir.parents):
        candidate = directory / CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate

    raise ConfigError(
        f"no {CONFIG_FILE_NAME} found in {work_dir} or any parent directory\n"
        "Did you run 'repotree init' first?"
    )


def dump_config(config: WorkspaceConfig) -> str:
    """Serialize a config, writing empty account entries as bare `name:`."""
    yaml = _yaml()
    yaml.indent(mapping=2, sequence=4, offset=2)
    with io.StringIO() as stream:
        yaml.dump({"github": config.github.to_dict()}, stream)
        text = stream.getvalue()

    lines = []
    for line in text.splitlines():
        if line.endswith(": null"):
            line = line[:-len(" null")]
        lines.append(line)
    return "\n".join(lines) + "\n"


def write_config(config: WorkspaceConfig, directory: Union[str, Path], force: bool = False) -> Path:
    """Validate and write config as repotree.yaml inside directory."""
    logger = logging.getLogger('repotree.init')
    config.validate()

    path = Path(directory) / CONFIG_FILE_NAME
    if path.exists() and not force:
        raise ConfigError(f"{path} exists -- use --force to override")

    try:
        path.write_text(dump_config(config), encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"failed to write {path}: {e}", context={'path': str(path)}) from e

    logger.info(f"Wrote {path}")
    return path


def init_workspace(
    directory: Union[str, Path],
    server: str,
    orgs: Sequence[str] = (),
    users: Sequence[str] = (),
    single_dir: Optional[bool] = None,
    separator: Optional[str] = None,
    force: bool = False,
    detect_enterprise: Callable[[str], bool] = detect_enterprise_server,
) -> Path:
    """
    Create repotree.yaml for a new sync root.

    A single org or user is written as `org:`/`user:`, several as a mapping
    with empty criteria.
    """
    if server != "github.com" and not detect_enterprise(server):
        raise ConfigError(f"could not determine server type for {server!r}")

    if orgs and users:
        raise ConfigError("cannot have orgs and users in one workspace created by init")
    if not orgs and not users:
        raise ConfigError("at least one org or user is required")

    github = GitHubConfig(
        server=server,
        single_dir_for_all_repos=single_dir,
        account_prefix_separator=separator,
    )
    if len(orgs) == 1:
        github.org = orgs[0]
    else:
        github.orgs = {name: None for name in orgs}
    if len(users) == 1:
        github.user = users[0]
    else:
        github.users = {name: None for name in users}

    return write_config(WorkspaceConfig(github=github), directory, force=force)
