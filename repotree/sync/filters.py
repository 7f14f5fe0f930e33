"""Glob matching and per-repository filter evaluation."""

import logging
from fnmatch import fnmatchcase
from typing import Iterable, Optional, Sequence

from ..hosting import RemoteRepo
from ..workspace_config import Criteria, GitHubConfig


def matches_any_filter(word: str, filters: Sequence[str]) -> bool:
    """True when word matches one of the glob filters, or there are none."""
    if not filters:
        return True
    return any(fnmatchcase(word, pattern) for pattern in filters)


def any_word_matches_any_filter(words: Iterable[str], filters: Sequence[str]) -> bool:
    if not filters:
        return True
    return any(matches_any_filter(word, filters) for word in words)


def _format_list(values: Iterable[str]) -> str:
    return "[" + " ".join(values) + "]"


def _is_or_is_not(value: bool) -> str:
    return "is" if value else "is not"


def _pick(global_value, account_criteria: Optional[Criteria], key: str):
    """Account value wins when set, the global one otherwise."""
    if account_criteria is not None:
        account_value = getattr(account_criteria, key)
        if isinstance(account_value, list) and account_value:
            return account_value
        if isinstance(account_value, bool):
            return account_value
    return global_value


def rejection_reason(repo: RemoteRepo, config: GitHubConfig) -> str:
    """
    Evaluate config's filter criteria against repo.

    Returns:
        "" when the repository is wanted, otherwise the reason it was rejected
    """
    account = config.criteria_for(repo.owner.login, repo.owner.type)

    names = _pick(config.names, account, "names")
    if not matches_any_filter(repo.name, names):
        return f"{repo.name} doesn't match any name in {_format_list(names)}"

    topics = _pick(config.topics, account, "topics")
    if not any_word_matches_any_filter(repo.topics, topics):
        return (f"none of the repo topics {_format_list(repo.topics)} "
                f"match any config topic {_format_list(topics)}")

    languages = _pick(config.languages, account, "languages")
    if not matches_any_filter(repo.language, languages):
        return f"{repo.language} doesn't match any language in {_format_list(languages)}"

    archived = _pick(config.archived, account, "archived")
    if archived is not None and repo.archived != archived:
        return f"repo {_is_or_is_not(repo.archived)} archived"

    fork = _pick(config.fork, account, "fork")
    if fork is not None and repo.fork != fork:
        return f"repo {_is_or_is_not(repo.fork)} a fork"

    is_template = _pick(config.is_template, account, "is_template")
    if is_template is not None and repo.is_template != is_template:
        return f"repo {_is_or_is_not(repo.is_template)} a template"

    private = _pick(config.private, account, "private")
    if private is not None and repo.private != private:
        return f"repo {_is_or_is_not(repo.private)} private"

    return exclusion_reason(repo, config.exclude) or exclusion_reason(
        repo, account.exclude if account is not None else None
    )


def exclusion_reason(repo: RemoteRepo, exclude: Optional[Criteria]) -> str:
    """Reason repo is excluded by the given exclusion criteria, or ""."""
    if exclude is None:
        return ""

    logger = logging.getLogger('repotree.sync.filters')

    if exclude.names and matches_any_filter(repo.name, exclude.names):
        return f"{repo.name} matches excluded name in {_format_list(exclude.names)}"

    if exclude.topics and repo.topics and any_word_matches_any_filter(repo.topics, exclude.topics):
        return (f"one of the repo topics {_format_list(repo.topics)} "
                f"matches excluded topic in {_format_list(exclude.topics)}")

    if exclude.languages and matches_any_filter(repo.language, exclude.languages):
        return f"{repo.language} matches excluded language in {_format_list(exclude.languages)}"

    for key, noun in (("archived", "archived"), ("fork", "a fork"),
                      ("is_template", "a template"), ("private", "private")):
        excluded = getattr(exclude, key)
        if excluded is not None and getattr(repo, key) == excluded:
            return f"repo {_is_or_is_not(excluded)} {noun} (excluded)"

    logger.debug(f"{repo.full_name} passed exclusions")
    return ""
