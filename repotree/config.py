"""Runtime configuration for repotree."""

import os
import logging
from dataclasses import dataclass
from typing import Optional, List

from dotenv import load_dotenv

from .platform import get_platform_specific_defaults, validate_git_availability

load_dotenv()  # Load .env file if it exists

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class Config:
    """Process-wide settings loaded from the environment."""

    # Logging
    log_level: str = "INFO"

    # Execution
    jobs: Optional[int] = None

    # Repository host
    github_token: Optional[str] = None
    http_timeout: Optional[float] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        self.log_level = self.log_level.upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}")

        if self.jobs is not None and self.jobs < 1:
            raise ValueError("jobs must be at least 1")

        if self.http_timeout is not None and self.http_timeout <= 0:
            raise ValueError("http_timeout must be positive")

        if self.github_token is not None and not self.github_token.strip():
            self.github_token = None

    @property
    def default_jobs(self) -> int:
        """Worker count used when a sync does not ask for one."""
        if self.jobs is not None:
            return self.jobs
        return get_platform_specific_defaults()['jobs']


@dataclass
class SyncOptions:
    """Knobs for a single sync run."""
    dry_run: bool = False
    jobs: int = 1
    keep_going: bool = False
    prune: bool = False

    def __post_init__(self):
        if self.jobs < 1:
            raise ValueError("jobs must be at least 1")


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


def _optional_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    return float(value) if value else None


def load_configuration() -> Config:
    """Load configuration from environment variables with platform-specific defaults."""
    platform_defaults = get_platform_specific_defaults()

    try:
        return Config(
            log_level=os.getenv("REPOTREE_LOG_LEVEL", platform_defaults['log_level']),
            jobs=_optional_int("REPOTREE_JOBS"),
            github_token=os.getenv("REPOTREE_GITHUB_TOKEN"),
            http_timeout=_optional_float("REPOTREE_HTTP_TIMEOUT"),
        )
    except (ValueError, TypeError) as e:
        raise ValueError(f"Configuration error: {e}")


def validate_configuration(config: Config) -> List[str]:
    """Validate configuration and return any errors or warnings."""
    errors = []

    git_available, git_error = validate_git_availability()
    if not git_available:
        errors.append(f"ERROR: {git_error}")

    cpus = get_platform_specific_defaults()['jobs']
    if config.jobs is not None and config.jobs > 4 * cpus:
        errors.append(f"WARNING: {config.jobs} jobs is far more than the {cpus} available CPUs")

    if config.github_token is None:
        logging.getLogger('repotree.config').debug(
            "REPOTREE_GITHUB_TOKEN not set, git credential helper will be used"
        )

    return errors
