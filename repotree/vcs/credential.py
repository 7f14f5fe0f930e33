"""Credential lookup through git's credential helpers."""

import logging
import subprocess
from dataclasses import dataclass

from ..errors import DiscoveryError
from ..platform import get_git_executable


@dataclass
class Credential:
    """Answer from `git credential fill`."""
    protocol: str = ""
    host: str = ""
    username: str = ""
    password: str = ""


def fill_credential(protocol: str, host: str) -> Credential:
    """
    Ask git's configured credential helpers for a credential.

    Args:
        protocol: URL scheme, normally "https"
        host: server name, e.g. "github.com"

    Returns:
        Credential populated from the helper's key=value answer
    """
    logger = logging.getLogger('repotree.vcs.credential')
    request = f"protocol={protocol}\nhost={host}\n\n"

    try:
        result = subprocess.run(
            [get_git_executable(), "credential", "fill"],
            input=request,
            capture_output=True,
            text=True,
        )
    except OSError as e:
        raise DiscoveryError(f"could not run git credential fill: {e}") from e

    if result.returncode != 0:
        raise DiscoveryError(
            f"git credential fill failed for {host}: {result.stderr.strip()}",
            context={'host': host}
        )

    cred = Credential()
    for line in result.stdout.splitlines():
        if not line:
            continue
        key, _, value = line.partition("=")
        if key in ("protocol", "host", "username", "password"):
            setattr(cred, key, value)
        else:
            logger.warning(f"unexpected credential key {key!r}")

    return cred
