"""
repotree - keep a directory tree of git clones converged with the repositories
of GitHub organizations and users.

Local clones are matched to the desired repositories by remote URL, then
cloned, moved, fast-forwarded or pruned in parallel.
"""

__version__ = "1.0.0"
__description__ = "Keep a tree of git working copies in sync with a repository host"


def main():
    """Run the repotree command line."""
    from .cli import main as cli_main
    return cli_main()


__all__ = ["main", "__version__"]
