"""Command line interface: repotree sync | init | list | serve."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import Config, SyncOptions, load_configuration
from .errors import RepoTreeError
from .listing import format_listing, list_repositories
from .server import serve, setup_logging
from .sync import build_action_list, run_plan
from .workspace_config import init_workspace


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repotree",
        description="Keep a tree of git clones in sync with the repositories of GitHub orgs and users.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync = subparsers.add_parser("sync", help="Clone, move, update and prune repositories")
    sync.add_argument("-n", "--dry-run", action="store_true", help="Print actions instead of doing them.")
    sync.add_argument(
        "-j", "--jobs", type=positive_int, metavar="N",
        help="Run up to N actions in parallel. (default: number of CPUs)",
    )
    sync.add_argument("-k", "--keep-going", action="store_true", help="Keep going even if an action fails.")
    sync.add_argument("-p", "--prune", action="store_true", help="Remove extra repositories.")
    sync.add_argument("paths", nargs="*", help="Limit the sync to these directories.")

    init = subparsers.add_parser("init", help="Create repotree.yaml in the current directory")
    init.add_argument("--server", required=True, help="GitHub server, e.g. github.com")
    accounts = init.add_mutually_exclusive_group(required=True)
    accounts.add_argument("--org", help="Sync the repositories of one organization")
    accounts.add_argument("--orgs", nargs="+", metavar="ORG", help="Sync several organizations")
    accounts.add_argument("--user", help="Sync the repositories of one user")
    accounts.add_argument("--users", nargs="+", metavar="USER", help="Sync several users")
    layout = init.add_mutually_exclusive_group()
    layout.add_argument(
        "--single-dir", dest="single_dir", action="store_const", const=True,
        help="Put every repository directly in the sync root",
    )
    layout.add_argument(
        "--nested", dest="single_dir", action="store_const", const=False,
        help="Put repositories in one directory per account",
    )
    init.add_argument("--separator", help="Repository directory name = account + SEPARATOR + repo")
    init.add_argument("-f", "--force", action="store_true", help="Overwrite an existing repotree.yaml")

    listing = subparsers.add_parser("list", help="Show the working tree state of local repositories")
    listing.add_argument("paths", nargs="*", help="Limit the listing to these directories.")

    subparsers.add_parser("serve", help="Run the MCP server on stdio")

    return parser


def cmd_sync(args: argparse.Namespace, config: Config) -> int:
    options = SyncOptions(
        dry_run=args.dry_run,
        jobs=config.default_jobs if args.jobs is None else args.jobs,
        keep_going=args.keep_going,
        prune=args.prune,
    )

    plan = build_action_list(Path.cwd(), args.paths, settings=config)
    result = run_plan(plan, options)

    if result.num_failed > 0:
        print(f"repotree: {result.num_failed} FAILED", file=sys.stderr)
        return 1
    return 0


def cmd_init(args: argparse.Namespace, config: Config) -> int:
    orgs = [args.org] if args.org else (args.orgs or [])
    users = [args.user] if args.user else (args.users or [])

    path = init_workspace(
        Path.cwd(),
        args.server,
        orgs=orgs,
        users=users,
        single_dir=args.single_dir,
        separator=args.separator,
        force=args.force,
    )
    print(f"Wrote {path}")
    return 0


def cmd_list(args: argparse.Namespace, config: Config) -> int:
    for line in format_listing(list_repositories(Path.cwd(), args.paths)):
        print(line)
    return 0


def cmd_serve(args: argparse.Namespace, config: Config) -> int:
    serve(config)
    return 0


COMMANDS = {
    "sync": cmd_sync,
    "init": cmd_init,
    "list": cmd_list,
    "serve": cmd_serve,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point of the repotree command."""
    args = build_parser().parse_args(argv)

    try:
        config = load_configuration()
    except ValueError as e:
        print(f"repotree: {e}", file=sys.stderr)
        return 2

    setup_logging(config)
    logger = logging.getLogger('repotree.cli')

    try:
        return COMMANDS[args.command](args, config)
    except RepoTreeError as e:
        logger.debug(f"{type(e).__name__}: {e.message}", extra={'operation': args.command})
        print(f"repotree: {e.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("repotree: interrupted", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
