"""MCP server exposing repotree planning, syncing and listing as tools."""

import logging
from pathlib import Path
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from .config import Config, SyncOptions, load_configuration, validate_configuration
from .errors import error_handler
from .listing import list_repositories as collect_listings
from .sync import CollectingReporter, action_to_dict, build_action_list, run_plan


def setup_logging(config: Config) -> None:
    """Setup logging for every repotree logger, with the operation tag when present."""
    class StructuredFormatter(logging.Formatter):
        def format(self, record):
            if hasattr(record, 'operation'):
                record.msg = f"[{record.operation}] {record.msg}"
            return super().format(record)

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    formatter = StructuredFormatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # children such as repotree.sync.scheduler inherit these handlers
    logger = logging.getLogger('repotree')
    logger.setLevel(getattr(logging, config.log_level))

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.propagate = False


def _workspace_dir(workspace: str) -> Path:
    path = Path(workspace).expanduser()
    if not path.is_absolute():
        path = Path.cwd() / path
    return path


def register_tools(server: FastMCP, server_config: Config) -> None:
    """Register MCP tools with the server instance."""

    @server.tool()
    def plan_sync(workspace: str, paths: Optional[List[str]] = None) -> dict:
        """
        Compute the actions a sync would take, without running any of them.

        Args:
            workspace: Directory inside a repotree sync root (the directory
                holding repotree.yaml, or any directory below it)
            paths: Optional subdirectories to restrict the plan to

        Returns:
            Dictionary with the sync root and the planned actions (clone,
            move_and_sync, sync or remove, each with its paths)
        """
        context = {'workspace': workspace}
        try:
            plan = build_action_list(_workspace_dir(workspace), paths or (), settings=server_config)
        except Exception as e:
            return error_handler.handle_error(e, context).to_dict()

        return error_handler.create_success_response(
            "plan_sync",
            {
                "sync_root": str(plan.sync_root),
                "actions": [action_to_dict(action) for action in plan.actions],
            },
            context
        )

    @server.tool()
    def run_sync(
        workspace: str,
        paths: Optional[List[str]] = None,
        dry_run: bool = True,
        prune: bool = False,
        keep_going: bool = False,
        jobs: Optional[int] = None,
    ) -> dict:
        """
        Synchronize a workspace: clone missing repositories, move misplaced
        ones, fast-forward branches and optionally remove extra repositories.

        Defaults to a dry run. Pass dry_run=False to make changes, and
        prune=True to allow deleting repositories that are no longer wanted.

        Args:
            workspace: Directory inside a repotree sync root
            paths: Optional subdirectories to restrict the sync to
            dry_run: Only report what would happen
            prune: Remove local repositories that do not match the config
            keep_going: Continue after a failed action
            jobs: Number of parallel workers (default: configured or CPU count)

        Returns:
            Dictionary with one event per action and a summary of the counts
        """
        context = {'workspace': workspace, 'dry_run': dry_run}
        try:
            options = SyncOptions(
                dry_run=dry_run,
                jobs=jobs or server_config.default_jobs,
                keep_going=keep_going,
                prune=prune,
            )
            plan = build_action_list(_workspace_dir(workspace), paths or (), settings=server_config)
            reporter = CollectingReporter(total=len(plan.actions))
            result = run_plan(plan, options, reporter=reporter)
        except Exception as e:
            return error_handler.handle_error(e, context).to_dict()

        return error_handler.create_success_response(
            "run_sync",
            {
                "events": [event.to_dict() for event in reporter.events],
                "summary": reporter.summary(),
                "enqueued_all": result.enqueued_all,
                "num_failed": result.num_failed,
            },
            context
        )

    @server.tool()
    def list_repositories(workspace: str, paths: Optional[List[str]] = None) -> dict:
        """
        List local repositories in a workspace with their working tree state.

        Args:
            workspace: Directory inside a repotree sync root
            paths: Optional subdirectories to restrict the listing to

        Returns:
            Dictionary with one entry per repository: flags ("c" changed,
            "U" unmerged, "?" untracked, "i" ignored) and the branch head
        """
        context = {'workspace': workspace}
        try:
            listings = collect_listings(_workspace_dir(workspace), paths or ())
        except Exception as e:
            return error_handler.handle_error(e, context).to_dict()

        return error_handler.create_success_response(
            "list_repositories",
            {"repositories": [listing.to_dict() for listing in listings]},
            context
        )

    init_logger = logging.getLogger('repotree.init')
    init_logger.info("MCP tools registered successfully")


def initialize_server(server_config: Optional[Config] = None) -> FastMCP:
    """Initialize MCP server with stdio transport."""
    server_config = server_config or load_configuration()
    setup_logging(server_config)
    init_logger = logging.getLogger('repotree.init')

    validation_issues = validate_configuration(server_config)
    for issue in validation_issues:
        if issue.startswith("ERROR:"):
            init_logger.error(issue[7:])
        elif issue.startswith("WARNING:"):
            init_logger.warning(issue[9:])

    error_count = sum(1 for issue in validation_issues if issue.startswith("ERROR:"))
    if error_count > 0:
        raise RuntimeError(f"Server startup failed due to {error_count} configuration error(s)")

    init_logger.info("Initializing MCP server with stdio transport")
    server = FastMCP("repotree", log_level=server_config.log_level)
    register_tools(server, server_config)

    init_logger.info("repotree MCP server initialized successfully")
    return server


def serve(server_config: Optional[Config] = None) -> None:
    """Run the MCP server until stdin closes."""
    server = initialize_server(server_config)
    try:
        server.run(transport="stdio")
    except KeyboardInterrupt:
        logging.getLogger('repotree.init').info("Server shutdown requested by user")
