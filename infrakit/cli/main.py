"""infrakit command line interface.

    infrakit sync [provider] [project-id]   fetch and update the snapshot
    infrakit search [query]                 fuzzy-find a resource
    infrakit flows <project-id>             print load-balancer flows as JSON
    infrakit serve                          start the local query server
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

import questionary

from .. import __version__
from ..aggregation.sync import sync
from ..cache.store import SnapshotStore
from ..config import Settings, get_settings
from ..errors import InfrakitError
from ..flows import trace_flows
from ..query import display_label, fuzzy_rank, preview

logger = logging.getLogger("infrakit")

SYNC_EPILOG = """Examples:
  infrakit sync              - Sync all providers (AWS, GCP)
  infrakit sync aws          - Sync only AWS resources
  infrakit sync gcp          - Sync all GCP projects
  infrakit sync gcp my-proj  - Sync only the specified GCP project"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="infrakit",
        description="Inventory cloud resources into a local snapshot and query it.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", help="logging level (default: from settings)")
    sub = parser.add_subparsers(dest="command")

    p_sync = sub.add_parser(
        "sync",
        help="fetch resources from cloud providers and update the local cache",
        epilog=SYNC_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p_sync.add_argument("provider", nargs="?", help="'aws' or 'gcp' (default: all)")
    p_sync.add_argument("project_id", nargs="?", help="GCP project to sync and merge on its own")
    p_sync.add_argument(
        "--partial",
        action="store_true",
        default=None,
        help="continue past failing fetchers and save what succeeded",
    )

    p_search = sub.add_parser("search", help="search for a resource in the local cache")
    p_search.add_argument("query", nargs="?", default="", help="initial search text")
    p_search.add_argument("--limit", type=int, help="number of candidates to show")
    p_search.add_argument(
        "--no-interactive",
        action="store_true",
        help="print ranked matches instead of opening a picker",
    )

    p_flows = sub.add_parser("flows", help="print load-balancer flows for a project as JSON")
    p_flows.add_argument("project_id", help="project to trace")

    p_serve = sub.add_parser("serve", help="start a local web server to search resources")
    p_serve.add_argument("--host", help="bind address (default: from settings)")
    p_serve.add_argument("--port", type=int, help="port (default: from settings)")

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def cmd_sync(args: argparse.Namespace, settings: Settings) -> int:
    store = SnapshotStore.from_settings(settings)
    partial = settings.partial_sync if args.partial is None else args.partial
    outcome = sync(store, provider=args.provider, project_id=args.project_id, partial=partial)
    for warning in outcome.warnings:
        logger.warning("Fetcher %s failed: %s", warning.fetcher, warning.error)
    return 0


def _pick(ranked, limit: int) -> Optional[int]:
    choices = [
        questionary.Choice(title=f"{display_label(res)}  [{res.service}]", value=i)
        for i, (res, _score) in enumerate(ranked[:limit])
    ]
    return questionary.select("Select a resource:", choices=choices).ask()


def cmd_search(args: argparse.Namespace, settings: Settings) -> int:
    resources = SnapshotStore.from_settings(settings).load()
    limit = args.limit or settings.fuzzy_limit
    interactive = not args.no_interactive and sys.stdin.isatty()

    query = args.query
    if not query and interactive:
        query = questionary.text("Search:").ask()
        if query is None:
            logger.info("Search aborted.")
            return 0

    ranked = fuzzy_rank(resources, query or "", limit=limit)
    if not ranked:
        print("No matching resources.")
        return 1

    if not interactive:
        for res, score in ranked:
            print(f"{score:5.1f}  {display_label(res)}  [{res.provider}/{res.service}]")
        return 0

    idx = _pick(ranked, limit)
    if idx is None:
        logger.info("Search aborted.")
        return 0
    selected = ranked[idx][0]
    logger.info("Selected: %s (%s)", selected.name, selected.id)
    print(preview(selected))
    return 0


def cmd_flows(args: argparse.Namespace, settings: Settings) -> int:
    resources = SnapshotStore.from_settings(settings).load()
    flows = trace_flows(resources, args.project_id)
    print(json.dumps([f.to_dict() for f in flows], indent=2))
    return 0


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    from ..api.server import run_server

    run_server(settings, host=args.host, port=args.port)
    return 0


COMMANDS = {
    "sync": cmd_sync,
    "search": cmd_search,
    "flows": cmd_flows,
    "serve": cmd_serve,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    configure_logging(args.log_level or settings.log_level)

    if args.command is None:
        build_parser().print_help()
        return 2
    try:
        return COMMANDS[args.command](args, settings)
    except InfrakitError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted.")
        return 130


if __name__ == "__main__":
    sys.exit(main())
