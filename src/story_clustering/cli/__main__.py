"""CLI entry point: python -m story_clustering.cli sync|check-patterns"""

import argparse
import asyncio
import dataclasses
import json
import sys
from pathlib import Path

import structlog

from story_clustering.clustering.models import Activity
from story_clustering.config.settings import get_settings
from story_clustering.extraction.refs import ref_extractor
from story_clustering.logging_config import configure_logging
from story_clustering.sync.orchestrator import SyncResult, sync_author


def load_activities(path: Path) -> list[Activity]:
    """Read activities from a JSON list or an ``{"activities": [...]}`` object."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("activities", [])
    return [Activity.from_dict(item) for item in data]


def summarize(result: SyncResult) -> dict:
    summary = dataclasses.asdict(result)
    summary.pop("clusters")
    summary["cluster_names"] = [c.name for c in result.clusters]
    return summary


async def run_sync(author_id: str, activities_file: Path, self_identifiers: list[str]) -> dict:
    log = structlog.get_logger()
    activities = load_activities(activities_file)
    log.info("activities_loaded", file=str(activities_file), count=len(activities))
    result = await sync_author(author_id, activities, self_identifiers=self_identifiers)
    return summarize(result)


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="story_clustering.cli",
        description="Activity clustering CLI",
    )
    subparsers = parser.add_subparsers(dest="command")

    sync_parser = subparsers.add_parser("sync", help="Cluster activities and write grouping records")
    sync_parser.add_argument("--author", required=True, help="Author id owning the activities")
    sync_parser.add_argument("--activities", required=True, help="Path to an activities JSON file")
    sync_parser.add_argument(
        "--self",
        dest="self_identifiers",
        action="append",
        default=[],
        help="The author's tool handle or email (repeatable)",
    )

    subparsers.add_parser("check-patterns", help="Check every ref pattern against its examples")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    settings = get_settings()
    configure_logging(json_output=settings.log_json, log_level=settings.log_level)

    if args.command == "check-patterns":
        try:
            ref_extractor.validate()
        except ValueError as e:
            print(e, file=sys.stderr)
            sys.exit(1)
        print(f"{len(ref_extractor.patterns)} patterns OK")
    elif args.command == "sync":
        summary = asyncio.run(
            run_sync(args.author, Path(args.activities), args.self_identifiers)
        )
        print(json.dumps(summary, indent=2, default=str))


if __name__ == "__main__":
    main()
