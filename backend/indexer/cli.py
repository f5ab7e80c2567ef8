"""Command-line entry point for one-off indexation cycles.

Run from the backend directory:
    python -m indexer.cli inspect <property_id> --limit 20
    python -m indexer.cli submit <property_id> https://example.com/a https://example.com/b
    python -m indexer.cli sweep
    python -m indexer.cli retry-queue
    python -m indexer.cli snapshot <property_id>
"""

import argparse
import json
import logging
import sys
import uuid

from indexer.models.base import SyncSessionLocal
from indexer.services import scheduler
from indexer.services.batch_runner import BatchRunner
from indexer.services.errors import IndexerError
from indexer.services.snapshot import snapshot_property

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="indexer", description="Quota-governed URL indexation scheduler")
    sub = parser.add_subparsers(dest="command", required=True)

    inspect = sub.add_parser("inspect", help="Inspect URLs for one property")
    inspect.add_argument("property_id", type=uuid.UUID)
    inspect.add_argument("--limit", type=int, default=None, help="Maximum URLs to inspect")
    inspect.add_argument("--url", dest="urls", action="append", help="Inspect this URL (repeatable)")

    submit = sub.add_parser("submit", help="Submit URLs for indexing")
    submit.add_argument("property_id", type=uuid.UUID)
    submit.add_argument("urls", nargs="+")
    submit.add_argument("--action", choices=["URL_UPDATED", "URL_DELETED"], default="URL_UPDATED")

    sub.add_parser("sweep", help="Run the inspection sweep over every eligible property")
    sub.add_parser("retry-queue", help="Retry queued submissions for every property")

    snapshot = sub.add_parser("snapshot", help="Write today's verdict snapshot for a property")
    snapshot.add_argument("property_id", type=uuid.UUID)

    return parser


def run(args: argparse.Namespace) -> dict:
    db = SyncSessionLocal()
    try:
        if args.command == "inspect":
            return BatchRunner(db).run_inspection(
                args.property_id, limit=args.limit, urls=args.urls, trigger="cli"
            ).to_dict()
        if args.command == "submit":
            return BatchRunner(db).run_submission(
                args.property_id, args.urls, action=args.action, trigger="cli"
            ).to_dict()
        if args.command == "sweep":
            return scheduler.run_inspection_sweep(db)
        if args.command == "retry-queue":
            return scheduler.run_queue_sweep(db)
        if args.command == "snapshot":
            return snapshot_property(db, args.property_id)
        raise ValueError(f"Unknown command: {args.command}")
    finally:
        db.close()


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = build_parser().parse_args(argv)

    try:
        output = run(args)
    except IndexerError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1

    print(json.dumps(output, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
