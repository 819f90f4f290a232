"""
Operator command line.

    erp-sync poll [--object-type order|invoice|all]
    erp-sync backfill --start 2024-01-01 [--end 2024-01-31] [--object-type ...]
    erp-sync status [--probe]
    erp-sync authorize CODE
    erp-sync disconnect
    erp-sync log [--limit 20] [--object-type order|invoice] [--errors]
"""

import argparse
import sys
from datetime import date
from typing import Callable, List, Optional

from .constants import ObjectType, OperationStatus
from .db.db_config import initialize_db
from .exceptions import BaseError, ValidationError
from .runtime import Runtime, build_runtime
from .schemas.sync_schemas import SyncLogEntry
from .utils.json_utils import dumps
from .utils.logger import configure_logging


def _object_types(value: str) -> List[ObjectType]:
    if value == "all":
        return list(ObjectType)
    return [ObjectType(value)]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="erp-sync", description="External ERP synchronization")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    type_choices = [t.value for t in ObjectType] + ["all"]

    poll = subparsers.add_parser("poll", help="Incremental sync since the last cursor")
    poll.add_argument("--object-type", choices=type_choices, default="all")

    backfill = subparsers.add_parser("backfill", help="Historical import of a date range")
    backfill.add_argument("--start", type=date.fromisoformat, required=True)
    backfill.add_argument("--end", type=date.fromisoformat, default=None)
    backfill.add_argument("--object-type", choices=type_choices, default="all")

    status = subparsers.add_parser("status", help="Show connection and sync status")
    status.add_argument("--probe", action="store_true", help="Also call the API once")

    authorize = subparsers.add_parser("authorize", help="Exchange an authorization code")
    authorize.add_argument("code")

    subparsers.add_parser("disconnect", help="Deactivate the stored credential")

    log = subparsers.add_parser("log", help="Show recent sync log entries")
    log.add_argument("--limit", type=int, default=20)
    log.add_argument("--object-type", choices=[t.value for t in ObjectType], default=None)
    log.add_argument("--errors", action="store_true", help="Only failed entries")

    return parser


def run_command(args: argparse.Namespace, runtime: Runtime) -> int:
    """Execute a parsed command, print JSON and return the exit code."""
    if args.command == "poll":
        results = [runtime.orchestrator.poll(t) for t in _object_types(args.object_type)]
        print(dumps([r.model_dump(mode="json") for r in results], indent=2))
        return 0 if all(r.succeeded for r in results) else 2

    if args.command == "backfill":
        end = args.end or date.today()
        results = [
            runtime.orchestrator.backfill(t, args.start, end) for t in _object_types(args.object_type)
        ]
        print(dumps([r.model_dump(mode="json") for r in results], indent=2))
        return 0 if all(r.succeeded for r in results) else 2

    if args.command == "status":
        status = runtime.status_service.get_status(probe=args.probe)
        print(dumps(status.model_dump(mode="json"), indent=2))
        return 0 if status.connected else 1

    if args.command == "authorize":
        snapshot = runtime.token_manager.authorize(args.code)
        print(dumps(snapshot.model_dump(mode="json"), indent=2))
        return 0

    if args.command == "disconnect":
        was_active = runtime.token_manager.disconnect()
        print(dumps({"disconnected": True, "was_active": was_active}))
        return 0

    if args.command == "log":
        if runtime.sync_log is None:
            raise ValidationError("Sync log is disabled", field="enable_sync_log")
        entries = runtime.sync_log.recent(
            limit=args.limit,
            object_type=args.object_type,
            status=OperationStatus.ERROR if args.errors else None,
        )
        print(dumps([SyncLogEntry.model_validate(e).model_dump(mode="json") for e in entries], indent=2))
        return 0

    raise ValueError(f"Unknown command: {args.command}")


def main(
    argv: Optional[List[str]] = None,
    runtime_factory: Optional[Callable[[], Runtime]] = None,
) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("erp_sync_cli", log_level=args.log_level)

    try:
        runtime = runtime_factory() if runtime_factory else build_runtime(db_manager=initialize_db())
        return run_command(args, runtime)
    except BaseError as e:
        print(dumps(e.to_dict()), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
