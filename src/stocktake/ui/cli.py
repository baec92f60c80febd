from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from dotenv import load_dotenv
from pydantic import ValidationError as PayloadValidationError

from stocktake import app
from stocktake.adapters.payloads import load_complete_payload
from stocktake.config import (
    ConfigurationError,
    configure_logging,
    get_audit_log_path,
    get_default_shop_id,
)
from stocktake.domain.counting import (
    CompleteRunRequest,
    CountLineInput,
    ReleaseRunRequest,
    RestartRunRequest,
    StartRunRequest,
)
from stocktake.domain.errors import (
    BadRequestError,
    ConflictError,
    InventoryError,
    NotFoundError,
)
from stocktake.domain.model import OwnerRef

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

EXIT_BAD_REQUEST = 2
EXIT_NOT_FOUND = 4
EXIT_CONFLICT = 5

MANUAL_SUFFIX = ":manual"


def _add_owner_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--user-id",
        type=str,
        help="Identity of the counting user",
    )
    parser.add_argument(
        "--operator",
        type=str,
        help="Operator label (display name when --user-id is given)",
    )


def _add_zone_argument(parser: argparse.ArgumentParser, *, required: bool = True) -> None:
    parser.add_argument("--zone", type=str, required=required, help="Zone id")


def _add_count_type_argument(parser: argparse.ArgumentParser, *, required: bool = True) -> None:
    parser.add_argument(
        "--count-type",
        type=int,
        required=required,
        help="Pass number: 1 first pass, 2 second pass, 3+ control",
    )


def _add_shop_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--shop",
        type=str,
        help="Shop id (defaults to STOCKTAKE_SHOP_ID)",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Coordinate inventory counts")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    start = subparsers.add_parser("start", help="Start or resume a counting run")
    _add_zone_argument(start)
    _add_count_type_argument(start)
    _add_owner_arguments(start)
    start.add_argument("--shop", type=str, help="Restrict the zone lookup to this shop")

    complete = subparsers.add_parser("complete", help="Submit counted lines and close a run")
    _add_zone_argument(complete, required=False)
    _add_count_type_argument(complete, required=False)
    _add_owner_arguments(complete)
    complete.add_argument("--run", type=str, help="Run id returned by start")
    complete.add_argument(
        "--file",
        type=Path,
        help="JSON payload with zone_id, count_type, owner and items",
    )
    complete.add_argument(
        "lines",
        nargs="*",
        help=f"Counted lines as CODE=QTY, suffixed with {MANUAL_SUFFIX} for manual entries",
    )

    release = subparsers.add_parser("release", help="Release an empty active run")
    release.add_argument("--run", type=str, required=True, help="Run id")
    _add_zone_argument(release)
    _add_owner_arguments(release)

    restart = subparsers.add_parser("restart", help="Force-close active runs of a zone")
    _add_zone_argument(restart)
    _add_count_type_argument(restart)
    _add_owner_arguments(restart)

    reset = subparsers.add_parser("reset", help="Delete all counting data of a shop")
    _add_shop_argument(reset)

    summary = subparsers.add_parser("summary", help="Show the shop counting summary")
    _add_shop_argument(summary)

    conflicts = subparsers.add_parser("conflicts", help="Show open conflicts of a zone")
    _add_zone_argument(conflicts)

    run = subparsers.add_parser("run", help="Show a completed run with its lines")
    run.add_argument("--run", type=str, required=True, help="Run id")

    zones = subparsers.add_parser("zones", help="List zones with their busy state and progress")
    _add_shop_argument(zones)
    _add_count_type_argument(zones, required=False)
    zones.add_argument(
        "--include-disabled",
        action="store_true",
        help="Also list disabled zones",
    )

    report = subparsers.add_parser("report", help="Show the finalized count of every zone")
    _add_shop_argument(report)

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _shop_from_args(args: argparse.Namespace) -> UUID:
    if args.shop:
        return _parse_uuid(args.shop)
    return get_default_shop_id()


def _owner_from_args(args: argparse.Namespace) -> OwnerRef:
    user_id = _parse_uuid(args.user_id) if args.user_id else None
    if user_id is None and not (args.operator or "").strip():
        raise ValueError("Either --user-id or --operator is required")
    return OwnerRef(user_id=user_id, label=args.operator)


def _parse_line(token: str) -> CountLineInput:
    code, separator, quantity = token.rpartition("=")
    if not separator:
        raise ValueError(f"Invalid line {token!r}, expected CODE=QTY")
    manual = quantity.endswith(MANUAL_SUFFIX)
    if manual:
        quantity = quantity[: -len(MANUAL_SUFFIX)]
    return CountLineInput(code=code, quantity=quantity, manual=manual)


def _build_complete_request(args: argparse.Namespace) -> CompleteRunRequest:
    if args.file is not None:
        if args.lines:
            raise ValueError("Pass counted lines either inline or with --file, not both")
        return load_complete_payload(args.file).to_request()
    if args.zone is None or args.count_type is None:
        raise ValueError("--zone and --count-type are required without --file")
    return CompleteRunRequest(
        zone_id=_parse_uuid(args.zone),
        count_type=args.count_type,
        owner=_owner_from_args(args),
        lines=[_parse_line(token) for token in args.lines],
        run_id=_parse_uuid(args.run) if args.run else None,
    )


def _json_default(value: object) -> Any:
    if isinstance(value, UUID | Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _to_jsonable(result: object) -> Any:
    if dataclasses.is_dataclass(result) and not isinstance(result, type):
        return dataclasses.asdict(result)
    if isinstance(result, tuple | list):
        return [_to_jsonable(item) for item in result]  # pyright: ignore[reportUnknownVariableType]
    return result


def _emit(result: object) -> None:
    sys.stdout.write(json.dumps(_to_jsonable(result), default=_json_default, indent=2))
    sys.stdout.write("\n")


def _dispatch(args: argparse.Namespace) -> object:  # noqa: PLR0911
    command = args.command
    if command == "start":
        return app.start_run(
            StartRunRequest(
                zone_id=_parse_uuid(args.zone),
                count_type=args.count_type,
                owner=_owner_from_args(args),
                shop_id=_parse_uuid(args.shop) if args.shop else None,
            )
        )
    if command == "complete":
        return app.complete_run(_build_complete_request(args))
    if command == "release":
        request = ReleaseRunRequest(
            run_id=_parse_uuid(args.run),
            zone_id=_parse_uuid(args.zone),
            owner=_owner_from_args(args),
        )
        app.release_run(request)
        return {"run_id": request.run_id, "released": True}
    if command == "restart":
        return app.restart_run(
            RestartRunRequest(
                zone_id=_parse_uuid(args.zone),
                count_type=args.count_type,
                owner=_owner_from_args(args),
            )
        )
    if command == "reset":
        return app.reset_shop_inventory(_shop_from_args(args))
    if command == "summary":
        return app.get_summary(_shop_from_args(args))
    if command == "conflicts":
        return app.get_zone_conflict_detail(_parse_uuid(args.zone))
    if command == "run":
        return app.get_completed_run_detail(_parse_uuid(args.run))
    if command == "report":
        return app.get_finalized_zone_report(_shop_from_args(args))
    if command == "zones":
        return app.get_zone_statuses(
            _shop_from_args(args),
            count_type=args.count_type,
            include_disabled=args.include_disabled,
        )
    raise ValueError(f"Unsupported command: {command}")


def _exit_code_for(error: InventoryError) -> int:
    if isinstance(error, NotFoundError):
        return EXIT_NOT_FOUND
    if isinstance(error, ConflictError):
        return EXIT_CONFLICT
    if isinstance(error, BadRequestError):
        return EXIT_BAD_REQUEST
    return 1


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    load_dotenv()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(
        level=logging.DEBUG if parsed_args.verbose else logging.INFO,
        audit_log=get_audit_log_path(),
    )

    try:
        result = _dispatch(parsed_args)
    except InventoryError as exc:
        sys.stderr.write(f"Error: {exc.message}\n")
        sys.exit(_exit_code_for(exc))
    except (ValueError, PayloadValidationError) as exc:
        log.error("CLI validation error: %s", exc)  # noqa: TRY400
        sys.stderr.write(f"Error: {exc}\n")
        sys.exit(EXIT_BAD_REQUEST)
    except ConfigurationError as exc:
        hint = f" (set {exc.variable} in the environment or .env)" if exc.variable else ""
        sys.stderr.write(f"Configuration error: {exc}{hint}\n")
        sys.exit(1)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)

    _emit(result)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    main()
