"""Command line entry point.

Runs single tracker operations against bookings loaded from a JSON file.
The file looks like::

    {
      "shipments": [{"id": "SHP-1001", "status": "IN_TRANSIT"}],
      "assignments": [
        {"id": "A-1", "shipment_id": "SHP-1001", "vehicle_number": "KA01AB1234"}
      ]
    }

Stored events, usage and registrations live in memory unless ``--state``
names a JSON file to load them from and save them back to.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError

from shiptrack._constants import CELLULAR_PROVIDER, CROSSING_PROVIDER
from shiptrack.config import TrackerConfig
from shiptrack.exceptions import TrackingError
from shiptrack.lifecycle import InMemoryBookingDirectory
from shiptrack.models.shipment import Shipment, VehicleAssignment
from shiptrack.state.repository import InMemoryRepository
from shiptrack.tracker import ShipmentTracker

_logger = logging.getLogger(__name__)


def _load_json(path: Path) -> Any:
    with path.open(encoding="utf-8") as fh:
        return json.load(fh)


def load_bookings(path: Path) -> InMemoryBookingDirectory:
    data = _load_json(path)
    return InMemoryBookingDirectory(
        shipments=[Shipment.model_validate(item) for item in data.get("shipments", [])],
        assignments=[VehicleAssignment.model_validate(item) for item in data.get("assignments", [])],
    )


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_to_jsonable(item) for item in value]
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="shiptrack", description="Shipment location tracking.")
    parser.add_argument("--bookings", required=True, type=Path, help="JSON file with shipments and assignments")
    parser.add_argument("--state", type=Path, help="JSON file to load stored state from and save it to")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    crossings = sub.add_parser("crossings", help="Refresh toll crossings (paid call)")
    crossings.add_argument("shipment_id")

    ping = sub.add_parser("ping", help="Refresh the cellular location (paid call)")
    ping.add_argument("shipment_id")

    enable = sub.add_parser("enable-sim", help="Register a phone for cellular tracking")
    enable.add_argument("shipment_id")
    enable.add_argument("phone")
    enable.add_argument("--days", type=int, default=1, help="Registration length in days")

    cached = sub.add_parser("cached", help="Show stored crossings without calling the provider")
    cached.add_argument("shipment_id")
    cached.add_argument("--map", action="store_true", help="Output clusters, polyline and viewport")

    usage = sub.add_parser("usage", help="Show this month's API usage")
    usage.add_argument("--provider", choices=[CROSSING_PROVIDER, CELLULAR_PROVIDER], default=CROSSING_PROVIDER)

    sub.add_parser("prune", help="Delete API call records past the retention window")
    return parser


async def run(args: argparse.Namespace) -> Any:
    config = TrackerConfig.from_env()
    directory = load_bookings(args.bookings)
    if args.state is not None and args.state.exists():
        repository = InMemoryRepository.from_snapshot(_load_json(args.state))
    else:
        repository = InMemoryRepository()

    try:
        async with ShipmentTracker(config, directory=directory, repository=repository) as tracker:
            if args.command == "crossings":
                return await tracker.refresh_crossings(args.shipment_id)
            if args.command == "ping":
                return await tracker.refresh_ping(args.shipment_id)
            if args.command == "enable-sim":
                return await tracker.enable_cellular_tracking(args.shipment_id, args.phone, args.days)
            if args.command == "cached":
                if args.map:
                    return await tracker.map_view(args.shipment_id)
                return await tracker.load_cached_crossings(args.shipment_id)
            if args.command == "usage":
                return await tracker.usage_summary(args.provider)
            if args.command == "prune":
                return {"removed": await tracker.run_maintenance()}
            raise ValueError(f"Unknown command {args.command!r}")
    finally:
        if args.state is not None:
            args.state.write_text(json.dumps(repository.snapshot(), indent=2), encoding="utf-8")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        result = asyncio.run(run(args))
    except ValidationError as exc:
        print(json.dumps({"error": "invalid input", "detail": exc.errors(include_url=False)}, default=str))
        return 2
    except TrackingError as exc:
        _logger.debug("Command %s failed", args.command, exc_info=True)
        print(json.dumps({"error": type(exc).__name__, "detail": str(exc)}))
        return 1

    print(json.dumps(_to_jsonable(result), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
