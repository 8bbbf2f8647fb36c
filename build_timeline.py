#!/usr/bin/env python3
"""CLI entry point for the travel timeline.

Usage:
    python build_timeline.py ingest --user ID path/to/confirmation.eml
    python build_timeline.py add --user ID path/to/booking.json
    python build_timeline.py recompute --user ID
    python build_timeline.py show --user ID [--format text|json]
    python build_timeline.py move STEP_ID [--trip TRIP_ID]
    python build_timeline.py share TRIP_ID [--regenerate] [--public|--private]

Options:
    --store PATH      JSON store file (default: trip_store.json)
    --verbose         Debug logging on stderr
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from trip_timeline.config import LOG_LEVEL, STORE_PATH
from trip_timeline.errors import TripTimelineError
from trip_timeline.extract.email_parser import extract_content, parse_message
from trip_timeline.extract.llm_extractor import LLMExtractor, build_client, parse_response
from trip_timeline.models import IngestResult, ParsedBooking
from trip_timeline.output import format_timeline, to_json
from trip_timeline.pipeline import TripService
from trip_timeline.store import JsonTripStore

logger = logging.getLogger("build_timeline")


def _print_ingest(result: IngestResult):
    print(f"Status: {result.status.value}")
    if result.message:
        print(f"  {result.message}")
    if result.duplicates_skipped:
        print(f"  Duplicates skipped: {result.duplicates_skipped}")
    for rejected in result.rejected:
        print(f"  Segment {rejected.index} rejected: {rejected.reason}")
    if result.trip:
        verb = "Created" if result.trip_created else "Joined"
        print(f"  {verb} trip: {result.trip.name} ({result.trip.start_date} → {result.trip.end_date})")
    if result.grouping_error:
        print(f"  Grouping failed, steps left ungrouped: {result.grouping_error}")


def _load_booking(path: Path) -> ParsedBooking:
    return parse_response(path.read_text(encoding="utf-8"))


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Group forwarded travel confirmations into trips.",
    )
    parser.add_argument("--store", default=str(STORE_PATH), help="JSON store file")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_ingest = sub.add_parser("ingest", help="Extract and add a forwarded .eml confirmation")
    p_ingest.add_argument("--user", required=True)
    p_ingest.add_argument("eml", help="Path to the .eml file")

    p_add = sub.add_parser("add", help="Add a booking already in extraction JSON shape")
    p_add.add_argument("--user", required=True)
    p_add.add_argument("booking", help='JSON file: {"type": ..., "segments": [...]}')

    p_recompute = sub.add_parser("recompute", help="Regroup all of a user's steps into trips")
    p_recompute.add_argument("--user", required=True)

    p_show = sub.add_parser("show", help="Print a user's timeline")
    p_show.add_argument("--user", required=True)
    p_show.add_argument("--format", choices=["text", "json"], default="text")
    p_show.add_argument("--output", help="Write to this file instead of stdout")

    p_move = sub.add_parser("move", help="Move a step to a trip (or a new trip)")
    p_move.add_argument("step_id")
    p_move.add_argument("--trip", default=None, help="Target trip id; omit for a new trip")

    p_share = sub.add_parser("share", help="Print (or regenerate) a trip's share token")
    p_share.add_argument("trip_id")
    p_share.add_argument("--regenerate", action="store_true")
    visibility = p_share.add_mutually_exclusive_group()
    visibility.add_argument("--public", dest="is_public", action="store_true", default=None)
    visibility.add_argument("--private", dest="is_public", action="store_false")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    service = TripService(JsonTripStore(Path(args.store)))

    try:
        if args.command == "ingest":
            content = extract_content(parse_message(Path(args.eml).read_bytes()))
            extractor = LLMExtractor(build_client())
            _print_ingest(service.ingest_email(args.user, content, extractor))

        elif args.command == "add":
            _print_ingest(service.add_booking(args.user, _load_booking(Path(args.booking))))

        elif args.command == "recompute":
            result = service.recompute_trips(args.user)
            print(f"Regrouped {result.step_count} steps into {len(result.trips)} trips")
            for trip in result.trips:
                print(f"  {trip.name}: {trip.start_date} → {trip.end_date}")
            if result.failed_groups:
                print(f"  {result.failed_groups} group(s) failed; their steps are ungrouped")

        elif args.command == "show":
            trips, ungrouped = service.timeline(args.user)
            if args.format == "json":
                text = to_json(trips, ungrouped)
            else:
                text = format_timeline(trips, ungrouped)
            if args.output:
                Path(args.output).write_text(text, encoding="utf-8")
                print(f"Timeline written to: {args.output}")
            else:
                print(text)

        elif args.command == "move":
            trip = service.move_step(args.step_id, args.trip)
            print(f"Step {args.step_id} is now in {trip.name} ({trip.id})")

        elif args.command == "share":
            if args.regenerate:
                trip = service.regenerate_share_token(args.trip_id)
            else:
                trip = service.store.get_trip(args.trip_id)
            if args.is_public is not None:
                trip = service.set_trip_public(trip.id, args.is_public)
            print(json.dumps({"trip_id": trip.id, "share_token": trip.share_token, "is_public": trip.is_public}))

    except TripTimelineError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
