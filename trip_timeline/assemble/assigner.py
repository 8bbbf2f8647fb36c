"""Incremental assignment of newly saved steps to an existing or new trip."""

import logging
from datetime import timedelta
from typing import List, Optional

from trip_timeline.config import MAX_GAP_DAYS
from trip_timeline.assemble.grouper import date_range
from trip_timeline.assemble.namer import chronological, name_trip
from trip_timeline.errors import GroupingFailure
from trip_timeline.models import AssignmentResult, TravelStep, Trip
from trip_timeline.normalize.date_math import date_from_key, extract_date_key

logger = logging.getLogger(__name__)


def within_window(trip: Trip, step_date_key: str, gap_days: int = MAX_GAP_DAYS) -> bool:
    """True if the date lies in [start - gap, end + gap], inclusive."""
    day = date_from_key(step_date_key)
    start = date_from_key(trip.start_date)
    end = date_from_key(trip.end_date) or start
    if day is None or start is None:
        return False
    return start - timedelta(days=gap_days) <= day <= end + timedelta(days=gap_days)


def resolve_trip(new_steps: List[TravelStep], trips: List[Trip]) -> Optional[Trip]:
    """First trip, in stored order, whose window holds the earliest new step.

    When several trips qualify the first one wins; no nearest-boundary rule.
    """
    if not new_steps:
        return None
    first = chronological(new_steps)[0]
    key = extract_date_key(first.start_datetime)
    if not key:
        return None
    for trip in trips:
        if within_window(trip, key):
            return trip
    return None


def refresh_trip(store, trip_id: str) -> Optional[Trip]:
    """Recompute a trip's name and dates from its full membership.

    Deletes the trip and returns None once it has no members left.
    """
    trip = store.get_trip(trip_id)
    members = store.steps_for_trip(trip_id)
    if not members:
        logger.info("Deleting empty trip %s (%s)", trip_id, trip.name)
        store.delete_trip(trip_id)
        return None
    start, end = date_range(members)
    return store.update_trip(trip_id, name=name_trip(members), start_date=start, end_date=end)


def assign_new_steps(store, user_id: str, new_steps: List[TravelStep]) -> AssignmentResult:
    """Put a freshly inserted batch into one trip, all or nothing.

    Joins the first existing trip within MAX_GAP_DAYS of the batch, else
    creates a trip named from the batch alone. On any failure the batch is
    left ungrouped and GroupingFailure is raised.
    """
    if not new_steps:
        raise GroupingFailure("no steps to assign")

    step_ids = [s.id for s in new_steps]
    created: Optional[Trip] = None
    try:
        trip = resolve_trip(new_steps, store.list_trips(user_id))
        if trip is None:
            start, end = date_range(new_steps)
            created = store.create_trip(Trip(
                user_id=user_id,
                name=name_trip(new_steps),
                start_date=start,
                end_date=end,
            ))
            trip = created
            logger.info("Created trip %s (%s) for %d new steps", trip.id, trip.name, len(new_steps))
        else:
            logger.info("Joining %d new steps to trip %s (%s)", len(new_steps), trip.id, trip.name)

        store.assign_steps(step_ids, trip.id)
        trip = refresh_trip(store, trip.id)
        if trip is None:
            raise GroupingFailure("trip vanished while assigning steps")
    except Exception as e:
        _rollback(store, step_ids, created)
        if isinstance(e, GroupingFailure):
            raise
        raise GroupingFailure(f"could not assign steps to a trip: {e}") from e

    return AssignmentResult(trip=trip, created=created is not None)


def _rollback(store, step_ids: List[str], created: Optional[Trip]):
    try:
        store.assign_steps(step_ids, None)
        if created is not None:
            store.delete_trip(created.id)
    except Exception:
        logger.exception("Rollback after failed assignment also failed; steps %s may need a recompute", step_ids)
