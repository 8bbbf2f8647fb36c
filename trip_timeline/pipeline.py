"""Orchestrates ingest and regrouping: extract → normalize → dedup → assign.

Trip bookkeeping never blocks the primary write: once steps are saved they
stay saved, and a grouping failure leaves them ungrouped for a later
recompute to repair.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from trip_timeline.assemble.assigner import assign_new_steps, refresh_trip
from trip_timeline.assemble.dedup import filter_duplicates
from trip_timeline.assemble.grouper import date_range, group_steps
from trip_timeline.assemble.namer import name_trip
from trip_timeline.errors import ExtractionFailure, GroupingFailure, ValidationFailure
from trip_timeline.extract.email_parser import email_fingerprint
from trip_timeline.models import (
    IngestResult,
    IngestStatus,
    Notification,
    ParsedBooking,
    RecomputeResult,
    RejectedSegment,
    TravelStep,
    Trip,
)
from trip_timeline.normalize.segment import (
    COORDINATE_FIELDS,
    OPTIONAL_TEXT_FIELDS,
    absent_to_none,
    coerce_coordinate,
    normalize_segment,
    parse_step_type,
)
from trip_timeline.notify import LoggingNotifier, Notifier

logger = logging.getLogger(__name__)


class TripService:
    def __init__(self, store, notifier: Optional[Notifier] = None):
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        # duplicate checks and membership writes for one batch are one unit
        self._lock = threading.RLock()

    # ---------------------------------------------------------------------------
    # Ingest
    # ---------------------------------------------------------------------------

    def ingest_email(self, user_id: str, email_content: Dict[str, Any], extractor) -> IngestResult:
        """Extract a forwarded confirmation email and add its segments."""
        fingerprint = email_fingerprint(email_content)
        booking = extractor.extract(email_content)
        logger.info("Email %s extracted as %s with %d segment(s)", fingerprint, booking.type, len(booking.segments))
        try:
            return self.add_booking(user_id, booking)
        except ExtractionFailure as e:
            logger.warning("Nothing extracted from email %s (%r): %s", fingerprint, email_content.get("subject", ""), e)
            self.notifier.parsing_failed(user_id)
            return IngestResult(status=IngestStatus.EXTRACTION_FAILED, message=str(e))

    def add_booking(self, user_id: str, booking: ParsedBooking) -> IngestResult:
        """Validate, dedup, save and group the segments of one booking.

        Raises ExtractionFailure when the booking carries no usable segments.
        """
        if booking.is_unknown:
            raise ExtractionFailure("extraction returned no usable segments")

        candidates: List[TravelStep] = []
        rejected: List[RejectedSegment] = []
        for i, segment in enumerate(booking.segments):
            try:
                candidates.append(normalize_segment(segment, user_id, booking.type, index=i))
            except ValidationFailure as e:
                logger.warning("Rejecting segment %d of %s booking: %s", i, booking.type, e.reason)
                rejected.append(RejectedSegment(index=i, reason=e.reason))

        with self._lock:
            fresh, skipped = filter_duplicates(candidates, self.store.list_steps(user_id))
            if not fresh:
                message = "Nothing changed: "
                message += f"{skipped} duplicate(s) skipped" if skipped else "no valid segments"
                if rejected:
                    message += f", {len(rejected)} segment(s) rejected"
                logger.info(message)
                return IngestResult(
                    status=IngestStatus.NOTHING_CHANGED,
                    rejected=rejected,
                    duplicates_skipped=skipped,
                    message=message,
                )

            added = self.store.insert_steps(fresh)
            logger.info("Saved %d %s step(s) for %s", len(added), booking.type, user_id)

            result = IngestResult(
                status=IngestStatus.PARTIAL if rejected else IngestStatus.ADDED,
                rejected=rejected,
                duplicates_skipped=skipped,
            )
            try:
                assignment = assign_new_steps(self.store, user_id, added)
                result.trip = assignment.trip
                result.trip_created = assignment.created
                logger.info("Batch %s", assignment.describe())
            except GroupingFailure as e:
                logger.exception("Grouping failed; %d step(s) left ungrouped", len(added))
                result.grouping_error = str(e)

            result.added = [self.store.get_step(s.id) for s in added]

        result.message = f"Added {len(result.added)} of {len(booking.segments)} segment(s)"
        self.notifier.travel_added(Notification(
            user_id=user_id,
            booking_type=booking.type,
            trip_name=result.trip.name if result.trip else "",
            segment_count=len(result.added),
            duplicates_skipped=skipped,
        ))
        return result

    # ---------------------------------------------------------------------------
    # Full recompute
    # ---------------------------------------------------------------------------

    def recompute_trips(self, user_id: str) -> RecomputeResult:
        """Throw away a user's trips and regroup every step from scratch."""
        with self._lock:
            steps = self.store.list_steps(user_id)
            for trip in self.store.list_trips(user_id):
                self.store.delete_trip(trip.id)

            result = RecomputeResult(step_count=len(steps))
            for group in group_steps(steps):
                trip = None
                try:
                    trip = self.store.create_trip(Trip(
                        user_id=user_id,
                        name=group.suggested_name,
                        start_date=group.start_date or None,
                        end_date=group.end_date or None,
                    ))
                    self.store.assign_steps(group.step_ids, trip.id)
                except Exception:
                    logger.exception("Could not create trip %r; its steps stay ungrouped", group.suggested_name)
                    result.failed_groups += 1
                    if trip is not None:
                        self.store.delete_trip(trip.id)
                    continue
                result.trips.append(trip)
                logger.info("Created trip %s with %d steps", trip.name, len(group.steps))

        logger.info("Regrouped %d steps into %d trips", result.step_count, len(result.trips))
        return result

    # ---------------------------------------------------------------------------
    # Manual edits: every membership change renames and re-dates the trip
    # ---------------------------------------------------------------------------

    def refresh_trip(self, trip_id: str) -> Optional[Trip]:
        return refresh_trip(self.store, trip_id)

    def move_step(self, step_id: str, trip_id: Optional[str]) -> Trip:
        """Move a step to another trip, or to a new trip of its own when trip_id is None."""
        with self._lock:
            step = self.store.get_step(step_id)
            source = step.trip_id
            if trip_id is None:
                start, end = date_range([step])
                target = self.store.create_trip(Trip(
                    user_id=step.user_id,
                    name=name_trip([step]),
                    start_date=start,
                    end_date=end,
                ))
            else:
                target = self.store.get_trip(trip_id)
                if target.user_id != step.user_id:
                    raise GroupingFailure("cannot move a step into another user's trip")

            self.store.assign_steps([step_id], target.id)
            if source and source != target.id:
                self.refresh_trip(source)
            return self.refresh_trip(target.id)

    def update_step(self, step_id: str, changes: Dict[str, Any]) -> TravelStep:
        """Edit a step; absent values are normalized the same way as on ingest."""
        cleaned: Dict[str, Any] = {}
        for name, value in changes.items():
            if name in OPTIONAL_TEXT_FIELDS:
                cleaned[name] = absent_to_none(value)
            elif name in COORDINATE_FIELDS:
                cleaned[name] = coerce_coordinate(value)
            elif name == "type":
                cleaned[name] = parse_step_type(value)
            elif name in ("start_datetime", "origin_name"):
                if absent_to_none(value) is None:
                    raise ValidationFailure(f"missing {name}")
                cleaned[name] = value
            else:
                raise ValidationFailure(f"field {name!r} cannot be edited")

        with self._lock:
            step = self.store.update_step(step_id, **cleaned)
            if step.trip_id:
                self._refresh_quietly(step.trip_id)
            return step

    def delete_step(self, step_id: str):
        with self._lock:
            step = self.store.get_step(step_id)
            self.store.delete_step(step_id)
            if step.trip_id:
                self._refresh_quietly(step.trip_id)

    def delete_trip(self, trip_id: str):
        """Delete a trip; its steps are kept and become ungrouped."""
        with self._lock:
            self.store.delete_trip(trip_id)

    def _refresh_quietly(self, trip_id: str):
        try:
            self.refresh_trip(trip_id)
        except Exception:
            logger.exception("Could not refresh trip %s; run a recompute to repair", trip_id)

    # ---------------------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------------------

    def regenerate_share_token(self, trip_id: str) -> Trip:
        return self.store.regenerate_share_token(trip_id)

    def set_trip_public(self, trip_id: str, is_public: bool) -> Trip:
        return self.store.update_trip(trip_id, is_public=is_public)

    def shared_trip(self, share_token: str) -> Tuple[Trip, List[TravelStep]]:
        """Read-only view of a trip for someone holding its share token."""
        trip = self.store.trip_by_share_token(share_token)
        return trip, self.store.steps_for_trip(trip.id)

    def timeline(self, user_id: str) -> Tuple[List[Tuple[Trip, List[TravelStep]]], List[TravelStep]]:
        """(trips newest first with their steps, ungrouped steps)."""
        trips = sorted(
            self.store.list_trips(user_id),
            key=lambda t: t.start_date or "",
            reverse=True,
        )
        return (
            [(t, self.store.steps_for_trip(t.id)) for t in trips],
            self.store.ungrouped_steps(user_id),
        )
