"""Notification collaborator: told the final outcome of an ingest, nothing more."""

import logging
from typing import Protocol

from trip_timeline.models import Notification

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def travel_added(self, notification: Notification) -> None: ...

    def parsing_failed(self, user_id: str) -> None: ...


class LoggingNotifier:
    """Default notifier: records outcomes in the log instead of sending mail."""

    def travel_added(self, notification: Notification) -> None:
        logger.info(
            "Notify %s: %d %s segment(s) added to %r (%d duplicate(s) skipped)",
            notification.user_id,
            notification.segment_count,
            notification.booking_type,
            notification.trip_name,
            notification.duplicates_skipped,
        )

    def parsing_failed(self, user_id: str) -> None:
        logger.info("Notify %s: booking could not be extracted", user_id)
