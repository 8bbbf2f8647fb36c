"""Persistence for travel steps and trips.

TripStore keeps everything in memory; JsonTripStore writes the same state
to a JSON file after every mutation. Stores are constructed by the caller
and passed in, and hand out copies so callers never alias stored rows.
"""

import json
import logging
import secrets
import uuid
from dataclasses import asdict, fields, replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from trip_timeline.config import SHARE_TOKEN_ALPHABET, SHARE_TOKEN_LENGTH, STORE_PATH
from trip_timeline.errors import NotFound
from trip_timeline.models import StepType, TravelStep, Trip
from trip_timeline.normalize.date_math import parse_instant

logger = logging.getLogger(__name__)

_STEP_FIELDS = {f.name for f in fields(TravelStep)}
_TRIP_FIELDS = {f.name for f in fields(Trip)}


def generate_share_token(length: int = SHARE_TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(SHARE_TOKEN_ALPHABET) for _ in range(length))


def _start_order(step: TravelStep):
    instant = parse_instant(step.start_datetime)
    return (instant is None, instant.timestamp() if instant else 0.0, step.start_datetime or "")


class TripStore:
    def __init__(self):
        self._steps: Dict[str, TravelStep] = {}
        self._trips: Dict[str, Trip] = {}

    def _commit(self):
        """Hook for durable subclasses; called after every mutation."""

    # --- steps -------------------------------------------------------------

    def list_steps(self, user_id: str) -> List[TravelStep]:
        """All of a user's steps, start_datetime ascending."""
        steps = [replace(s) for s in self._steps.values() if s.user_id == user_id]
        return sorted(steps, key=_start_order)

    def get_step(self, step_id: str) -> TravelStep:
        if step_id not in self._steps:
            raise NotFound(f"travel step {step_id} not found")
        return replace(self._steps[step_id])

    def steps_for_trip(self, trip_id: str) -> List[TravelStep]:
        steps = [replace(s) for s in self._steps.values() if s.trip_id == trip_id]
        return sorted(steps, key=_start_order)

    def ungrouped_steps(self, user_id: str) -> List[TravelStep]:
        return [s for s in self.list_steps(user_id) if s.trip_id is None]

    def insert_steps(self, steps: Iterable[TravelStep]) -> List[TravelStep]:
        inserted = []
        for step in steps:
            row = replace(step, id=step.id or str(uuid.uuid4()))
            self._steps[row.id] = row
            inserted.append(replace(row))
        self._commit()
        return inserted

    def update_step(self, step_id: str, **changes) -> TravelStep:
        unknown = set(changes) - _STEP_FIELDS
        if unknown:
            raise ValueError(f"unknown travel step fields: {sorted(unknown)}")
        current = self.get_step(step_id)
        self._steps[step_id] = replace(current, **changes)
        self._commit()
        return replace(self._steps[step_id])

    def delete_step(self, step_id: str):
        if step_id not in self._steps:
            raise NotFound(f"travel step {step_id} not found")
        del self._steps[step_id]
        self._commit()

    def assign_steps(self, step_ids: List[str], trip_id: Optional[str]):
        """Set trip_id on every listed step, or on none of them."""
        missing = [i for i in step_ids if i not in self._steps]
        if missing:
            raise NotFound(f"travel steps not found: {missing}")
        if trip_id is not None and trip_id not in self._trips:
            raise NotFound(f"trip {trip_id} not found")
        for step_id in step_ids:
            self._steps[step_id].trip_id = trip_id
        self._commit()

    # --- trips -------------------------------------------------------------

    def list_trips(self, user_id: str) -> List[Trip]:
        """A user's trips in stored (creation) order."""
        return [replace(t) for t in self._trips.values() if t.user_id == user_id]

    def get_trip(self, trip_id: str) -> Trip:
        if trip_id not in self._trips:
            raise NotFound(f"trip {trip_id} not found")
        return replace(self._trips[trip_id])

    def trip_by_share_token(self, share_token: str) -> Trip:
        for trip in self._trips.values():
            if share_token and trip.share_token == share_token:
                return replace(trip)
        raise NotFound("no trip for that share token")

    def create_trip(self, trip: Trip) -> Trip:
        row = replace(
            trip,
            id=trip.id or str(uuid.uuid4()),
            share_token=trip.share_token or generate_share_token(),
        )
        self._trips[row.id] = row
        self._commit()
        return replace(row)

    def update_trip(self, trip_id: str, **changes) -> Trip:
        unknown = set(changes) - _TRIP_FIELDS
        if unknown:
            raise ValueError(f"unknown trip fields: {sorted(unknown)}")
        current = self.get_trip(trip_id)
        self._trips[trip_id] = replace(current, **changes)
        self._commit()
        return replace(self._trips[trip_id])

    def delete_trip(self, trip_id: str):
        """Delete a trip; its steps stay saved and become ungrouped."""
        if trip_id not in self._trips:
            raise NotFound(f"trip {trip_id} not found")
        for step in self._steps.values():
            if step.trip_id == trip_id:
                step.trip_id = None
        del self._trips[trip_id]
        self._commit()

    def regenerate_share_token(self, trip_id: str) -> Trip:
        return self.update_trip(trip_id, share_token=generate_share_token())


class JsonTripStore(TripStore):
    """TripStore backed by a JSON file."""

    def __init__(self, path: Path = STORE_PATH):
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self):
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            logger.warning("Could not read trip store %s; starting empty", self.path)
            return
        for raw in data.get("steps", []):
            raw = {k: v for k, v in raw.items() if k in _STEP_FIELDS}
            raw["type"] = StepType(raw["type"])
            step = TravelStep(**raw)
            self._steps[step.id] = step
        for raw in data.get("trips", []):
            trip = Trip(**{k: v for k, v in raw.items() if k in _TRIP_FIELDS})
            self._trips[trip.id] = trip

    def _commit(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "steps": [asdict(s) for s in self._steps.values()],
            "trips": [asdict(t) for t in self._trips.values()],
        }
        self.path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False, default=str),
            encoding="utf-8",
        )
