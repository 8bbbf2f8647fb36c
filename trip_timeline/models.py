"""Data models for travel steps, trips and grouping outcomes."""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class StepType(str, Enum):
    FLIGHT = "flight"
    HOTEL = "hotel"
    CAR = "car"
    TRAIN = "train"
    BUS = "bus"
    FERRY = "ferry"
    RESTAURANT = "restaurant"
    ACTIVITY = "activity"


@dataclass
class TravelStep:
    """One atomic booked event. Absent optional values are always None."""
    user_id: str
    type: StepType
    start_datetime: str
    origin_name: str
    id: Optional[str] = None
    trip_id: Optional[str] = None
    end_datetime: Optional[str] = None
    destination_name: Optional[str] = None
    origin_address: Optional[str] = None
    destination_address: Optional[str] = None
    origin_lat: Optional[float] = None
    origin_lng: Optional[float] = None
    destination_lat: Optional[float] = None
    destination_lng: Optional[float] = None
    origin_terminal: Optional[str] = None
    origin_gate: Optional[str] = None
    destination_terminal: Optional[str] = None
    destination_gate: Optional[str] = None
    carrier_name: Optional[str] = None
    confirmation_number: Optional[str] = None
    custom_title: Optional[str] = None

    @property
    def end_or_start(self) -> str:
        return self.end_datetime or self.start_datetime


@dataclass
class Trip:
    user_id: str
    name: str
    start_date: Optional[str] = None  # YYYY-MM-DD
    end_date: Optional[str] = None
    id: Optional[str] = None
    share_token: Optional[str] = None
    is_public: bool = False


@dataclass
class TripGroup:
    """A cluster of steps proposed as one trip by the full recompute."""
    steps: List[TravelStep]
    suggested_name: str
    start_date: str
    end_date: str
    night_count: int
    destinations: List[str] = field(default_factory=list)

    @property
    def step_ids(self) -> List[Optional[str]]:
        return [s.id for s in self.steps]


@dataclass
class DistanceLabel:
    label: str
    is_short_walk: bool = False


@dataclass
class Connector:
    """What to render between two consecutive same-day stops."""
    kind: str  # "distance" or "spacer"
    miles: Optional[float] = None
    label: Optional[DistanceLabel] = None
    directions_url: Optional[str] = None


@dataclass
class ParsedBooking:
    """Output of the extraction collaborator."""
    type: str
    segments: List[Dict[str, Any]] = field(default_factory=list)
    model_used: str = ""

    @property
    def is_unknown(self) -> bool:
        return self.type == "unknown" or not self.segments


@dataclass
class RejectedSegment:
    index: int
    reason: str


class IngestStatus(str, Enum):
    ADDED = "added"
    PARTIAL = "partial"
    NOTHING_CHANGED = "nothing_changed"
    EXTRACTION_FAILED = "extraction_failed"


@dataclass
class IngestResult:
    status: IngestStatus
    added: List[TravelStep] = field(default_factory=list)
    rejected: List[RejectedSegment] = field(default_factory=list)
    duplicates_skipped: int = 0
    trip: Optional[Trip] = None
    trip_created: bool = False
    grouping_error: str = ""
    message: str = ""

    @property
    def changed(self) -> bool:
        return bool(self.added)


@dataclass
class AssignmentResult:
    trip: Trip
    created: bool

    def describe(self) -> str:
        verb = "created" if self.created else "joined"
        return f"{verb} trip {self.trip.id}"


@dataclass
class RecomputeResult:
    trips: List[Trip] = field(default_factory=list)
    step_count: int = 0
    failed_groups: int = 0


@dataclass
class Notification:
    """Final outcome handed to the notification collaborator."""
    user_id: str
    booking_type: str
    trip_name: str = ""
    segment_count: int = 0
    duplicates_skipped: int = 0
