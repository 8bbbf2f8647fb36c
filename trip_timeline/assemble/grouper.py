"""Full recompute: partition a user's travel steps into trips."""

from dataclasses import dataclass, field
from typing import List, Optional, Set

from trip_timeline.config import MAX_GAP_DAYS
from trip_timeline.assemble.namer import chronological, name_trip
from trip_timeline.models import StepType, TravelStep, TripGroup
from trip_timeline.normalize.city_resolver import extract_city
from trip_timeline.normalize.date_math import days_between, extract_date_key, nights_between


# ---------------------------------------------------------------------------
# Running state for the group being built
# ---------------------------------------------------------------------------

@dataclass
class _OpenGroup:
    steps: List[TravelStep] = field(default_factory=list)
    destinations: Set[str] = field(default_factory=set)
    trip_origin: Optional[str] = None  # home base a round trip returns to

    @classmethod
    def seeded(cls, step: TravelStep) -> "_OpenGroup":
        group = cls()
        group.add(step)
        if step.type == StepType.FLIGHT:
            group.trip_origin = extract_city(step.origin_name)
        return group

    def add(self, step: TravelStep):
        self.steps.append(step)
        for name in (step.origin_name, step.destination_name):
            if name:
                self.destinations.add(name)

    def overlaps(self, step: TravelStep) -> bool:
        # raw string equality: "Chicago (ORD)" only matches "Chicago (ORD)"
        return any(
            name and name in self.destinations
            for name in (step.destination_name, step.origin_name)
        )

    def is_return_flight(self, step: TravelStep) -> bool:
        if step.type != StepType.FLIGHT or not self.trip_origin:
            return False
        return extract_city(step.destination_name) == self.trip_origin


# ---------------------------------------------------------------------------
# Clustering
# ---------------------------------------------------------------------------

def should_join(group: _OpenGroup, prev: TravelStep, step: TravelStep) -> bool:
    """Join on a short gap, a shared location name, or a flight home."""
    gap = days_between(prev.end_or_start, step.start_datetime)
    # unparseable dates count as an unbounded gap
    if gap is not None and gap <= MAX_GAP_DAYS:
        return True
    return group.overlaps(step) or group.is_return_flight(step)


def cluster_steps(steps: List[TravelStep]) -> List[List[TravelStep]]:
    """Sequential scan over steps in start order; returns the step partition."""
    if not steps:
        return []

    ordered = chronological(steps)
    groups: List[_OpenGroup] = []
    current = _OpenGroup.seeded(ordered[0])

    for prev, step in zip(ordered, ordered[1:]):
        if should_join(current, prev, step):
            current.add(step)
        else:
            groups.append(current)
            current = _OpenGroup.seeded(step)

    groups.append(current)
    return [g.steps for g in groups]


# ---------------------------------------------------------------------------
# Trip facts
# ---------------------------------------------------------------------------

def date_range(steps: List[TravelStep]):
    """(earliest start date key, latest end-or-start date key) or (None, None)."""
    starts = [k for k in (extract_date_key(s.start_datetime) for s in steps) if k]
    ends = [k for k in (extract_date_key(s.end_or_start) for s in steps) if k]
    if not starts:
        return None, None
    # YYYY-MM-DD keys order lexicographically
    return min(starts), max(ends + starts)


def describe_group(steps: List[TravelStep]) -> TripGroup:
    start, end = date_range(steps)
    destinations: List[str] = []
    for step in steps:
        for name in (step.origin_name, step.destination_name):
            if name and name not in destinations:
                destinations.append(name)
    return TripGroup(
        steps=list(steps),
        suggested_name=name_trip(steps),
        start_date=start or "",
        end_date=end or "",
        night_count=nights_between(start, end),
        destinations=destinations,
    )


def group_steps(steps: List[TravelStep]) -> List[TripGroup]:
    """Partition steps into trips and describe each one."""
    return [describe_group(group) for group in cluster_steps(steps)]
