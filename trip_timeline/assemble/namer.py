"""Deterministic trip names derived from a trip's steps."""

from typing import List, Optional

from trip_timeline.models import StepType, TravelStep
from trip_timeline.normalize.city_resolver import (
    city_from_address,
    city_from_hotel_name,
    extract_city,
    shared_state,
)
from trip_timeline.normalize.date_math import parse_instant

FALLBACK_NAME = "Trip"


def chronological(steps: List[TravelStep]) -> List[TravelStep]:
    """Steps by start instant; unparseable starts last, ties by raw string then id."""
    def key(step: TravelStep):
        instant = parse_instant(step.start_datetime)
        return (
            instant is None,
            instant.timestamp() if instant else 0.0,
            step.start_datetime or "",
            step.id or "",
        )
    return sorted(steps, key=key)


def stay_city(step: TravelStep) -> Optional[str]:
    return city_from_address(step.origin_address) or city_from_hotel_name(step.origin_name)


def _unique(items: List[str]) -> List[str]:
    seen = set()
    unique = []
    for item in items:
        if item not in seen:
            seen.add(item)
            unique.append(item)
    return unique


def _fallback_city(steps: List[TravelStep]) -> Optional[str]:
    for step in steps:
        if step.type == StepType.FLIGHT and step.destination_name:
            city = extract_city(step.destination_name)
            if city:
                return city
    if not steps:
        return None
    first = steps[0]
    return (
        city_from_address(first.origin_address)
        or extract_city(first.origin_name)
        or extract_city(first.destination_name)
    )


def name_trip(steps: List[TravelStep]) -> str:
    """Name a trip from its stays, else its first flight's destination.

    One stay city -> "Austin", two -> "Austin and Houston", three or more ->
    the US state they all share, else "Austin + 2 more".
    """
    ordered = chronological(steps)
    stays = [s for s in ordered if s.type == StepType.HOTEL]
    cities = _unique([c for c in (stay_city(s) for s in stays) if c])

    if not cities:
        return _fallback_city(ordered) or FALLBACK_NAME
    if len(cities) == 1:
        return cities[0]
    if len(cities) == 2:
        return f"{cities[0]} and {cities[1]}"

    state = shared_state(s.origin_address for s in stays)
    if state:
        return state
    return f"{cities[0]} + {len(cities) - 1} more"
