"""Display values for the rendering collaborator, plus text and JSON timelines.

Everything here reads calendar facts from the strings' own components, so a
flight that departs 13:00-08:00 shows 1:00 PM wherever this runs.
"""

import json
from dataclasses import asdict
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from trip_timeline.models import Connector, StepType, TravelStep, Trip
from trip_timeline.normalize.date_math import (
    date_from_key,
    day_offset,
    elapsed_minutes,
    extract_date_key,
    local_time,
    nights_between,
    timezone_shift_hours,
)
from trip_timeline.normalize.geo import connector_between, location_url

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

TripView = Tuple[Trip, List[TravelStep]]


# ---------------------------------------------------------------------------
# Times and dates
# ---------------------------------------------------------------------------

def format_time(iso: Optional[str]) -> str:
    """"1:00 PM" from the local time written in the string."""
    hm = local_time(iso)
    if hm is None:
        return ""
    hour, minute = hm
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}:{minute:02d} {suffix}"


def format_date_label(key: Optional[str], today: Optional[date] = None) -> str:
    """"Today", "Tomorrow" or "Wed Nov 19"."""
    d = date_from_key(key)
    if d is None:
        return ""
    today = today or date.today()
    if d == today:
        return "Today"
    if d == today + timedelta(days=1):
        return "Tomorrow"
    return f"{_DAYS[d.weekday()]} {_MONTHS[d.month - 1]} {d.day}"


def day_offset_label(step: TravelStep) -> Optional[str]:
    """"+1" superscript for an arrival on a later local date than departure."""
    offset = day_offset(step.start_datetime, step.end_datetime)
    if not offset:
        return None
    return f"{offset:+d}"


def timezone_shift_label(step: TravelStep) -> Optional[str]:
    """"(+3hr)" when a flight lands in a different UTC offset than it left."""
    shift = timezone_shift_hours(step.start_datetime, step.end_datetime)
    if not shift:
        return None
    if float(shift).is_integer():
        return f"({int(shift):+d}hr)"
    return f"({shift:+.1f}hr)"


def format_elapsed(minutes: Optional[int]) -> str:
    """"5h 29m" for 329 minutes."""
    if minutes is None:
        return ""
    hours, mins = divmod(minutes, 60)
    if not hours:
        return f"{mins}m"
    if not mins:
        return f"{hours}h"
    return f"{hours}h {mins}m"


def duration_summary(steps: List[TravelStep]) -> str:
    """"same day", "1 night" or "N nights" across a set of steps."""
    if not steps:
        return ""
    starts = [k for k in (extract_date_key(s.start_datetime) for s in steps) if k]
    ends = [k for k in (extract_date_key(s.end_or_start) for s in steps) if k]
    if not starts:
        return ""
    nights = nights_between(min(starts), max(ends + starts))
    if nights == 0:
        return "same day"
    if nights == 1:
        return "1 night"
    return f"{nights} nights"


def trip_nights(trip: Trip) -> Optional[int]:
    nights = nights_between(trip.start_date, trip.end_date)
    return nights if nights > 0 else None


def format_date_range(trip: Trip) -> str:
    """"Nov 19 '25", "Nov 19-27 '25" or "Nov 19 - Dec 2 '25"."""
    start = date_from_key(trip.start_date)
    if start is None:
        return ""
    end = date_from_key(trip.end_date) or start
    year = f"'{start.year % 100:02d}"
    start_month = _MONTHS[start.month - 1]
    end_month = _MONTHS[end.month - 1]

    if start == end:
        return f"{start_month} {start.day} {year}"
    if (start.year, start.month) == (end.year, end.month):
        return f"{start_month} {start.day}-{end.day} {year}"
    return f"{start_month} {start.day} - {end_month} {end.day} {year}"


# ---------------------------------------------------------------------------
# Grouping for display
# ---------------------------------------------------------------------------

def group_steps_by_date(steps: List[TravelStep], today: Optional[date] = None) -> List[Dict]:
    """Bucket steps under their local start date, keeping input order."""
    groups: Dict[str, Dict] = {}
    for step in steps:
        key = extract_date_key(step.start_datetime)
        if key not in groups:
            groups[key] = {
                "date": key,
                "date_label": format_date_label(key, today) if key else "Unknown date",
                "steps": [],
            }
        groups[key]["steps"].append(step)
    return list(groups.values())


def step_connectors(steps: List[TravelStep]) -> List[Optional[Connector]]:
    """Connector between each consecutive pair: None, a spacer, or a distance."""
    return [connector_between(a, b) for a, b in zip(steps, steps[1:])]


def step_title(step: TravelStep) -> str:
    if step.custom_title:
        return step.custom_title
    if step.destination_name and step.type != StepType.HOTEL:
        return f"{step.origin_name} → {step.destination_name}"
    return step.origin_name


# ---------------------------------------------------------------------------
# Human-readable timeline
# ---------------------------------------------------------------------------

def _step_lines(step: TravelStep) -> List[str]:
    start = format_time(step.start_datetime)
    end = format_time(step.end_datetime)
    when = f"{start} – {end}" if end else start
    extras = [x for x in (day_offset_label(step), timezone_shift_label(step)) if x]
    if step.type == StepType.FLIGHT:
        duration = format_elapsed(elapsed_minutes(step.start_datetime, step.end_datetime))
        if duration:
            extras.append(duration)

    line = f"    [{step.type.value}] {step_title(step)}"
    if when:
        line += f"  {when}"
    if extras:
        line += "  " + " ".join(extras)
    lines = [line]
    if step.carrier_name:
        lines.append(f"       {step.carrier_name}")
    if step.confirmation_number:
        lines.append(f"       Ref: {step.confirmation_number}")
    return lines


def _day_lines(steps: List[TravelStep], today: Optional[date]) -> List[str]:
    lines = []
    for day in group_steps_by_date(steps, today):
        lines.append(f"\n  {day['date_label']}")
        day_steps = day["steps"]
        connectors = step_connectors(day_steps)
        for i, step in enumerate(day_steps):
            lines.extend(_step_lines(step))
            if i < len(connectors) and connectors[i] and connectors[i].kind == "distance":
                lines.append(f"      ↓ {connectors[i].label.label}")
    return lines


def format_timeline(trips: List[TripView], ungrouped: List[TravelStep], today: Optional[date] = None) -> str:
    """Plain-text timeline: each trip with its days, then ungrouped steps."""
    lines = ["=" * 72, "  TRAVEL TIMELINE", "=" * 72]

    if not trips and not ungrouped:
        lines.append("\n  No travel plans yet.")
        return "\n".join(lines) + "\n"

    for trip, steps in trips:
        summary = duration_summary(steps)
        lines.append(f"\n--- {trip.name} {'─' * max(4, 60 - len(trip.name))}")
        lines.append(f"  {format_date_range(trip)}  |  {len(steps)} item{'s' if len(steps) != 1 else ''}  |  {summary}")
        lines.extend(_day_lines(steps, today))

    if ungrouped:
        lines.append(f"\n--- Not in a trip {'─' * 50}")
        lines.extend(_day_lines(ungrouped, today))

    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def _step_to_dict(step: TravelStep) -> dict:
    d = asdict(step)
    d["type"] = step.type.value
    d["display"] = {
        "start_time": format_time(step.start_datetime),
        "end_time": format_time(step.end_datetime),
        "day_offset": day_offset_label(step),
        "timezone_shift": timezone_shift_label(step),
        "duration": format_elapsed(elapsed_minutes(step.start_datetime, step.end_datetime)),
        "map_url": location_url(step.origin_lat, step.origin_lng, step.origin_name, step.origin_address),
    }
    return d


def _trip_to_dict(trip: Trip, steps: List[TravelStep]) -> dict:
    d = asdict(trip)
    d["date_range"] = format_date_range(trip)
    d["nights"] = trip_nights(trip)
    d["steps"] = [_step_to_dict(s) for s in steps]
    return d


def to_json(trips: List[TripView], ungrouped: List[TravelStep], path: Optional[Path] = None) -> str:
    data = {
        "trips": [_trip_to_dict(t, s) for t, s in trips],
        "ungrouped": [_step_to_dict(s) for s in ungrouped],
    }
    text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    if path is not None:
        Path(path).write_text(text, encoding="utf-8")
    return text
