"""Turn extracted booking segments into canonical TravelStep records."""

from typing import Any, Dict, Optional, Tuple

from trip_timeline.errors import ValidationFailure
from trip_timeline.models import StepType, TravelStep

# Extraction sometimes answers with a near-miss type name
_TYPE_ALIASES = {
    "rail": StepType.TRAIN,
    "car_rental": StepType.CAR,
    "rental_car": StepType.CAR,
    "boat": StepType.FERRY,
    "lodging": StepType.HOTEL,
    "tour": StepType.ACTIVITY,
    "event": StepType.ACTIVITY,
    "dining": StepType.RESTAURANT,
}

_ABSENT_STRINGS = {"", "null", "none", "n/a"}

OPTIONAL_TEXT_FIELDS = (
    "end_datetime",
    "destination_name",
    "origin_address",
    "destination_address",
    "origin_terminal",
    "origin_gate",
    "destination_terminal",
    "destination_gate",
    "carrier_name",
    "confirmation_number",
    "custom_title",
)

COORDINATE_FIELDS = ("origin_lat", "origin_lng", "destination_lat", "destination_lng")

DuplicateKey = Tuple[str, str, str, str]


def absent_to_none(value: Any) -> Optional[str]:
    """Collapse "", whitespace and literal "null" to None; stringify the rest."""
    if value is None:
        return None
    text = str(value)
    if text.strip().lower() in _ABSENT_STRINGS:
        return None
    return text


def coerce_coordinate(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().lower() in _ABSENT_STRINGS:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_step_type(raw: Any) -> StepType:
    text = (absent_to_none(raw) or "").strip().lower()
    if text in _TYPE_ALIASES:
        return _TYPE_ALIASES[text]
    try:
        return StepType(text)
    except ValueError:
        raise ValidationFailure(f"unsupported step type {raw!r}") from None


def _required_text(segment: Dict[str, Any], name: str, index: int) -> str:
    value = segment.get(name)
    if value is not None and not isinstance(value, str):
        raise ValidationFailure(f"{name} is not text", index)
    if absent_to_none(value) is None:
        raise ValidationFailure(f"missing {name}", index)
    return value


def normalize_segment(
    segment: Dict[str, Any],
    user_id: str,
    booking_type: Optional[str] = None,
    index: int = -1,
) -> TravelStep:
    """Build a TravelStep from one extracted segment.

    Raises ValidationFailure when the segment has no start_datetime or
    origin_name, or its type is not a known step type.
    """
    if not isinstance(segment, dict):
        raise ValidationFailure("segment is not an object", index)

    start = _required_text(segment, "start_datetime", index)
    origin = _required_text(segment, "origin_name", index)

    try:
        step_type = parse_step_type(segment.get("type") or booking_type)
    except ValidationFailure as e:
        raise ValidationFailure(e.reason, index) from None

    step = TravelStep(
        user_id=user_id,
        type=step_type,
        start_datetime=start,
        origin_name=origin,
    )
    for name in OPTIONAL_TEXT_FIELDS:
        setattr(step, name, absent_to_none(segment.get(name)))
    for name in COORDINATE_FIELDS:
        setattr(step, name, coerce_coordinate(segment.get(name)))
    if segment.get("trip_id"):
        step.trip_id = str(segment["trip_id"])
    return step


def duplicate_key(step: TravelStep) -> DuplicateKey:
    """(user, type, start, origin): the same forwarded email twice shares it."""
    step_type = step.type.value if isinstance(step.type, StepType) else str(step.type)
    return (step.user_id, step_type, step.start_datetime, step.origin_name)
