"""Drop travel steps that were already saved; the same booking often gets forwarded twice."""

import logging
from typing import Dict, Iterable, List, Tuple

from trip_timeline.models import TravelStep
from trip_timeline.normalize.segment import DuplicateKey, duplicate_key

logger = logging.getLogger(__name__)


def _richness_score(step: TravelStep) -> int:
    """Count non-null useful fields; higher means a more complete extraction."""
    score = 0
    if step.end_datetime:
        score += 2
    if step.destination_name:
        score += 1
    if step.origin_address or step.destination_address:
        score += 1
    if step.origin_lat and step.origin_lng:
        score += 1
    if step.confirmation_number:
        score += 1
    if step.carrier_name:
        score += 1
    if step.origin_terminal or step.origin_gate:
        score += 1
    return score


def _merge_pair(primary: TravelStep, secondary: TravelStep) -> TravelStep:
    """Fill primary's absent optional fields from secondary."""
    for name in (
        "end_datetime", "destination_name", "origin_address", "destination_address",
        "origin_lat", "origin_lng", "destination_lat", "destination_lng",
        "origin_terminal", "origin_gate", "destination_terminal", "destination_gate",
        "carrier_name", "confirmation_number",
    ):
        if getattr(primary, name) is None and getattr(secondary, name) is not None:
            setattr(primary, name, getattr(secondary, name))
    return primary


def filter_duplicates(
    candidates: List[TravelStep],
    existing: Iterable[TravelStep],
) -> Tuple[List[TravelStep], int]:
    """Split candidates into (fresh steps, skipped-duplicate count).

    A candidate is a duplicate when its (user, type, start, origin) key
    matches a persisted step, or an earlier candidate in the same batch.
    In-batch repeats are merged into the first occurrence rather than lost.
    """
    persisted = {duplicate_key(s) for s in existing}
    fresh: Dict[DuplicateKey, TravelStep] = {}
    skipped = 0

    for step in candidates:
        key = duplicate_key(step)
        if key in persisted:
            logger.info("Skipping duplicate %s step at %s from %s", key[1], key[2], key[3])
            skipped += 1
            continue
        if key in fresh:
            kept = fresh[key]
            if _richness_score(step) > _richness_score(kept):
                step = _merge_pair(step, kept)
                fresh[key] = step
            else:
                _merge_pair(kept, step)
            skipped += 1
            continue
        fresh[key] = step

    return list(fresh.values()), skipped
