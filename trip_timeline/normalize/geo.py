"""Great-circle distance between stops and map links for them."""

import math
from typing import Optional
from urllib.parse import quote

from trip_timeline.config import EARTH_RADIUS_MILES, SHORT_WALK_MILES, SUPPRESS_DISTANCE_MILES
from trip_timeline.models import Connector, DistanceLabel, TravelStep
from trip_timeline.normalize.date_math import extract_date_key

MAPS_DIR_URL = "https://www.google.com/maps/dir/"
MAPS_SEARCH_URL = "https://www.google.com/maps/search/?api=1&query="


def haversine_miles(lat1, lng1, lat2, lng2) -> Optional[float]:
    """Distance in miles, or None if any coordinate is missing.

    A literal 0 coordinate counts as missing: upstream geocoding writes
    0,0 when it has nothing.
    """
    if not lat1 or not lng1 or not lat2 or not lng2:
        return None

    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_MILES * c


def classify_distance(miles: Optional[float]) -> Optional[DistanceLabel]:
    """"Short walk" under 0.3 mi, "~0.6 mi" under 1 mi, "~12 mi" beyond."""
    if miles is None:
        return None
    if miles < SHORT_WALK_MILES:
        return DistanceLabel(label="Short walk", is_short_walk=True)
    if miles < 1:
        return DistanceLabel(label=f"~{miles:.1f} mi")
    # round half up, not banker's rounding
    return DistanceLabel(label=f"~{int(math.floor(miles + 0.5))} mi")


def directions_url(origin_lat=None, origin_lng=None, dest_lat=None, dest_lng=None,
                   origin_name: Optional[str] = None, dest_name: Optional[str] = None) -> str:
    if origin_lat and origin_lng and dest_lat and dest_lng:
        return f"{MAPS_DIR_URL}{origin_lat},{origin_lng}/{dest_lat},{dest_lng}"
    origin = quote(origin_name or "", safe="")
    dest = quote(dest_name or "", safe="")
    return f"{MAPS_DIR_URL}{origin}/{dest}"


def location_url(lat=None, lng=None, place_name: Optional[str] = None,
                 address: Optional[str] = None) -> Optional[str]:
    """Search link for a stop; name + address beats raw coordinates."""
    if place_name and address and place_name != address:
        return MAPS_SEARCH_URL + quote(f"{place_name}, {address}", safe="")
    if address:
        return MAPS_SEARCH_URL + quote(address, safe="")
    if place_name:
        return MAPS_SEARCH_URL + quote(place_name, safe="")
    if lat and lng:
        return f"{MAPS_SEARCH_URL}{lat},{lng}"
    return None


def _departure_point(step: TravelStep):
    """Where the traveller is once ``step`` is over."""
    if step.destination_lat and step.destination_lng:
        return step.destination_lat, step.destination_lng, step.destination_name
    return step.origin_lat, step.origin_lng, step.origin_name


def connector_between(prev: TravelStep, nxt: TravelStep) -> Optional[Connector]:
    """Connector to render between two consecutive stops, or None.

    Only stops on the same local date get one: the next stop must start on
    the day the previous one starts or ends. Co-located stops (under 0.05 mi) get a bare
    spacer instead of a "0 mi" label.
    """
    day = extract_date_key(nxt.start_datetime)
    if not day or day not in (extract_date_key(prev.start_datetime), extract_date_key(prev.end_datetime)):
        return None
    lat1, lng1, from_name = _departure_point(prev)
    miles = haversine_miles(lat1, lng1, nxt.origin_lat, nxt.origin_lng)
    if miles is None:
        return None
    if miles < SUPPRESS_DISTANCE_MILES:
        return Connector(kind="spacer", miles=miles)
    return Connector(
        kind="distance",
        miles=miles,
        label=classify_distance(miles),
        directions_url=directions_url(lat1, lng1, nxt.origin_lat, nxt.origin_lng, from_name, nxt.origin_name),
    )
