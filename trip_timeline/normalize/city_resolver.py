"""Best-effort city extraction from location names, hotel names and addresses."""

import re
from typing import Iterable, Optional

# Trailing airport code: "San Francisco (SFO)" or "Chicago ORD"
_AIRPORT_CODE_RE = re.compile(r'(?:\s*\([A-Z]{3}\)|\s+[A-Z]{3})\s*$')

# Venue words that follow a city name: "Austin Airport", "Union Station"
_VENUE_SUFFIX_RE = re.compile(
    r'\s+(?:international\s+airport|intl\.?\s+airport|airport|intl\.?|international|'
    r'train\s+station|bus\s+station|railway\s+station|station|'
    r'ferry\s+terminal|cruise\s+terminal|terminal|port|pier)\s*$',
    re.I,
)

# Longest first so "Holiday Inn Express" wins over "Holiday Inn"
_HOTEL_CHAIN_PREFIXES = sorted([
    "The", "Hotel", "Hotels", "Airbnb", "Vrbo",
    "Marriott", "JW Marriott", "Courtyard by Marriott", "Courtyard", "Residence Inn",
    "Fairfield Inn", "Fairfield Inn & Suites", "SpringHill Suites", "TownePlace Suites",
    "Renaissance", "Sheraton", "Westin", "W", "Aloft", "Moxy", "Element", "Le Meridien",
    "St. Regis", "Ritz-Carlton", "The Ritz-Carlton",
    "Hilton", "Hilton Garden Inn", "Hampton Inn", "Hampton Inn & Suites", "DoubleTree",
    "DoubleTree by Hilton", "Embassy Suites", "Homewood Suites", "Home2 Suites",
    "Conrad", "Waldorf Astoria", "Canopy", "Tru by Hilton",
    "Hyatt", "Hyatt Regency", "Hyatt Place", "Hyatt House", "Grand Hyatt", "Park Hyatt",
    "Andaz", "Thompson",
    "Holiday Inn", "Holiday Inn Express", "Crowne Plaza", "InterContinental", "Kimpton",
    "Hotel Indigo", "Staybridge Suites", "Candlewood Suites",
    "Best Western", "Best Western Plus", "Radisson", "Radisson Blu", "Wyndham",
    "La Quinta", "Ramada", "Days Inn", "Super 8", "Motel 6", "Comfort Inn", "Quality Inn",
    "Omni", "Fairmont", "Four Seasons", "Loews", "Ace Hotel", "Freehand", "Graduate",
    "Virgin Hotels", "Motto by Hilton", "citizenM", "Sonesta", "Novotel", "Ibis", "Pullman",
    "Sofitel", "Mercure", "NH", "Melia",
], key=len, reverse=True)

_HOTEL_CHAIN_RE = re.compile(
    r'^(?:' + "|".join(re.escape(p) for p in _HOTEL_CHAIN_PREFIXES) + r')\b\s*',
    re.I,
)

# Property-type words that trail a hotel name: "Brooklyn Hotel", "Austin Suites"
_PROPERTY_SUFFIX_RE = re.compile(
    r'\s+(?:hotel|inn|suites?|resort|motel|hostel|lodge|b&b|bnb|apartments?|'
    r'downtown|midtown|uptown|center|centre|city\s+center)\s*$',
    re.I,
)

_STREET_NUMBER_RE = re.compile(r'^\d+[A-Za-z]?\b')
_STATE_ZIP_RE = re.compile(r'^[A-Z]{2}\s+\d{5}(?:-\d{4})?$')
_ZIP_ONLY_RE = re.compile(r'^\d{5}(?:-\d{4})?$')

US_STATES = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
    "CA": "California", "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware",
    "FL": "Florida", "GA": "Georgia", "HI": "Hawaii", "ID": "Idaho",
    "IL": "Illinois", "IN": "Indiana", "IA": "Iowa", "KS": "Kansas",
    "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine", "MD": "Maryland",
    "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota", "MS": "Mississippi",
    "MO": "Missouri", "MT": "Montana", "NE": "Nebraska", "NV": "Nevada",
    "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico", "NY": "New York",
    "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio", "OK": "Oklahoma",
    "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island", "SC": "South Carolina",
    "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas", "UT": "Utah",
    "VT": "Vermont", "VA": "Virginia", "WA": "Washington", "WV": "West Virginia",
    "WI": "Wisconsin", "WY": "Wyoming", "DC": "District of Columbia",
}

# One address segment naming a state: "TX", "TX 78701", "West Virginia 25301"
_STATE_SEGMENT_RE = re.compile(r'^(?P<name>[A-Za-z][A-Za-z .]*?)(?:\s+\d{5}(?:-\d{4})?)?$')
_STATE_BY_NAME = {full.lower(): full for full in US_STATES.values()}


def _clean(raw: Optional[str]) -> str:
    return (raw or "").strip()


def strip_airport_code(name: str) -> str:
    stripped = _AIRPORT_CODE_RE.sub("", name).strip()
    return stripped or name.strip()


def strip_hotel_chain(name: str) -> str:
    """Remove leading chain/brand words: "Hilton Garden Inn Austin" -> "Austin"."""
    previous = None
    cleaned = name.strip()
    # chains stack: "The Hotel Brooklyn", "Hilton Garden Inn"
    while cleaned and cleaned != previous:
        previous = cleaned
        cleaned = _HOTEL_CHAIN_RE.sub("", cleaned, count=1).strip()
    return cleaned


def extract_city(name: Optional[str]) -> Optional[str]:
    """Normalize a free-text location name to a city.

    "San Francisco (SFO)" -> "San Francisco", "Austin Airport" -> "Austin",
    "Chicago, IL" -> "Chicago". Returns None when nothing is left.
    """
    cleaned = _clean(name)
    if not cleaned:
        return None

    cleaned = strip_airport_code(cleaned)
    # "Chicago, IL" / "Paris, France": city is the first segment
    if "," in cleaned:
        cleaned = cleaned.split(",")[0].strip()
    cleaned = _VENUE_SUFFIX_RE.sub("", cleaned).strip()
    cleaned = strip_hotel_chain(cleaned) or cleaned

    return cleaned or None


def city_from_address(address: Optional[str]) -> Optional[str]:
    """First comma segment that is neither a street line nor "STATE ZIP".

    "123 Main St, Brooklyn, NY 11201" -> "Brooklyn".
    """
    cleaned = _clean(address)
    if not cleaned:
        return None

    for part in cleaned.split(","):
        part = part.strip()
        if not part:
            continue
        if _STREET_NUMBER_RE.match(part):
            continue
        if _STATE_ZIP_RE.match(part) or _ZIP_ONLY_RE.match(part):
            continue
        return part
    return None


def city_from_hotel_name(name: Optional[str]) -> Optional[str]:
    """Trailing word of a hotel name once brand prefixes are gone.

    "The Ambrose - Santa Monica" keeps the text after the dash, as
    properties often append their location that way.
    """
    cleaned = _clean(name)
    if not cleaned:
        return None

    if " - " in cleaned:
        after_dash = cleaned.split(" - ")[-1].strip()
        if after_dash:
            return after_dash

    cleaned = strip_hotel_chain(cleaned) or cleaned
    cleaned = _PROPERTY_SUFFIX_RE.sub("", cleaned).strip() or cleaned
    words = cleaned.split()
    return words[-1] if words else None


def state_of_address(address: Optional[str]) -> Optional[str]:
    """Full name of the US state an address is in, or None.

    Segments are read from the end, and a segment must be a whole state
    abbreviation or name (optionally with a ZIP), so "Kansas City, MO" is
    Missouri and "West Virginia" is never Virginia.
    """
    for part in reversed(_clean(address).split(",")):
        m = _STATE_SEGMENT_RE.match(part.strip())
        if not m:
            continue
        name = m.group("name").strip()
        if name in US_STATES:
            return US_STATES[name]
        if name.lower() in _STATE_BY_NAME:
            return _STATE_BY_NAME[name.lower()]
    return None


def shared_state(addresses: Iterable[Optional[str]]) -> Optional[str]:
    """The single US state every address is in, or None.

    Any address that is missing or names no state rules the fallback out.
    """
    states = {state_of_address(address) for address in addresses}
    if len(states) != 1:
        return None
    return states.pop()
