"""LLM extraction of booking segments from confirmation emails."""

import json
import logging
import re
from typing import Any, Dict, Optional

from openai import OpenAI

from trip_timeline.config import (
    GEMINI_BASE_URL,
    GOOGLE_API_KEY,
    LLM_BACKEND,
    LLM_MODEL_FALLBACK,
    LLM_MODEL_PRIMARY,
    MAX_BODY_CHARS,
    OPENAI_API_KEY,
)
from trip_timeline.models import ParsedBooking

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


def build_client(backend: str = LLM_BACKEND) -> OpenAI:
    """OpenAI-compatible client for the configured backend."""
    if backend == "gemini":
        return OpenAI(api_key=GOOGLE_API_KEY, base_url=GEMINI_BASE_URL)
    return OpenAI(api_key=OPENAI_API_KEY)


EXTRACTION_PROMPT = """\
You are parsing a travel confirmation email. Extract ALL booking details precisely.
Return a JSON object (no markdown fences) shaped like:

{
  "type": "flight" | "hotel" | "car" | "train" | "bus" | "ferry" | "restaurant" | "activity" | "unknown",
  "segments": [
    {
      "start_datetime": "YYYY-MM-DDTHH:MM:SS-08:00",
      "end_datetime": "YYYY-MM-DDTHH:MM:SS-05:00 or null",
      "origin_name": "City Name (ABC) or property name",
      "origin_address": "123 Main St, City, ST 12345 or null",
      "origin_terminal": "string or null",
      "origin_gate": "string or null",
      "destination_name": "City Name (XYZ) or null",
      "destination_address": "string or null",
      "destination_terminal": "string or null",
      "destination_gate": "string or null",
      "carrier_name": "Airline • XX 1234 / hotel chain / company",
      "confirmation_number": "string or null"
    }
  ]
}

Rules:
- All times are LOCAL to where they happen, with that place's UTC offset:
  departure time at the departure airport, arrival time at the arrival airport.
- For flights with layovers, return one segment per flight.
- For hotels: origin_name = hotel name, origin_address = hotel address,
  start_datetime = check-in, end_datetime = check-out, destination_name = null.
- For car rentals: origin = pickup location, destination = return location.
- Include the flight number in carrier_name.
- Copy exact times from the email; never invent them.
- If the email is not a travel booking, return {"type": "unknown", "segments": []}.
- Return ONLY the JSON object, no extra text.
"""


def _build_user_message(email_content: Dict[str, Any]) -> str:
    body = email_content.get("body", "")[:MAX_BODY_CHARS]
    return (
        f"Subject: {email_content.get('subject', '')}\n"
        f"From: {email_content.get('from', '')}\n"
        f"Date: {email_content.get('date', '')}\n"
        f"---\n{body}"
    )


def parse_response(text: str) -> ParsedBooking:
    """Parse the LLM response, stripping markdown fences if present."""
    text = (text or "").strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*", "", text)
        text = re.sub(r"\s*```$", "", text)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # prose around the object: take the outermost braces
        m = re.search(r"\{.*\}", text, re.S)
        if not m:
            return ParsedBooking(type=UNKNOWN)
        try:
            data = json.loads(m.group(0))
        except json.JSONDecodeError:
            return ParsedBooking(type=UNKNOWN)

    if not isinstance(data, dict):
        return ParsedBooking(type=UNKNOWN)
    segments = data.get("segments") or []
    if not isinstance(segments, list):
        segments = []
    return ParsedBooking(
        type=str(data.get("type") or UNKNOWN).lower(),
        segments=[s for s in segments if isinstance(s, dict)],
    )


def _missing_key_fields(booking: ParsedBooking) -> bool:
    return any(
        not s.get("start_datetime") or not s.get("origin_name")
        for s in booking.segments
    )


class LLMExtractor:
    """Extraction collaborator over an OpenAI-compatible chat completions client."""

    def __init__(
        self,
        client: OpenAI,
        model: str = LLM_MODEL_PRIMARY,
        fallback_model: Optional[str] = LLM_MODEL_FALLBACK,
    ):
        self.client = client
        self.model = model
        self.fallback_model = fallback_model

    def extract_single(self, email_content: Dict[str, Any], model: Optional[str] = None) -> ParsedBooking:
        model = model or self.model
        resp = self.client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": EXTRACTION_PROMPT},
                {"role": "user", "content": _build_user_message(email_content)},
            ],
            temperature=0.0,
            max_tokens=2000,
        )
        booking = parse_response(resp.choices[0].message.content or "")
        booking.model_used = model
        return booking

    def extract(self, email_content: Dict[str, Any]) -> ParsedBooking:
        """Try the primary model; retry with the fallback when key fields are null."""
        booking = self.extract_single(email_content)
        if (
            self.fallback_model
            and self.fallback_model != self.model
            and not booking.is_unknown
            and _missing_key_fields(booking)
        ):
            logger.info("Segments missing start/origin from %s; retrying with %s", self.model, self.fallback_model)
            booking = self.extract_single(email_content, model=self.fallback_model)
        return booking
