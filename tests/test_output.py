"""Tests for display helpers and the text/JSON timelines."""

import json
import tempfile
import unittest
from datetime import date
from pathlib import Path

from factories import brooklyn_trip, make_step
from trip_timeline.models import Trip
from trip_timeline.output import (
    day_offset_label,
    duration_summary,
    format_date_label,
    format_date_range,
    format_elapsed,
    format_time,
    format_timeline,
    group_steps_by_date,
    step_connectors,
    step_title,
    timezone_shift_label,
    to_json,
    trip_nights,
)

TODAY = date(2025, 11, 1)


def _trip(start, end, name="Brooklyn"):
    return Trip(user_id="user-1", name=name, start_date=start, end_date=end, id="trip-1")


class TimeFormattingTests(unittest.TestCase):
    def test_format_time_uses_written_local_time(self):
        self.assertEqual(format_time("2025-11-19T13:00:00-08:00"), "1:00 PM")
        self.assertEqual(format_time("2025-11-19T00:05:00Z"), "12:05 AM")
        self.assertEqual(format_time("2025-11-19T12:30:00"), "12:30 PM")
        self.assertEqual(format_time(None), "")

    def test_format_elapsed(self):
        self.assertEqual(format_elapsed(329), "5h 29m")
        self.assertEqual(format_elapsed(45), "45m")
        self.assertEqual(format_elapsed(300), "5h")
        self.assertEqual(format_elapsed(None), "")

    def test_date_labels(self):
        self.assertEqual(format_date_label("2025-11-19", TODAY), "Wed Nov 19")
        self.assertEqual(format_date_label("2025-11-01", TODAY), "Today")
        self.assertEqual(format_date_label("2025-11-02", TODAY), "Tomorrow")
        self.assertEqual(format_date_label("garbage", TODAY), "")


class FlightLabelTests(unittest.TestCase):
    def setUp(self):
        self.out, _, _, self.home = brooklyn_trip()

    def test_eastbound_flight(self):
        self.assertIsNone(day_offset_label(self.out))
        self.assertEqual(timezone_shift_label(self.out), "(+3hr)")

    def test_westbound_flight(self):
        self.assertEqual(timezone_shift_label(self.home), "(-3hr)")

    def test_red_eye_gets_plus_one(self):
        red_eye = make_step(start="2025-11-19T22:00:00-08:00", end_datetime="2025-11-20T06:30:00-05:00")
        self.assertEqual(day_offset_label(red_eye), "+1")

    def test_half_hour_offsets(self):
        step = make_step(start="2025-11-19T10:00:00+04:00", end_datetime="2025-11-19T18:00:00+09:30")
        self.assertEqual(timezone_shift_label(step), "(+5.5hr)")

    def test_no_end_means_no_labels(self):
        step = make_step()
        self.assertIsNone(day_offset_label(step))
        self.assertIsNone(timezone_shift_label(step))


class TripSummaryTests(unittest.TestCase):
    def test_date_ranges(self):
        self.assertEqual(format_date_range(_trip("2025-11-19", "2025-11-19")), "Nov 19 '25")
        self.assertEqual(format_date_range(_trip("2025-11-19", "2025-11-27")), "Nov 19-27 '25")
        self.assertEqual(format_date_range(_trip("2025-11-19", "2025-12-02")), "Nov 19 - Dec 2 '25")
        self.assertEqual(format_date_range(_trip(None, None)), "")

    def test_trip_nights(self):
        self.assertEqual(trip_nights(_trip("2025-11-19", "2025-12-02")), 13)
        self.assertIsNone(trip_nights(_trip("2025-11-19", "2025-11-19")))

    def test_duration_summary(self):
        self.assertEqual(duration_summary(brooklyn_trip()), "13 nights")
        self.assertEqual(duration_summary([make_step()]), "same day")
        self.assertEqual(duration_summary(brooklyn_trip()[1:2]), "7 nights")
        self.assertEqual(duration_summary([]), "")


class DayGroupingTests(unittest.TestCase):
    def test_buckets_by_local_start_date(self):
        days = group_steps_by_date(brooklyn_trip(), TODAY)
        self.assertEqual([d["date"] for d in days], ["2025-11-19", "2025-11-20", "2025-11-27", "2025-12-02"])
        self.assertEqual(days[0]["date_label"], "Wed Nov 19")
        self.assertEqual([s.id for s in days[2]["steps"]], ["car"])

    def test_unparseable_start_is_unknown_date(self):
        days = group_steps_by_date([make_step(start="sometime")], TODAY)
        self.assertEqual(days[0]["date_label"], "Unknown date")

    def test_connectors_between_same_day_stops(self):
        ferry = make_step(
            "activity", "2025-11-21T10:00:00-05:00", "Statue of Liberty",
            end_datetime="2025-11-21T13:00:00-05:00", origin_lat=40.6892, origin_lng=-74.0445,
        )
        lunch = make_step(
            "restaurant", "2025-11-21T13:30:00-05:00", "Brooklyn Bridge Park",
            origin_lat=40.7003, origin_lng=-73.9967,
        )
        coffee = make_step(
            "restaurant", "2025-11-21T15:00:00-05:00", "Brooklyn Bridge Park Cafe",
            origin_lat=40.7003, origin_lng=-73.9967,
        )
        dinner = make_step("restaurant", "2025-11-22T19:00:00-05:00", "Peter Luger", origin_lat=40.7099, origin_lng=-73.9624)

        connectors = step_connectors([ferry, lunch, coffee, dinner])

        self.assertEqual(connectors[0].kind, "distance")
        self.assertTrue(connectors[0].label.label.endswith(" mi"))
        self.assertIn("google.com/maps", connectors[0].directions_url)
        self.assertEqual(connectors[1].kind, "spacer")
        self.assertIsNone(connectors[2])

    def test_step_title(self):
        out, hotel, _, _ = brooklyn_trip()
        self.assertEqual(step_title(out), "San Francisco (SFO) → Newark (EWR)")
        self.assertEqual(step_title(hotel), "Hotel Brooklyn")
        out.custom_title = "Thanksgiving flight"
        self.assertEqual(step_title(out), "Thanksgiving flight")


class TimelineRenderingTests(unittest.TestCase):
    def test_empty_timeline(self):
        self.assertIn("No travel plans yet.", format_timeline([], []))

    def test_text_timeline(self):
        steps = brooklyn_trip()
        text = format_timeline([(_trip("2025-11-19", "2025-12-02"), steps)], [], TODAY)

        self.assertIn("--- Brooklyn", text)
        self.assertIn("Nov 19 - Dec 2 '25  |  4 items  |  13 nights", text)
        self.assertIn("1:00 PM – 9:29 PM  (+3hr) 5h 29m", text)
        self.assertIn("United • UA 1234", text)
        self.assertNotIn("Not in a trip", text)

    def test_ungrouped_section(self):
        text = format_timeline([], [make_step(origin="Oakland (OAK)")], TODAY)
        self.assertIn("Not in a trip", text)
        self.assertIn("Oakland (OAK)", text)

    def test_json_export(self):
        steps = brooklyn_trip()
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "timeline.json"
            to_json([(_trip("2025-11-19", "2025-12-02"), steps)], [], path)
            data = json.loads(path.read_text(encoding="utf-8"))

        trip = data["trips"][0]
        self.assertEqual(trip["nights"], 13)
        self.assertEqual(trip["date_range"], "Nov 19 - Dec 2 '25")
        first = trip["steps"][0]
        self.assertEqual(first["type"], "flight")
        self.assertEqual(first["display"]["duration"], "5h 29m")
        self.assertEqual(first["display"]["timezone_shift"], "(+3hr)")
        self.assertIsNone(first["display"]["day_offset"])
        self.assertEqual(
            trip["steps"][1]["display"]["map_url"],
            "https://www.google.com/maps/search/?api=1&query=Hotel%20Brooklyn%2C%20123%20Atlantic%20Ave%2C%20Brooklyn%2C%20NY%2011201",
        )
        self.assertEqual(data["ungrouped"], [])


if __name__ == "__main__":
    unittest.main()
