"""Tests for timezone-safe date helpers."""

import os
import time
import unittest

from trip_timeline.normalize.date_math import (
    day_offset,
    days_between,
    elapsed_minutes,
    extract_date_key,
    extract_offset_hours,
    local_time,
    nights_between,
    parse_instant,
    timezone_shift_hours,
)


class ExtractDateKeyTests(unittest.TestCase):
    def test_reads_leading_date(self):
        self.assertEqual(extract_date_key("2025-11-19T21:29:00-05:00"), "2025-11-19")

    def test_independent_of_process_timezone(self):
        if not hasattr(time, "tzset"):
            self.skipTest("tzset not available")
        original = os.environ.get("TZ")
        try:
            for tz in ("Pacific/Auckland", "America/Los_Angeles", "UTC"):
                os.environ["TZ"] = tz
                time.tzset()
                self.assertEqual(extract_date_key("2025-11-19T21:29:00-05:00"), "2025-11-19")
        finally:
            if original is None:
                os.environ.pop("TZ", None)
            else:
                os.environ["TZ"] = original
            time.tzset()

    def test_malformed_input_gives_empty_string(self):
        for bad in (None, "", "not a date", "2025-13-40T10:00:00Z", "19/11/2025"):
            self.assertEqual(extract_date_key(bad), "")

    def test_plain_date(self):
        self.assertEqual(extract_date_key("2025-11-20"), "2025-11-20")


class DaysBetweenTests(unittest.TestCase):
    def test_same_instant_is_zero(self):
        self.assertEqual(days_between("2025-11-19T10:00:00Z", "2025-11-19T10:00:00Z"), 0)

    def test_ceiling_of_elapsed_days(self):
        self.assertEqual(days_between("2025-11-19T10:00:00Z", "2025-11-19T11:00:00Z"), 1)
        self.assertEqual(days_between("2025-11-27T11:00:00-05:00", "2025-12-02T18:10:00-05:00"), 6)

    def test_absolute_value(self):
        self.assertEqual(days_between("2025-11-29T00:00:00Z", "2025-11-19T00:00:00Z"), 10)

    def test_compares_instants_across_offsets(self):
        # 21:29 in New York is 18:29 in San Francisco: under a day apart
        self.assertEqual(days_between("2025-11-19T13:00:00-08:00", "2025-11-19T21:29:00-05:00"), 1)

    def test_malformed_is_none(self):
        self.assertIsNone(days_between("garbage", "2025-11-19T10:00:00Z"))
        self.assertIsNone(days_between(None, "2025-11-19T10:00:00Z"))


class DayOffsetTests(unittest.TestCase):
    def test_same_calendar_date(self):
        self.assertEqual(day_offset("2025-11-19T13:00:00-08:00", "2025-11-19T21:29:00-05:00"), 0)

    def test_overnight_flight(self):
        self.assertEqual(day_offset("2025-11-19T22:00:00-08:00", "2025-11-20T06:30:00-05:00"), 1)

    def test_uses_local_dates_not_elapsed_time(self):
        # 23:50 -> 00:10 is twenty minutes but one calendar day
        self.assertEqual(day_offset("2025-11-19T23:50:00+00:00", "2025-11-20T00:10:00+00:00"), 1)

    def test_westbound_date_line_can_be_negative(self):
        self.assertEqual(day_offset("2025-11-20T10:00:00+09:00", "2025-11-19T18:00:00-08:00"), -1)

    def test_missing_end(self):
        self.assertIsNone(day_offset("2025-11-19T13:00:00-08:00", None))


class ElapsedMinutesTests(unittest.TestCase):
    def test_flight_duration(self):
        # 13:00 PST -> 21:29 EST is 5h29m
        self.assertEqual(elapsed_minutes("2025-11-19T13:00:00-08:00", "2025-11-19T21:29:00-05:00"), 329)

    def test_missing_or_reversed(self):
        self.assertIsNone(elapsed_minutes("2025-11-19T13:00:00Z", None))
        self.assertIsNone(elapsed_minutes("2025-11-19T13:00:00Z", "2025-11-19T13:00:00Z"))
        self.assertIsNone(elapsed_minutes("2025-11-19T13:00:00Z", "2025-11-19T12:00:00Z"))
        self.assertIsNone(elapsed_minutes("bad", "2025-11-19T12:00:00Z"))


class OffsetTests(unittest.TestCase):
    def test_negative_offset(self):
        self.assertEqual(extract_offset_hours("2025-11-19T13:00:00-08:00"), -8.0)

    def test_half_hour_offset(self):
        self.assertEqual(extract_offset_hours("2025-11-19T13:00:00+05:30"), 5.5)

    def test_zulu(self):
        self.assertEqual(extract_offset_hours("2025-11-19T13:00:00Z"), 0.0)

    def test_absent(self):
        self.assertIsNone(extract_offset_hours("2025-11-19T13:00:00"))
        self.assertIsNone(extract_offset_hours("2025-11-19"))
        self.assertIsNone(extract_offset_hours(None))

    def test_timezone_shift(self):
        self.assertEqual(timezone_shift_hours("2025-11-19T13:00:00-08:00", "2025-11-19T21:29:00-05:00"), 3.0)
        self.assertIsNone(timezone_shift_hours("2025-11-19T13:00:00-08:00", None))


class MiscTests(unittest.TestCase):
    def test_local_time_is_not_converted(self):
        self.assertEqual(local_time("2025-11-19T21:29:00-05:00"), (21, 29))
        self.assertIsNone(local_time("2025-11-19"))

    def test_naive_datetimes_compare_as_utc(self):
        self.assertEqual(parse_instant("2025-11-19T10:00:00").utcoffset().total_seconds(), 0)

    def test_nights_between(self):
        self.assertEqual(nights_between("2025-11-19", "2025-12-02"), 13)
        self.assertEqual(nights_between("2025-11-19", None), 0)
        self.assertEqual(nights_between("2025-12-02", "2025-11-19"), 0)


if __name__ == "__main__":
    unittest.main()
