"""Tests for full-recompute trip clustering."""

import random
import unittest

from factories import brooklyn_trip, make_step
from trip_timeline.assemble.grouper import cluster_steps, group_steps
from trip_timeline.normalize.date_math import day_offset


def partition(groups):
    return sorted(sorted(g.step_ids) for g in groups)


class GroupStepsTests(unittest.TestCase):
    def test_empty(self):
        self.assertEqual(group_steps([]), [])

    def test_single_step(self):
        groups = group_steps([make_step(id="only")])
        self.assertEqual(len(groups), 1)
        self.assertEqual(groups[0].step_ids, ["only"])

    def test_round_trip_to_brooklyn_is_one_trip(self):
        steps = brooklyn_trip()
        groups = group_steps(steps)

        self.assertEqual(len(groups), 1)
        trip = groups[0]
        self.assertEqual(trip.step_ids, ["out", "hotel", "car", "home"])
        self.assertIn("Brooklyn", trip.suggested_name)
        self.assertEqual(trip.start_date, "2025-11-19")
        self.assertEqual(trip.end_date, "2025-12-02")
        self.assertEqual(trip.night_count, 13)
        self.assertEqual(day_offset(steps[0].start_datetime, steps[0].end_datetime), 0)

    def test_unrelated_stays_far_apart_split(self):
        steps = [
            make_step("hotel", "2025-03-01T15:00:00-06:00", "Hotel Van Zandt", id="austin",
                      end_datetime="2025-03-04T11:00:00-06:00", origin_address="605 Davis St, Austin, TX 78701"),
            make_step("hotel", "2025-04-10T15:00:00-07:00", "Hotel Figueroa", id="la",
                      end_datetime="2025-04-12T11:00:00-07:00", origin_address="939 S Figueroa St, Los Angeles, CA 90015"),
        ]
        groups = group_steps(steps)
        self.assertEqual(partition(groups), [["austin"], ["la"]])
        self.assertEqual([g.suggested_name for g in groups], ["Austin", "Los Angeles"])

    def test_shared_location_name_overrides_gap(self):
        steps = [
            make_step("flight", "2025-06-01T08:00:00-07:00", "San Francisco (SFO)", id="a",
                      end_datetime="2025-06-01T14:00:00-05:00", destination_name="Chicago (ORD)"),
            make_step("train", "2025-06-15T09:00:00-05:00", "Chicago (ORD)", id="b",
                      destination_name="Milwaukee"),
        ]
        self.assertEqual(partition(group_steps(steps)), [["a", "b"]])

    def test_overlap_is_exact_string_match(self):
        steps = [
            make_step("flight", "2025-06-01T08:00:00-07:00", "San Francisco (SFO)", id="a",
                      destination_name="Chicago (ORD)"),
            make_step("train", "2025-06-15T09:00:00-05:00", "Chicago", id="b", destination_name="Milwaukee"),
        ]
        self.assertEqual(partition(group_steps(steps)), [["a"], ["b"]])

    def test_return_flight_home_joins_after_long_gap(self):
        steps = [
            make_step("flight", "2025-06-01T08:00:00-07:00", "San Francisco (SFO)", id="out",
                      end_datetime="2025-06-01T16:30:00-04:00", destination_name="Boston (BOS)"),
            make_step("hotel", "2025-06-01T18:00:00-04:00", "Hotel Commonwealth", id="stay",
                      end_datetime="2025-06-03T11:00:00-04:00"),
            make_step("flight", "2025-06-20T10:00:00-04:00", "Portland (PWM)", id="home",
                      end_datetime="2025-06-20T13:30:00-07:00", destination_name="San Francisco (OAK)"),
        ]
        groups = group_steps(steps)
        self.assertEqual(partition(groups), [["home", "out", "stay"]])

    def test_return_flight_rule_needs_a_flight_seed(self):
        steps = [
            make_step("car", "2025-06-01T08:00:00-07:00", "San Francisco", id="car"),
            make_step("flight", "2025-06-20T10:00:00-04:00", "Portland (PWM)", id="home",
                      destination_name="San Francisco (SFO)"),
        ]
        # no home base was recorded, and "San Francisco" != "San Francisco (SFO)"
        self.assertEqual(partition(group_steps(steps)), [["car"], ["home"]])

    def test_gap_of_exactly_seven_days_joins(self):
        steps = [
            make_step("activity", "2025-06-01T10:00:00Z", "Museum", id="a"),
            make_step("activity", "2025-06-08T10:00:00Z", "Gallery", id="b"),
            make_step("activity", "2025-06-15T10:00:01Z", "Zoo", id="c"),
        ]
        self.assertEqual(partition(group_steps(steps)), [["a", "b"], ["c"]])

    def test_gap_is_measured_from_previous_end(self):
        steps = [
            make_step("hotel", "2025-06-01T15:00:00Z", "Inn A", id="a", end_datetime="2025-06-20T11:00:00Z"),
            make_step("activity", "2025-06-24T10:00:00Z", "Tour", id="b"),
        ]
        self.assertEqual(partition(group_steps(steps)), [["a", "b"]])

    def test_malformed_date_starts_a_new_group(self):
        steps = [
            make_step("activity", "2025-06-01T10:00:00Z", "Museum", id="a"),
            make_step("activity", "sometime soon", "Gallery", id="b"),
        ]
        groups = group_steps(steps)
        self.assertEqual(partition(groups), [["a"], ["b"]])
        self.assertEqual(groups[1].start_date, "")
        self.assertEqual(groups[1].night_count, 0)

    def test_input_order_does_not_matter(self):
        steps = brooklyn_trip() + [
            make_step("hotel", "2026-02-01T15:00:00-07:00", "Hotel Jerome", id="aspen",
                      origin_address="330 E Main St, Aspen, CO 81611"),
        ]
        shuffled = list(steps)
        random.Random(7).shuffle(shuffled)
        self.assertEqual(partition(group_steps(shuffled)), partition(group_steps(steps)))

    def test_regrouping_is_idempotent(self):
        steps = brooklyn_trip() + [make_step("activity", "2026-01-05T10:00:00Z", "Louvre", id="paris")]
        first = group_steps(steps)
        second = group_steps(steps)
        self.assertEqual(partition(first), partition(second))
        self.assertEqual([g.suggested_name for g in first], [g.suggested_name for g in second])

    def test_gap_split_without_overlap(self):
        a = make_step("activity", "2025-06-01T10:00:00Z", "Museum", id="a")
        b = make_step("activity", "2025-06-10T10:00:00Z", "Gallery", id="b")
        self.assertEqual([[s.id for s in g] for g in cluster_steps([a, b])], [["a"], ["b"]])

    def test_destinations_reported_in_first_seen_order(self):
        group = group_steps(brooklyn_trip())[0]
        self.assertEqual(
            group.destinations,
            ["San Francisco (SFO)", "Newark (EWR)", "Hotel Brooklyn", "Brooklyn"],
        )


if __name__ == "__main__":
    unittest.main()
