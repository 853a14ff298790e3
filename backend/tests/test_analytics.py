"""Temporal stats, station affinity and badges from session history."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

from streamjet.services.analytics import (
    Badge,
    StationAffinity,
    TemporalStats,
    listening_badges,
    session_minutes,
    station_affinity,
    temporal_stats,
)

# Monday
MONDAY = datetime(2026, 3, 2, tzinfo=timezone.utc)
SATURDAY = MONDAY + timedelta(days=5)


def session(started_at, seconds, station="a", name="A"):
    return SimpleNamespace(
        station_uuid=station,
        station_name=name,
        started_at=started_at,
        duration_seconds=seconds,
    )


def badge_keys(badges: list[Badge]) -> list[str]:
    return [badge.key for badge in badges]


class TestSessionMinutes:
    def test_rounds_half_up(self):
        assert session_minutes(session(MONDAY, 90)) == 2
        assert session_minutes(session(MONDAY, 89)) == 1

    def test_open_session_counts_zero(self):
        assert session_minutes(session(MONDAY, None)) == 0


class TestTemporalStats:
    def test_empty_history(self):
        stats = temporal_stats([])

        assert stats.peak_hour is None
        assert stats.night_owl_index == 0
        assert stats.weekend_warrior is False

    def test_buckets_have_fixed_shape(self):
        stats = temporal_stats([session(MONDAY.replace(hour=9), 600)])

        assert [b["hour"] for b in stats.by_hour] == list(range(24))
        assert [b["day"] for b in stats.by_day] == ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
        assert stats.by_hour[9]["minutes"] == 10
        assert stats.by_day[1]["minutes"] == 10
        assert sum(b["minutes"] for b in stats.by_hour) == sum(b["minutes"] for b in stats.by_day)

    def test_buckets_use_local_time(self):
        late = session(MONDAY.replace(hour=23, minute=30), 3600)

        utc = temporal_stats([late], "UTC")
        new_york = temporal_stats([late], ZoneInfo("America/New_York"))

        assert utc.peak_hour == 23
        assert new_york.peak_hour == 18
        assert new_york.by_day[1]["minutes"] == 60

    def test_local_day_can_differ_from_utc_day(self):
        early_monday_utc = session(MONDAY.replace(hour=2), 600)

        stats = temporal_stats([early_monday_utc], "America/Los_Angeles")

        assert stats.by_day[0]["minutes"] == 10

    def test_night_owl_index_is_night_over_daytime(self):
        sessions = [
            session(MONDAY.replace(hour=23), 3600),
            session(MONDAY.replace(hour=10), 7200),
        ]

        assert temporal_stats(sessions).night_owl_index == 50

    def test_night_owl_index_is_zero_without_daytime(self):
        stats = temporal_stats([session(MONDAY.replace(hour=1), 3600)])

        assert stats.night_owl_index == 0

    def test_weekend_warrior_threshold(self):
        weekday = session(MONDAY.replace(hour=12), 100 * 60)

        assert not temporal_stats([weekday, session(SATURDAY, 40 * 60)]).weekend_warrior
        assert temporal_stats([weekday, session(SATURDAY, 41 * 60)]).weekend_warrior

    def test_peak_hour_with_only_zero_durations(self):
        stats = temporal_stats([session(MONDAY.replace(hour=15), None)])

        assert stats.peak_hour == 0

    def test_naive_timestamps_are_utc(self):
        stats = temporal_stats([session(datetime(2026, 3, 2, 7, 0), 600)])

        assert stats.peak_hour == 7


class TestStationAffinity:
    def test_sorted_by_total_minutes(self):
        sessions = [
            session(MONDAY, 1800, "a", "A"),
            session(MONDAY + timedelta(hours=2), 1800, "a", "A"),
            session(MONDAY + timedelta(hours=1), 5400, "b", "B"),
        ]

        affinity = station_affinity(sessions)

        assert [a.station_uuid for a in affinity] == ["b", "a"]
        assert affinity[1].total_minutes == 60
        assert affinity[1].session_count == 2
        assert affinity[1].last_listened == MONDAY + timedelta(hours=2)

    def test_totals_match_history(self):
        sessions = [session(MONDAY, s, station) for s, station in [(60, "a"), (120, "b"), (180, "a")]]

        affinity = station_affinity(sessions)

        assert sum(a.total_minutes for a in affinity) == sum(session_minutes(s) for s in sessions)
        assert sum(a.session_count for a in affinity) == len(sessions)


class TestBadges:
    def affinity(self, count, sessions=1):
        return [
            StationAffinity(f"s{i}", f"S{i}", total_minutes=10, session_count=sessions, last_listened=MONDAY)
            for i in range(count)
        ]

    def test_night_owl(self):
        badges = listening_badges(TemporalStats(night_owl_index=61), self.affinity(2))

        assert badge_keys(badges) == ["night_owl"]

    def test_early_bird_and_weekend_warrior(self):
        badges = listening_badges(TemporalStats(night_owl_index=10, weekend_warrior=True), self.affinity(2))

        assert badge_keys(badges) == ["early_bird", "weekend_warrior"]

    def test_station_hopper(self):
        badges = listening_badges(TemporalStats(night_owl_index=45), self.affinity(4))

        assert badge_keys(badges) == ["station_hopper"]

    def test_loyal_listener(self):
        badges = listening_badges(TemporalStats(night_owl_index=45), self.affinity(1, sessions=6))

        assert badge_keys(badges) == ["loyal_listener"]

    def test_five_sessions_is_not_loyal(self):
        badges = listening_badges(TemporalStats(night_owl_index=45), self.affinity(1, sessions=5))

        assert badges == []

    def test_new_explorer(self):
        badges = listening_badges(temporal_stats([]), [])

        assert "new_explorer" in badge_keys(badges)
