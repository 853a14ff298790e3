"""Presence liveness, heartbeat rows and the heartbeat timer."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from streamjet.services.errors import NotAuthenticatedError
from streamjet.services.presence import (
    DatabasePresenceStore,
    PresenceHeartbeat,
    PresenceService,
    is_live,
)
from streamjet.services.realtime import RealtimeHub, listeners_topic

from test_doubles import FakePresenceStore, make_ref

NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)


class TestIsLive:
    def test_heartbeat_inside_window_is_live(self):
        assert is_live(NOW - timedelta(seconds=119), now=NOW)

    def test_heartbeat_outside_window_is_stale(self):
        assert not is_live(NOW - timedelta(seconds=121), now=NOW)

    def test_window_boundary_is_stale(self):
        assert not is_live(NOW - timedelta(seconds=120), now=NOW)

    def test_naive_timestamps_are_treated_as_utc(self):
        naive = (NOW - timedelta(seconds=30)).replace(tzinfo=None)

        assert is_live(naive, now=NOW)


class TestPresenceService:
    async def test_beat_keeps_one_row_per_listener(self, db, listener):
        service = PresenceService(db)

        await service.beat(listener.id, make_ref("a", "A"), NOW)
        await service.beat(listener.id, make_ref("b", "B"), NOW + timedelta(seconds=30))
        await db.commit()

        assert await service.active_listeners("a", now=NOW + timedelta(seconds=40)) == []
        rows = await service.active_listeners("b", now=NOW + timedelta(seconds=40))
        assert [row.user_id for row in rows] == [listener.id]
        assert rows[0].station_name == "B"

    async def test_stale_rows_are_not_listed_or_counted(self, db, listener):
        service = PresenceService(db)
        await service.beat(listener.id, make_ref(), NOW)
        await db.commit()

        later = NOW + timedelta(seconds=121)
        assert await service.active_listeners("station-1", now=later) == []
        assert await service.listener_count(now=later) == 0
        assert await service.listener_count(now=NOW + timedelta(seconds=60)) == 1

    async def test_clear_returns_previous_station(self, db, listener):
        service = PresenceService(db)
        await service.beat(listener.id, make_ref(), NOW)

        assert await service.clear(listener.id) == "station-1"
        assert await service.clear(listener.id) is None

    async def test_beat_requires_listener(self, db):
        with pytest.raises(NotAuthenticatedError):
            await PresenceService(db).beat(None, make_ref(), NOW)


class TestDatabasePresenceStore:
    async def test_publishes_station_and_global_events(self, session_maker, listener):
        hub = RealtimeHub()
        events = []
        hub.subscribe(listeners_topic("station-1"), events.append)
        hub.subscribe(listeners_topic(), events.append)
        store = DatabasePresenceStore(session_maker, hub=hub)

        await store.beat(listener.id, make_ref(), NOW)
        await store.clear(listener.id)

        assert [(e["topic"], e["event"]) for e in events] == [
            ("listeners:station-1", "UPSERT"),
            ("listeners", "UPSERT"),
            ("listeners:station-1", "DELETE"),
            ("listeners", "DELETE"),
        ]
        assert events[0]["record"]["user_id"] == str(listener.id)


class TestPresenceHeartbeat:
    async def test_start_beats_immediately(self, presence_store, clock):
        heartbeat = PresenceHeartbeat(presence_store, "user", interval=3600, clock=clock)

        await heartbeat.start(make_ref())

        assert len(presence_store.beats) == 1
        assert heartbeat.running
        await heartbeat.stop()

    async def test_timer_repeats(self, presence_store, clock):
        async with PresenceHeartbeat(presence_store, "user", interval=0.01, clock=clock) as heartbeat:
            await heartbeat.start(make_ref())
            await asyncio.sleep(0.05)

        assert len(presence_store.beats) >= 3

    async def test_restart_replaces_timer(self, presence_store, clock):
        heartbeat = PresenceHeartbeat(presence_store, "user", interval=3600, clock=clock)
        await heartbeat.start(make_ref("a", "A"))
        first = heartbeat._task

        await heartbeat.start(make_ref("b", "B"))

        assert first.cancelled()
        assert heartbeat.station == make_ref("b", "B")
        assert presence_store.beats[-1][1] == make_ref("b", "B")
        await heartbeat.stop()

    async def test_stop_cancels_and_clears(self, presence_store, clock):
        heartbeat = PresenceHeartbeat(presence_store, "user", interval=0.01, clock=clock)
        await heartbeat.start(make_ref())

        await heartbeat.stop()
        beats = len(presence_store.beats)
        await asyncio.sleep(0.03)

        assert not heartbeat.running
        assert presence_store.clears == ["user"]
        assert len(presence_store.beats) == beats

    async def test_stop_without_station_does_not_clear(self, presence_store, clock):
        heartbeat = PresenceHeartbeat(presence_store, "user", interval=3600, clock=clock)

        await heartbeat.stop()

        assert presence_store.clears == []

    async def test_store_failures_are_logged(self, clock, caplog):
        heartbeat = PresenceHeartbeat(FakePresenceStore(fail=True), "user", interval=3600, clock=clock)

        await heartbeat.start(make_ref())
        await heartbeat.stop()

        assert "Failed to update presence" in caplog.text
        assert "Failed to clear presence" in caplog.text
