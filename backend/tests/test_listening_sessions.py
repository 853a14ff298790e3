"""Listening session rows."""

from datetime import datetime, timedelta, timezone

import pytest

from streamjet.services.errors import NotAuthenticatedError
from streamjet.services.listening_sessions import ListeningSessionService, ListeningSessionStore

NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)


class TestListeningSessionService:
    async def test_start_requires_listener(self, db):
        with pytest.raises(NotAuthenticatedError):
            await ListeningSessionService(db).start(None, "s1", "Jazz FM")

    async def test_end_stamps_duration(self, db, listener):
        service = ListeningSessionService(db)
        row = await service.start(listener.id, "s1", "Jazz FM", started_at=NOW)

        ended = await service.end(row.id, 125, ended_at=NOW + timedelta(seconds=125))

        assert ended.duration_seconds == 125
        assert ended.ended_at is not None

    async def test_history_is_newest_first_within_window(self, db, listener):
        service = ListeningSessionService(db)
        await service.start(listener.id, "old", "Old", started_at=NOW - timedelta(days=40))
        await service.start(listener.id, "a", "A", started_at=NOW - timedelta(days=2))
        await service.start(listener.id, "b", "B", started_at=NOW - timedelta(hours=1))
        await db.commit()

        history = await service.history(listener.id, days=30, now=NOW)

        assert [row.station_uuid for row in history] == ["b", "a"]


class TestListeningSessionStore:
    async def test_commits_each_write(self, session_maker, listener):
        store = ListeningSessionStore(session_maker)

        row = await store.start(listener.id, "s1", "Jazz FM", NOW)
        await store.end(row.id, 60, NOW + timedelta(seconds=60))

        async with session_maker() as session:
            saved = await ListeningSessionService(session).get(row.id)
        assert saved.duration_seconds == 60
