"""Playback engine state machine."""

import pytest

from streamjet.services.playback import (
    LOAD_ERROR_MESSAGE,
    RESUME_ERROR_MESSAGE,
    PlaybackEngine,
    PlaybackState,
)

from test_doubles import FakeAudioOutput, make_station


@pytest.fixture
def output():
    return FakeAudioOutput()


@pytest.fixture
def engine(output):
    return PlaybackEngine(output)


def record_states(engine: PlaybackEngine) -> list[PlaybackState]:
    states: list[PlaybackState] = []
    engine.add_listener(lambda snapshot: states.append(snapshot.state))
    return states


class TestPlay:
    def test_starts_idle_with_default_volume(self, engine, output):
        assert engine.state == PlaybackState.IDLE
        assert engine.current_station is None
        assert engine.volume == 0.7
        assert output.volume == 0.7

    async def test_play_goes_through_loading_to_playing(self, engine, output):
        states = record_states(engine)
        station = make_station()

        await engine.play(station)

        assert states == [PlaybackState.LOADING, PlaybackState.PLAYING]
        assert engine.current_station == station
        assert engine.is_playing
        assert output.source == station.url_resolved

    async def test_play_prefers_resolved_url(self, engine, output):
        station = make_station()
        station.url_resolved = ""

        await engine.play(station)

        assert output.source == station.url

    async def test_start_failure_reports_load_error(self, output):
        station = make_station()
        output.fail_urls.add(station.stream_url)
        engine = PlaybackEngine(output)
        states = record_states(engine)

        await engine.play(station)

        assert states == [PlaybackState.LOADING, PlaybackState.ERROR]
        assert engine.error == LOAD_ERROR_MESSAGE
        assert engine.current_station == station

    async def test_switching_station_replaces_source(self, engine, output):
        await engine.play(make_station("a", "A"))
        await engine.play(make_station("b", "B"))

        assert engine.current_station.stationuuid == "b"
        assert output.source == "http://streams.test/b/live"

    async def test_media_error_event_sets_load_error(self, engine):
        await engine.play(make_station())

        await engine.on_error()

        assert engine.state == PlaybackState.ERROR
        assert engine.error == LOAD_ERROR_MESSAGE

    async def test_playing_event_without_station_is_ignored(self, engine):
        await engine.on_playing()

        assert engine.state == PlaybackState.IDLE


class TestPauseResume:
    async def test_pause_then_resume(self, engine):
        await engine.play(make_station())
        states = record_states(engine)

        await engine.pause()
        await engine.resume()

        assert states == [PlaybackState.PAUSED, PlaybackState.PLAYING]

    async def test_resume_failure_keeps_station(self, engine, output):
        station = make_station()
        await engine.play(station)
        await engine.pause()
        output.fail_urls.add(station.stream_url)

        await engine.resume()

        assert engine.state == PlaybackState.ERROR
        assert engine.error == RESUME_ERROR_MESSAGE
        assert engine.current_station == station

    async def test_resume_without_station_does_nothing(self, engine):
        states = record_states(engine)

        await engine.resume()

        assert states == []


class TestStop:
    async def test_stop_clears_station_and_error(self, engine, output):
        station = make_station()
        output.fail_urls.add(station.stream_url)
        await engine.play(station)

        await engine.stop()

        assert engine.state == PlaybackState.IDLE
        assert engine.current_station is None
        assert engine.error is None
        assert output.source is None


class TestVolume:
    @pytest.mark.parametrize("requested, expected", [(0.3, 0.3), (1.5, 1.0), (-0.2, 0.0)])
    def test_volume_is_clamped(self, engine, output, requested, expected):
        engine.set_volume(requested)

        assert engine.volume == expected
        assert output.volume == expected


class TestListeners:
    async def test_failing_listener_does_not_break_playback(self, engine, caplog):
        def broken(snapshot):
            raise RuntimeError("boom")

        engine.add_listener(broken)

        await engine.play(make_station())

        assert engine.is_playing
        assert "Listener failed" in caplog.text

    async def test_async_listener_is_awaited(self, engine):
        seen = []

        async def listener(snapshot):
            seen.append(snapshot.state)

        engine.add_listener(listener)
        await engine.play(make_station())

        assert seen == [PlaybackState.LOADING, PlaybackState.PLAYING]

    async def test_removed_listener_is_not_called(self, engine):
        seen = []
        remove = engine.add_listener(lambda snapshot: seen.append(snapshot.state))

        remove()
        await engine.play(make_station())

        assert seen == []
