"""Personal listening analytics derived from listening-session history.

Everything here is a pure function over session rows; nothing is persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Iterable, Protocol
from zoneinfo import ZoneInfo

from streamjet.services.clock import ensure_utc, round_half_up

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

NIGHT_HOURS = list(range(22, 24)) + list(range(0, 4))
DAY_HOURS = list(range(8, 18))
WEEKEND_DAYS = (0, 6)
WEEKEND_RATIO = 0.4


class SessionLike(Protocol):
    station_uuid: str
    station_name: str
    started_at: datetime
    duration_seconds: int | None


@dataclass
class TemporalStats:
    by_hour: list[dict] = field(default_factory=list)
    by_day: list[dict] = field(default_factory=list)
    night_owl_index: int = 0
    weekend_warrior: bool = False
    peak_hour: int | None = None


@dataclass
class StationAffinity:
    station_uuid: str
    station_name: str
    total_minutes: int
    session_count: int
    last_listened: datetime


@dataclass(frozen=True)
class Badge:
    key: str
    label: str
    emoji: str


def session_minutes(session: SessionLike) -> int:
    return round_half_up((session.duration_seconds or 0) / 60)


def _day_of_week(moment: datetime) -> int:
    """Sunday = 0 .. Saturday = 6."""
    return (moment.weekday() + 1) % 7


def temporal_stats(sessions: Iterable[SessionLike], tz: tzinfo | str = "UTC") -> TemporalStats:
    """Bucket listening minutes by local hour of day and day of week.

    ``night_owl_index`` is night minutes (22:00-04:00) as a percentage of
    daytime minutes (08:00-18:00), floored to 0 when there is no daytime
    listening. ``peak_hour`` is ``None`` only when there are no sessions at all.
    """
    sessions = list(sessions)
    if not sessions:
        return TemporalStats()

    zone = ZoneInfo(tz) if isinstance(tz, str) else tz
    hour_minutes = [0] * 24
    day_minutes = [0] * 7

    for session in sessions:
        local = ensure_utc(session.started_at).astimezone(zone)
        minutes = session_minutes(session)
        hour_minutes[local.hour] += minutes
        day_minutes[_day_of_week(local)] += minutes

    night = sum(hour_minutes[h] for h in NIGHT_HOURS)
    daytime = sum(hour_minutes[h] for h in DAY_HOURS)
    night_owl_index = round_half_up(night / daytime * 100) if daytime > 0 else 0

    weekend = sum(day_minutes[d] for d in WEEKEND_DAYS)
    weekday = sum(day_minutes[1:6])

    return TemporalStats(
        by_hour=[{"hour": hour, "minutes": m} for hour, m in enumerate(hour_minutes)],
        by_day=[{"day": name, "minutes": day_minutes[i]} for i, name in enumerate(DAY_NAMES)],
        night_owl_index=night_owl_index,
        weekend_warrior=weekend > weekday * WEEKEND_RATIO,
        peak_hour=hour_minutes.index(max(hour_minutes)),
    )


def station_affinity(sessions: Iterable[SessionLike]) -> list[StationAffinity]:
    """Total minutes and session count per station, most-listened first."""
    by_station: dict[str, StationAffinity] = {}

    for session in sessions:
        started_at = ensure_utc(session.started_at)
        entry = by_station.get(session.station_uuid)
        if entry is None:
            by_station[session.station_uuid] = StationAffinity(
                station_uuid=session.station_uuid,
                station_name=session.station_name,
                total_minutes=session_minutes(session),
                session_count=1,
                last_listened=started_at,
            )
            continue

        entry.total_minutes += session_minutes(session)
        entry.session_count += 1
        if started_at > entry.last_listened:
            entry.last_listened = started_at

    return sorted(by_station.values(), key=lambda a: a.total_minutes, reverse=True)


def listening_badges(
    stats: TemporalStats,
    affinity: list[StationAffinity],
    top: int = 5,
) -> list[Badge]:
    """Personality badges shown on the listening-stats card."""
    top_stations = affinity[:top]
    badges = []

    if stats.night_owl_index > 60:
        badges.append(Badge("night_owl", "Night Owl", "🦉"))
    if stats.night_owl_index < 30:
        badges.append(Badge("early_bird", "Early Bird", "☀️"))
    if stats.weekend_warrior:
        badges.append(Badge("weekend_warrior", "Weekend Warrior", "🎉"))
    if len(top_stations) > 3:
        badges.append(Badge("station_hopper", "Station Hopper", "🎧"))
    if len(top_stations) == 1 and top_stations[0].session_count > 5:
        badges.append(Badge("loyal_listener", "Loyal Listener", "💎"))
    if not top_stations:
        badges.append(Badge("new_explorer", "New Explorer", "🆕"))

    return badges
