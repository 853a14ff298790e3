"""Station reactions, the derived energy score and trending stations."""

import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Protocol

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from streamjet.config import settings
from streamjet.models.reaction import ReactionType, StationReaction
from streamjet.services.clock import ensure_utc, round_half_up, utcnow
from streamjet.services.errors import NotAuthenticatedError
from streamjet.services.station_stats import StationStatsService

REACTION_EMOJIS = {
    ReactionType.FIRE: ("🔥", "This station is cooking"),
    ReactionType.WAVE: ("🌊", "Immaculate vibe"),
    ReactionType.CRYING: ("😭", "Why is this hitting"),
    ReactionType.SLEEP: ("💤", "Respectfully… no"),
}


class ReactionLike(Protocol):
    station_uuid: str
    station_name: str
    reaction_type: ReactionType
    created_at: datetime
    expires_at: datetime


@dataclass
class TrendingEntry:
    uuid: str
    name: str
    count: int


def calculate_energy(
    reactions: Iterable[ReactionLike],
    now: datetime | None = None,
    window: timedelta | None = None,
    saturation: int | None = None,
) -> int:
    """Energy from 0 to 100: reactions in the sliding window, saturating at 100."""
    now = now or utcnow()
    window = window or timedelta(minutes=settings.energy_window_minutes)
    saturation = saturation or settings.energy_saturation

    cutoff = now - window
    recent = sum(1 for r in reactions if ensure_utc(r.created_at) > cutoff)
    return round_half_up(min(100, recent / saturation * 100))


def live_reactions(reactions: Iterable[ReactionLike], now: datetime | None = None) -> list:
    """Drop reactions past their expiry."""
    now = now or utcnow()
    return [r for r in reactions if ensure_utc(r.expires_at) > now]


def reaction_counts(reactions: Iterable[ReactionLike]) -> dict[str, int]:
    counts = {reaction_type.value: 0 for reaction_type in ReactionType}
    total = 0
    for reaction in reactions:
        counts[ReactionType(reaction.reaction_type).value] += 1
        total += 1
    counts["total"] = total
    return counts


def rank_trending(reactions: Iterable[ReactionLike], limit: int = 10) -> list[TrendingEntry]:
    """Count live reactions per station and keep the top ``limit``."""
    counts: Counter[str] = Counter()
    names: dict[str, str] = {}
    for reaction in reactions:
        counts[reaction.station_uuid] += 1
        names.setdefault(reaction.station_uuid, reaction.station_name)

    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [
        TrendingEntry(uuid=station_uuid, name=names[station_uuid], count=count)
        for station_uuid, count in ranked[:limit]
    ]


class ReactionService:
    """Reactions are replaced per (listener, station) and expire on their own."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.stats = StationStatsService(session)

    async def add_reaction(
        self,
        user_id: uuid.UUID | None,
        station_uuid: str,
        station_name: str,
        reaction_type: ReactionType,
        now: datetime | None = None,
    ) -> StationReaction:
        """Replace the listener's reaction on a station and bump their counter.

        Delete-then-insert is not atomic: two concurrent submissions from the
        same listener can leave two live rows until both expire.
        """
        if user_id is None:
            raise NotAuthenticatedError()

        now = now or utcnow()
        await self.session.execute(
            delete(StationReaction)
            .where(StationReaction.user_id == user_id)
            .where(StationReaction.station_uuid == station_uuid)
        )

        reaction = StationReaction(
            user_id=user_id,
            station_uuid=station_uuid,
            station_name=station_name,
            reaction_type=reaction_type,
            created_at=now,
            expires_at=now + timedelta(minutes=settings.reaction_ttl_minutes),
        )
        self.session.add(reaction)
        await self.session.flush()

        await self.stats.record_reaction(user_id, station_uuid, station_name, reaction_type, now)
        return reaction

    async def station_reactions(
        self,
        station_uuid: str,
        now: datetime | None = None,
    ) -> list[StationReaction]:
        result = await self.session.execute(
            select(StationReaction)
            .where(StationReaction.station_uuid == station_uuid)
            .where(StationReaction.expires_at > (now or utcnow()))
        )
        return list(result.scalars().all())

    async def user_reaction(
        self,
        user_id: uuid.UUID,
        station_uuid: str,
        now: datetime | None = None,
    ) -> StationReaction | None:
        result = await self.session.execute(
            select(StationReaction)
            .where(StationReaction.user_id == user_id)
            .where(StationReaction.station_uuid == station_uuid)
            .where(StationReaction.expires_at > (now or utcnow()))
            .order_by(StationReaction.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def trending(self, limit: int = 10, now: datetime | None = None) -> list[TrendingEntry]:
        result = await self.session.execute(
            select(StationReaction).where(StationReaction.expires_at > (now or utcnow()))
        )
        return rank_trending(result.scalars().all(), limit)
