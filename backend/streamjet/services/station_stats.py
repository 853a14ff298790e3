import uuid
from datetime import datetime
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streamjet.database import upsert
from streamjet.models.reaction import ReactionType, UserStationStats
from streamjet.services.clock import utcnow
from streamjet.services.errors import NotAuthenticatedError

PERSONALITIES = {
    ReactionType.FIRE: ("🔥 Fire Merchant", "🔥"),
    ReactionType.WAVE: ("🌊 Vibe Curator", "🌊"),
    ReactionType.CRYING: ("😭 Emotional Explorer", "😭"),
    ReactionType.SLEEP: ("💤 Honest Critic", "💤"),
}
NEW_LISTENER = (None, "New Listener", "🎧")


def counter_column(reaction_type: ReactionType) -> str:
    return f"{reaction_type.value}_count"


class StationStatsService:
    """Per-listener station counters."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record_reaction(
        self,
        user_id: uuid.UUID | None,
        station_uuid: str,
        station_name: str,
        reaction_type: ReactionType,
        now: datetime | None = None,
    ) -> None:
        """Increment one reaction counter in a single atomic upsert."""
        if user_id is None:
            raise NotAuthenticatedError()

        now = now or utcnow()
        column = counter_column(reaction_type)
        stmt = upsert(self.session, UserStationStats).values(
            id=uuid.uuid4(),
            user_id=user_id,
            station_uuid=station_uuid,
            station_name=station_name,
            last_listened_at=now,
            updated_at=now,
            **{column: 1},
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserStationStats.user_id, UserStationStats.station_uuid],
            set_={
                column: getattr(UserStationStats, column) + 1,
                "last_listened_at": now,
                "updated_at": now,
            },
        )
        await self.session.execute(stmt)

    async def for_user(self, user_id: uuid.UUID) -> list[UserStationStats]:
        result = await self.session.execute(
            select(UserStationStats)
            .where(UserStationStats.user_id == user_id)
            .order_by(UserStationStats.updated_at.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())


def total_reactions(stats: UserStationStats) -> int:
    return stats.fire_count + stats.wave_count + stats.crying_count + stats.sleep_count


def reaction_personality(stats: Iterable[UserStationStats]) -> tuple[ReactionType | None, str, str]:
    """The listener's most-used reaction as a (type, label, emoji) triple."""
    stats = list(stats)
    if not stats:
        return NEW_LISTENER

    totals = {
        reaction_type: sum(getattr(s, counter_column(reaction_type)) for s in stats)
        for reaction_type in ReactionType
    }
    # Ties go to the later reaction type
    best = None
    for reaction_type, total in totals.items():
        if best is None or totals[best] <= total:
            best = reaction_type

    if totals[best] == 0:
        return NEW_LISTENER
    label, emoji = PERSONALITIES[best]
    return best, label, emoji


def top_stations(stats: Iterable[UserStationStats], limit: int = 5) -> list[UserStationStats]:
    """Stations with the most reactions of any kind."""
    return sorted(stats, key=total_reactions, reverse=True)[:limit]
