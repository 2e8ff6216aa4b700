from __future__ import annotations
from datetime import date
from typing import Protocol, Sequence
from uuid import UUID
from sqlalchemy import select, exists
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from codestreak.models.challenge import Challenge, ChallengeMember
from codestreak.models.daily_result import DailyResult
from codestreak.models.penalty import Penalty


class ChallengeRepository(Protocol):
    """Read-only queries the aggregation layer needs. Errors from the store propagate."""

    async def challenge_exists(self, challenge_id: UUID) -> bool: ...
    async def find_active_memberships(self, challenge_id: UUID) -> Sequence[ChallengeMember]: ...
    async def find_daily_results(self, member_id: UUID, limit: int | None = None) -> Sequence[DailyResult]: ...
    async def find_daily_result(self, challenge_id: UUID, member_id: UUID, day: date) -> DailyResult | None: ...
    async def find_penalties(self, member_id: UUID) -> Sequence[Penalty]: ...
    async def find_user_memberships(self, user_id: UUID) -> Sequence[ChallengeMember]: ...
    async def find_membership(self, challenge_id: UUID, user_id: UUID) -> ChallengeMember | None: ...
    async def find_user_daily_results(self, user_id: UUID, since: date | None = None) -> Sequence[DailyResult]: ...


class SqlChallengeRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def challenge_exists(self, challenge_id: UUID) -> bool:
        return bool(await self.session.scalar(select(exists().where(Challenge.id == challenge_id))))

    async def find_active_memberships(self, challenge_id: UUID) -> Sequence[ChallengeMember]:
        # joined_at, id gives leaderboard ties a stable order
        return (await self.session.execute(
            select(ChallengeMember)
            .options(selectinload(ChallengeMember.user))
            .where(ChallengeMember.challenge_id == challenge_id, ChallengeMember.is_active.is_(True))
            .order_by(ChallengeMember.joined_at.asc(), ChallengeMember.id.asc())
        )).scalars().all()

    async def find_daily_results(self, member_id: UUID, limit: int | None = None) -> Sequence[DailyResult]:
        stmt = (
            select(DailyResult)
            .where(DailyResult.member_id == member_id)
            .order_by(DailyResult.day.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return (await self.session.execute(stmt)).scalars().all()

    async def find_daily_result(self, challenge_id: UUID, member_id: UUID, day: date) -> DailyResult | None:
        return await self.session.scalar(
            select(DailyResult).where(
                DailyResult.challenge_id == challenge_id,
                DailyResult.member_id == member_id,
                DailyResult.day == day,
            )
        )

    async def find_penalties(self, member_id: UUID) -> Sequence[Penalty]:
        return (await self.session.execute(
            select(Penalty).where(Penalty.member_id == member_id).order_by(Penalty.created_at.desc())
        )).scalars().all()

    async def find_user_memberships(self, user_id: UUID) -> Sequence[ChallengeMember]:
        return (await self.session.execute(
            select(ChallengeMember)
            .join(Challenge, Challenge.id == ChallengeMember.challenge_id)
            .options(selectinload(ChallengeMember.challenge))
            .where(
                ChallengeMember.user_id == user_id,
                ChallengeMember.is_active.is_(True),
                Challenge.status == "ACTIVE",
            )
            .order_by(ChallengeMember.joined_at.asc())
        )).scalars().all()

    async def find_membership(self, challenge_id: UUID, user_id: UUID) -> ChallengeMember | None:
        return await self.session.scalar(
            select(ChallengeMember)
            .options(selectinload(ChallengeMember.challenge))
            .where(ChallengeMember.challenge_id == challenge_id, ChallengeMember.user_id == user_id)
        )

    async def find_user_daily_results(self, user_id: UUID, since: date | None = None) -> Sequence[DailyResult]:
        stmt = (
            select(DailyResult)
            .join(ChallengeMember, ChallengeMember.id == DailyResult.member_id)
            .where(ChallengeMember.user_id == user_id)
            .order_by(DailyResult.day.desc())
        )
        if since is not None:
            stmt = stmt.where(DailyResult.day >= since)
        return (await self.session.execute(stmt)).scalars().all()
