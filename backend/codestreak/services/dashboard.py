from __future__ import annotations
from datetime import date, datetime, timedelta, timezone as dt_tz
from decimal import Decimal
from typing import Callable
from uuid import UUID
import structlog

from codestreak.config import Settings, settings as default_settings
from codestreak.schemas.dashboard import (
    ChallengeProgress, ChallengeSummary, DashboardItem, HeatmapDay, LeaderboardEntry,
    SubmissionChartPoint, TodayChallengeStatus, TodayOverview, UserStats,
)
from codestreak.services.cache import CacheManager
from codestreak.services.repository import ChallengeRepository
from codestreak.services import ranking

log = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(dt_tz.utc)


class DashboardService:
    """
    Assembles the dashboard, progress, today, heatmap, chart, stats and leaderboard
    views from repository rows.

    Returns None where the subject (challenge, membership) does not exist.
    Repository errors propagate unchanged; cache errors never reach here.
    """

    def __init__(
        self,
        repository: ChallengeRepository,
        cache: CacheManager,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.repository = repository
        self.cache = cache
        self.settings = settings
        self.clock = clock

    def today(self) -> date:
        return ranking.current_day(self.settings.day_boundary_tz, self.clock())

    # ---------- leaderboard ----------

    async def get_leaderboard(self, challenge_id: UUID) -> list[LeaderboardEntry] | None:
        cached = await self.cache.get_leaderboard(challenge_id)
        if cached is not None:
            return cached

        if not await self.repository.challenge_exists(challenge_id):
            return None

        members = await self.repository.find_active_memberships(challenge_id)
        rows = []
        for m in members:
            rows.append((m, await self.repository.find_daily_results(m.id)))
        leaderboard = ranking.rank_leaderboard(rows)
        log.info("leaderboard_computed", challenge_id=str(challenge_id), members=len(leaderboard))

        await self.cache.set_leaderboard(challenge_id, leaderboard, self.settings.leaderboard_cache_ttl_seconds)
        return leaderboard

    async def invalidate_leaderboard(self, challenge_id: UUID) -> None:
        await self.cache.invalidate_leaderboard(challenge_id)

    # ---------- per-user views ----------

    async def get_dashboard(self, user_id: UUID) -> list[DashboardItem]:
        today = self.today()
        items: list[DashboardItem] = []
        for m in await self.repository.find_user_memberships(user_id):
            today_result = await self.repository.find_daily_result(m.challenge_id, m.id, today)
            recent = await self.repository.find_daily_results(m.id, self.settings.dashboard_recent_days)
            items.append(DashboardItem(
                challenge=ChallengeSummary.model_validate(m.challenge),
                current_streak=int(m.current_streak),
                longest_streak=int(m.longest_streak),
                total_penalties=Decimal(m.total_penalties or 0),
                today_status=ranking.project_today_status(today_result),
                recent_results=ranking.recent_results(recent, self.settings.dashboard_recent_days),
            ))
        return items

    async def get_challenge_progress(self, challenge_id: UUID, user_id: UUID) -> ChallengeProgress | None:
        membership = await self.repository.find_membership(challenge_id, user_id)
        if membership is None:
            return None
        results = await self.repository.find_daily_results(membership.id, self.settings.progress_history_days)
        penalties = await self.repository.find_penalties(membership.id)
        return ranking.build_progress(membership, results, penalties)

    async def get_today_status(self, user_id: UUID) -> TodayOverview:
        today = self.today()
        statuses: list[TodayChallengeStatus] = []
        for m in await self.repository.find_user_memberships(user_id):
            result = await self.repository.find_daily_result(m.challenge_id, m.id, today)
            statuses.append(TodayChallengeStatus(
                challenge_id=m.challenge.id,
                challenge_name=m.challenge.name,
                required_submissions=int(m.challenge.min_submissions_per_day),
                status=ranking.project_today_status(result),
            ))
        return TodayOverview(date=today, challenges=statuses)

    async def get_activity_heatmap(self, user_id: UUID) -> list[HeatmapDay]:
        today = self.today()
        days = self.settings.heatmap_days
        results = await self.repository.find_user_daily_results(user_id, since=today - timedelta(days=days - 1))
        return ranking.activity_heatmap(results, today, days)

    async def get_submission_chart(self, user_id: UUID) -> list[SubmissionChartPoint]:
        today = self.today()
        days = self.settings.submission_chart_days
        results = await self.repository.find_user_daily_results(user_id, since=today - timedelta(days=days - 1))
        return ranking.submission_chart(results, today, days)

    async def get_user_stats(self, user_id: UUID) -> UserStats:
        memberships = await self.repository.find_user_memberships(user_id)
        results = await self.repository.find_user_daily_results(user_id)
        return ranking.build_user_stats(memberships, results)
