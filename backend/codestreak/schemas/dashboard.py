from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from typing import Literal
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal

ChallengeStatus = Literal["ACTIVE", "COMPLETED", "CANCELLED"]

class LeaderboardEntry(BaseModel):
    """One ranked member. This is also the shape stored in the leaderboard cache."""
    username: str
    leetcode_username: str | None = None
    current_streak: int = Field(ge=0)
    longest_streak: int = Field(ge=0)
    total_penalties: Decimal = Field(ge=0)
    completed_days: int = Field(ge=0)
    total_days: int = Field(ge=0)
    completion_rate: float = Field(ge=0, le=100)

# Cache payload codec (JSON text <-> list[LeaderboardEntry])
LeaderboardPayload = TypeAdapter(list[LeaderboardEntry])

class ResultSummary(BaseModel):
    total_days: int
    completed_days: int
    failed_days: int
    completion_rate: float

class ChallengeSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    start_date: date
    end_date: date
    min_submissions_per_day: int
    difficulty_filter: str | None = None
    unique_problem_constraint: bool = False
    penalty_amount: Decimal
    status: ChallengeStatus

class DailyResultPublic(BaseModel):
    date: date
    completed: bool
    submissions_count: int
    problems_solved: int
    evaluated_at: datetime

class TodayStatus(BaseModel):
    completed: bool
    submissions_count: int
    problems_solved: int
    evaluated_at: datetime

class PenaltyPublic(BaseModel):
    id: UUID
    amount: Decimal
    reason: str | None = None
    date: date
    created_at: datetime

class DashboardItem(BaseModel):
    challenge: ChallengeSummary
    current_streak: int
    longest_streak: int
    total_penalties: Decimal
    today_status: TodayStatus | None = None  # null until today has been evaluated
    recent_results: list[DailyResultPublic]

class ProgressStats(ResultSummary):
    current_streak: int
    longest_streak: int
    total_penalties: Decimal

class ChallengeProgress(BaseModel):
    challenge: ChallengeSummary | None = None
    stats: ProgressStats
    daily_results: list[DailyResultPublic]
    penalties: list[PenaltyPublic]

class TodayChallengeStatus(BaseModel):
    challenge_id: UUID
    challenge_name: str
    required_submissions: int
    status: TodayStatus | None = None

class TodayOverview(BaseModel):
    date: date
    challenges: list[TodayChallengeStatus]

class HeatmapDay(BaseModel):
    date: date
    submissions: int
    problems_solved: int
    challenges_completed: int
    challenges_evaluated: int

class SubmissionChartPoint(BaseModel):
    date: date
    submissions: int
    problems_solved: int

class UserStats(ResultSummary):
    active_challenges: int
    best_current_streak: int
    longest_streak: int
    total_penalties: Decimal
    total_submissions: int
    total_problems_solved: int
