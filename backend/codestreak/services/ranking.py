from __future__ import annotations
from datetime import date, datetime, timedelta, timezone as dt_tz
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Sequence
from zoneinfo import ZoneInfo

from codestreak.schemas.dashboard import (
    ChallengeProgress, ChallengeSummary, DailyResultPublic, HeatmapDay, LeaderboardEntry,
    PenaltyPublic, ProgressStats, ResultSummary, SubmissionChartPoint, TodayStatus, UserStats,
)

# Pure functions over persistence rows. Memberships and results are read by
# attribute only, so ORM objects and plain test doubles both work.

# ---------- days ----------

def truncate_day(value: date | datetime, tz_name: str = "UTC") -> date:
    """
    Reduce a date or datetime to its calendar day.

    Aware datetimes are first converted to `tz_name`, so the same instant lands
    on the same day no matter which offset it was stored with. Naive datetimes
    are taken as already being wall-clock time in `tz_name`.

    Examples:
        >>> truncate_day(datetime(2025, 1, 10, 23, 30, tzinfo=dt_tz.utc), "America/New_York")
        datetime.date(2025, 1, 10)
        >>> truncate_day(datetime(2025, 1, 11, 3, 0, tzinfo=dt_tz.utc), "America/New_York")
        datetime.date(2025, 1, 10)
        >>> truncate_day(date(2025, 1, 10))
        datetime.date(2025, 1, 10)
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(ZoneInfo(tz_name))
        return value.date()
    return value

def current_day(tz_name: str = "UTC", now: datetime | None = None) -> date:
    """Today's calendar day at the evaluation boundary `tz_name`."""
    return truncate_day(now or datetime.now(dt_tz.utc), tz_name)

def _latest(a: Any, b: Any) -> Any:
    # keep the first one seen unless the other was evaluated strictly later
    a_at, b_at = getattr(a, "evaluated_at", None), getattr(b, "evaluated_at", None)
    if a_at is not None and b_at is not None and b_at > a_at:
        return b
    return a

def dedupe_by_day(results: Iterable[Any]) -> list[Any]:
    """
    At most one result per calendar day, most recent day first.

    The store enforces one row per (challenge, member, day); if duplicates
    still arrive the one evaluated last wins instead of being counted twice.
    """
    by_day: dict[date, Any] = {}
    for r in results:
        assert r.submissions_count >= 0 and r.problems_solved >= 0, (r.submissions_count, r.problems_solved)
        d = truncate_day(r.day)
        assert type(d) is date, d  # a bare date, never a datetime or a string
        by_day[d] = _latest(by_day[d], r) if d in by_day else r
    return [by_day[d] for d in sorted(by_day, reverse=True)]

def _dedupe_per_member(results: Iterable[Any]) -> list[Any]:
    per_member: dict[Any, list[Any]] = {}
    for r in results:
        per_member.setdefault(getattr(r, "member_id", None), []).append(r)
    out: list[Any] = []
    for rows in per_member.values():
        out.extend(dedupe_by_day(rows))
    return out

# ---------- rates & summaries ----------

def completion_rate(completed_days: int, total_days: int) -> float:
    assert 0 <= completed_days <= total_days, (completed_days, total_days)
    if total_days == 0:
        return 0.0
    # half-up at two places: 1/32 is 3.13, not banker's 3.12
    rate = Decimal(completed_days * 100) / Decimal(total_days)
    return float(rate.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

def _summary(rows: Sequence[Any]) -> ResultSummary:
    # rows must come out of dedupe_by_day: one per member and day
    assert len({(getattr(r, "member_id", None), truncate_day(r.day)) for r in rows}) == len(rows)
    total = len(rows)
    completed = sum(1 for r in rows if r.completed)
    return ResultSummary(
        total_days=total,
        completed_days=completed,
        failed_days=total - completed,
        completion_rate=completion_rate(completed, total),
    )

def summarize_results(results: Iterable[Any]) -> ResultSummary:
    return _summary(dedupe_by_day(results))

# ---------- leaderboard ----------

def leaderboard_entry(membership: Any, results: Iterable[Any]) -> LeaderboardEntry:
    s = summarize_results(results)
    user = membership.user
    return LeaderboardEntry(
        username=user.username,
        leetcode_username=getattr(user, "leetcode_username", None),
        current_streak=int(membership.current_streak),
        longest_streak=int(membership.longest_streak),
        total_penalties=Decimal(membership.total_penalties or 0),
        completed_days=s.completed_days,
        total_days=s.total_days,
        completion_rate=s.completion_rate,
    )

def leaderboard_sort_key(entry: LeaderboardEntry) -> tuple[int, int, Decimal]:
    return (-entry.current_streak, -entry.longest_streak, entry.total_penalties)

def rank_leaderboard(rows: Iterable[tuple[Any, Iterable[Any]]]) -> list[LeaderboardEntry]:
    """
    Build and order leaderboard entries from (membership, results) pairs.

    Order: current streak desc, longest streak desc, total penalties asc.
    sorted() is stable, so members tied on all three keep their input order
    (the repository returns them by join time, then id).
    """
    entries = [leaderboard_entry(m, results) for (m, results) in rows]
    return sorted(entries, key=leaderboard_sort_key)

# ---------- per-membership views ----------

def to_public_result(r: Any) -> DailyResultPublic:
    return DailyResultPublic(
        date=truncate_day(r.day),
        completed=bool(r.completed),
        submissions_count=int(r.submissions_count),
        problems_solved=int(r.problems_solved),
        evaluated_at=r.evaluated_at,
    )

def recent_results(results: Iterable[Any], limit: int) -> list[DailyResultPublic]:
    return [to_public_result(r) for r in dedupe_by_day(results)[:limit]]

def project_today_status(result: Any | None) -> TodayStatus | None:
    if result is None:
        return None
    return TodayStatus(
        completed=bool(result.completed),
        submissions_count=int(result.submissions_count),
        problems_solved=int(result.problems_solved),
        evaluated_at=result.evaluated_at,
    )

def to_public_penalty(p: Any) -> PenaltyPublic:
    return PenaltyPublic(id=p.id, amount=Decimal(p.amount), reason=p.reason, date=truncate_day(p.day), created_at=p.created_at)

def build_progress(membership: Any, results: Iterable[Any], penalties: Iterable[Any]) -> ChallengeProgress:
    rows = dedupe_by_day(results)
    s = _summary(rows)
    challenge = getattr(membership, "challenge", None)
    return ChallengeProgress(
        challenge=ChallengeSummary.model_validate(challenge) if challenge is not None else None,
        stats=ProgressStats(
            **s.model_dump(),
            current_streak=int(membership.current_streak),
            longest_streak=int(membership.longest_streak),
            total_penalties=Decimal(membership.total_penalties or 0),
        ),
        daily_results=[to_public_result(r) for r in rows],
        penalties=[to_public_penalty(p) for p in penalties],
    )

# ---------- cross-challenge views ----------

def activity_heatmap(results: Iterable[Any], today: date, days: int = 365) -> list[HeatmapDay]:
    """Per-day activity over the `days` days ending at `today`, oldest first; empty days are omitted."""
    assert days > 0
    start = today - timedelta(days=days - 1)
    buckets: dict[date, HeatmapDay] = {}
    for r in _dedupe_per_member(results):
        d = truncate_day(r.day)
        if d < start or d > today:
            continue
        cell = buckets.get(d)
        if cell is None:
            cell = buckets[d] = HeatmapDay(date=d, submissions=0, problems_solved=0, challenges_completed=0, challenges_evaluated=0)
        cell.submissions += int(r.submissions_count)
        cell.problems_solved += int(r.problems_solved)
        cell.challenges_evaluated += 1
        if r.completed:
            cell.challenges_completed += 1
    return [buckets[d] for d in sorted(buckets)]

def build_user_stats(memberships: Sequence[Any], results: Iterable[Any]) -> UserStats:
    rows = _dedupe_per_member(results)
    s = _summary(rows)
    return UserStats(
        **s.model_dump(),
        active_challenges=len(memberships),
        best_current_streak=max((int(m.current_streak) for m in memberships), default=0),
        longest_streak=max((int(m.longest_streak) for m in memberships), default=0),
        total_penalties=sum((Decimal(m.total_penalties or 0) for m in memberships), Decimal("0")),
        total_submissions=sum(int(r.submissions_count) for r in rows),
        total_problems_solved=sum(int(r.problems_solved) for r in rows),
    )

def submission_chart(results: Iterable[Any], today: date, days: int = 30) -> list[SubmissionChartPoint]:
    """
    Submissions and problems solved per day over the `days` days ending at
    `today`, oldest first. Unlike the heatmap every day in the window is
    present, with zeros where nothing was evaluated.
    """
    assert days > 0
    start = today - timedelta(days=days - 1)
    points = {
        start + timedelta(days=i): SubmissionChartPoint(date=start + timedelta(days=i), submissions=0, problems_solved=0)
        for i in range(days)
    }
    for r in _dedupe_per_member(results):
        point = points.get(truncate_day(r.day))
        if point is None:
            continue
        point.submissions += int(r.submissions_count)
        point.problems_solved += int(r.problems_solved)
    return list(points.values())
