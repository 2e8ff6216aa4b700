from __future__ import annotations
import random
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
import pytest
from codestreak.services import ranking
from fakes import make_member, make_penalty, make_result


def _adjacent_ok(a, b) -> bool:
    if a.current_streak != b.current_streak:
        return a.current_streak > b.current_streak
    if a.longest_streak != b.longest_streak:
        return a.longest_streak > b.longest_streak
    return a.total_penalties <= b.total_penalties


def test_fewer_penalties_break_streak_ties():
    heavy = make_member("heavy", current=5, longest=10, penalties="5")
    light = make_member("light", current=5, longest=10, penalties="2")
    board = ranking.rank_leaderboard([(heavy, []), (light, [])])
    assert [e.username for e in board] == ["light", "heavy"]


def test_current_then_longest_streak_order():
    a = make_member("a", current=3, longest=3)
    b = make_member("b", current=7, longest=7)
    c = make_member("c", current=3, longest=9)
    board = ranking.rank_leaderboard([(a, []), (b, []), (c, [])])
    assert [e.username for e in board] == ["b", "c", "a"]


def test_full_ties_keep_input_order():
    members = [make_member(f"u{i}", current=2, longest=4, penalties="1") for i in range(6)]
    first = ranking.rank_leaderboard([(m, []) for m in members])
    second = ranking.rank_leaderboard([(m, []) for m in members])
    assert [e.username for e in first] == [f"u{i}" for i in range(6)]
    assert first == second


def test_random_boards_are_totally_ordered():
    rng = random.Random(1234)
    for _ in range(50):
        rows = []
        for i in range(rng.randint(0, 25)):
            longest = rng.randint(0, 12)
            m = make_member(f"m{i}", current=rng.randint(0, longest), longest=longest,
                            penalties=str(rng.choice([0, 2, 5, 7.5, 10])))
            rows.append((m, []))
        board = ranking.rank_leaderboard(rows)
        assert len(board) == len(rows)
        assert all(_adjacent_ok(a, b) for a, b in zip(board, board[1:]))


def test_member_without_results_has_zero_rate():
    entry = ranking.rank_leaderboard([(make_member("new"), [])])[0]
    assert (entry.completed_days, entry.total_days, entry.completion_rate) == (0, 0, 0.0)


def test_entry_counts_and_rate():
    m = make_member("ana", current=2, longest=4, penalties="10")
    results = [
        make_result(date(2025, 1, 1), completed=True, member=m),
        make_result(date(2025, 1, 2), completed=False, member=m),
        make_result(date(2025, 1, 3), completed=True, member=m),
    ]
    e = ranking.leaderboard_entry(m, results)
    assert e.username == "ana" and e.leetcode_username == "lc_ana"
    assert (e.completed_days, e.total_days) == (2, 3)
    assert e.completion_rate == 66.67
    assert e.total_penalties == Decimal("10")


@pytest.mark.parametrize("completed,total,expected", [
    (0, 0, 0.0),
    (0, 4, 0.0),
    (4, 4, 100.0),
    (1, 3, 33.33),
    (2, 3, 66.67),
    (5, 7, 71.43),
    (1, 32, 3.13),  # exact half rounds up
    (1, 8, 12.5),
])
def test_completion_rate(completed, total, expected):
    rate = ranking.completion_rate(completed, total)
    assert rate == expected
    assert 0 <= rate <= 100


def test_completion_rate_rejects_impossible_counts():
    with pytest.raises(AssertionError):
        ranking.completion_rate(3, 2)
    with pytest.raises(AssertionError):
        ranking.completion_rate(-1, 2)


def test_duplicate_days_are_not_double_counted():
    m = make_member("dup")
    day = date(2025, 2, 1)
    early = make_result(day, completed=False, member=m, evaluated_at=datetime(2025, 2, 2, 1, tzinfo=timezone.utc))
    late = make_result(day, completed=True, member=m, evaluated_at=datetime(2025, 2, 2, 5, tzinfo=timezone.utc))
    other = make_result(date(2025, 2, 2), completed=False, member=m)

    kept = ranking.dedupe_by_day([early, other, late])
    assert kept == [other, late]  # most recent day first, re-evaluation wins

    s = ranking.summarize_results([early, other, late])
    assert (s.total_days, s.completed_days, s.failed_days) == (2, 1, 1)


def test_datetimes_with_time_of_day_collapse_to_one_day():
    m = make_member("tz")
    morning = make_result(datetime(2025, 3, 5, 0, 0, 1), member=m)
    evening = make_result(datetime(2025, 3, 5, 23, 59, 59), member=m)
    assert len(ranking.dedupe_by_day([morning, evening])) == 1
    assert ranking.summarize_results([morning, evening]).total_days == 1


def test_truncate_day_uses_boundary_timezone():
    late_utc = datetime(2025, 1, 11, 3, 0, tzinfo=timezone.utc)
    assert ranking.truncate_day(late_utc) == date(2025, 1, 11)
    assert ranking.truncate_day(late_utc, "America/New_York") == date(2025, 1, 10)
    assert ranking.truncate_day(datetime(2025, 1, 10, 18, 45)) == date(2025, 1, 10)
    assert ranking.truncate_day(date(2025, 1, 10)) == date(2025, 1, 10)


def test_current_day_is_truncated():
    now = datetime(2025, 6, 1, 23, 30, tzinfo=timezone.utc)
    assert ranking.current_day("UTC", now) == date(2025, 6, 1)
    assert ranking.current_day("Asia/Tokyo", now) == date(2025, 6, 2)


def test_today_status_projection():
    assert ranking.project_today_status(None) is None
    r = make_result(date(2025, 1, 1), completed=True, submissions=3, problems=2)
    status = ranking.project_today_status(r)
    assert status.completed and status.submissions_count == 3 and status.problems_solved == 2
    assert status.evaluated_at == r.evaluated_at


def test_progress_surfaces_streaks_and_penalties():
    m = make_member("p", current=1, longest=6, penalties="10")
    results = [make_result(date(2025, 1, d), completed=d % 2 == 1, member=m) for d in range(1, 6)]
    penalties = [make_penalty(m, date(2025, 1, 2)), make_penalty(m, date(2025, 1, 4))]

    progress = ranking.build_progress(m, results, penalties)
    assert progress.challenge.name == m.challenge.name
    assert progress.stats.total_days == 5
    assert progress.stats.completed_days == 3
    assert progress.stats.failed_days == 2
    assert progress.stats.completion_rate == 60.0
    assert progress.stats.longest_streak == 6
    assert progress.stats.total_penalties == Decimal("10")
    assert [r.date for r in progress.daily_results][0] == date(2025, 1, 5)
    assert len(progress.penalties) == 2


def test_recent_results_limit():
    m = make_member("r")
    results = [make_result(date(2025, 1, d), member=m) for d in range(1, 15)]
    recent = ranking.recent_results(results, 7)
    assert len(recent) == 7
    assert recent[0].date == date(2025, 1, 14)


def test_heatmap_window_and_totals():
    today = date(2025, 4, 10)
    a = make_member("h")
    b = make_member("h")  # same user, second challenge
    results = [
        make_result(today, completed=True, submissions=3, problems=2, member=a),
        make_result(today, completed=False, submissions=1, problems=0, member=b),
        make_result(today - timedelta(days=2), completed=True, submissions=1, problems=1, member=a),
        make_result(today - timedelta(days=30), member=a),  # outside a 30-day window
        make_result(today + timedelta(days=1), member=a),  # future rows are ignored
    ]
    cells = ranking.activity_heatmap(results, today, days=30)
    assert [c.date for c in cells] == [today - timedelta(days=2), today]
    assert cells[-1].submissions == 4
    assert cells[-1].problems_solved == 2
    assert cells[-1].challenges_evaluated == 2
    assert cells[-1].challenges_completed == 1


def test_user_stats_across_challenges():
    a = make_member("s", current=3, longest=8, penalties="5")
    b = make_member("s", current=6, longest=6, penalties="2.50")
    results = [
        make_result(date(2025, 1, 1), completed=True, submissions=2, problems=2, member=a),
        make_result(date(2025, 1, 1), completed=False, submissions=0, problems=0, member=b),
        make_result(date(2025, 1, 2), completed=True, submissions=1, problems=1, member=b),
    ]
    stats = ranking.build_user_stats([a, b], results)
    assert stats.active_challenges == 2
    assert stats.best_current_streak == 6
    assert stats.longest_streak == 8
    assert stats.total_penalties == Decimal("7.50")
    assert (stats.total_days, stats.completed_days, stats.failed_days) == (3, 2, 1)
    assert stats.completion_rate == 66.67
    assert stats.total_submissions == 3 and stats.total_problems_solved == 3


def test_user_stats_without_memberships():
    stats = ranking.build_user_stats([], [])
    assert stats.active_challenges == 0
    assert stats.completion_rate == 0.0
    assert stats.total_penalties == Decimal("0")


def test_negative_counts_fail_loudly():
    m = make_member("neg")
    bad = make_result(date(2025, 1, 1), submissions=-5, problems=-2, member=m)
    with pytest.raises(AssertionError):
        ranking.build_user_stats([m], [bad])
    with pytest.raises(AssertionError):
        ranking.activity_heatmap([bad], date(2025, 1, 1), days=7)
    with pytest.raises(AssertionError):
        ranking.summarize_results([make_result(date(2025, 1, 1), submissions=0, problems=-1, member=m)])


def test_unnormalized_day_values_fail_loudly():
    m = make_member("raw")
    with pytest.raises(AssertionError):
        ranking.summarize_results([make_result("2025-01-01", member=m, evaluated_at=datetime(2025, 1, 2, tzinfo=timezone.utc))])


def test_submission_chart_fills_every_day():
    today = date(2025, 4, 10)
    a = make_member("c")
    b = make_member("c")
    results = [
        make_result(today, submissions=3, problems=2, member=a),
        make_result(today, submissions=1, problems=0, member=b),
        make_result(today - timedelta(days=2), submissions=4, problems=1, member=a),
        make_result(today - timedelta(days=7), submissions=9, problems=9, member=a),  # outside a 7-day window
    ]
    points = ranking.submission_chart(results, today, days=7)
    assert [p.date for p in points] == [today - timedelta(days=6 - i) for i in range(7)]
    assert (points[-1].submissions, points[-1].problems_solved) == (4, 2)
    assert (points[-3].submissions, points[-3].problems_solved) == (4, 1)
    assert sum(p.submissions for p in points) == 8
    assert points[0].submissions == 0 and points[0].problems_solved == 0


def test_submission_chart_counts_reevaluated_day_once():
    today = date(2025, 4, 10)
    m = make_member("twice")
    early = make_result(today, submissions=1, problems=1, member=m, evaluated_at=datetime(2025, 4, 11, 1, tzinfo=timezone.utc))
    late = make_result(today, submissions=3, problems=2, member=m, evaluated_at=datetime(2025, 4, 11, 5, tzinfo=timezone.utc))
    points = ranking.submission_chart([early, late], today, days=1)
    assert [(p.submissions, p.problems_solved) for p in points] == [(3, 2)]
