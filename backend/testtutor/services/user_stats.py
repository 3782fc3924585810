"""
User Statistics Service - summarizes one learner's completed attempts.

Input is the learner's COMPLETED attempts ordered most-recent-first. The
summary contains:
- average score and total time spent (minutes)
- improvement rate: newest half average minus oldest half average,
  only once there are at least 4 attempts
- the 10 most recent attempts
- per-domain attempt count, average and best percentage
- a monthly series over the trailing 6 months
- current and longest daily streaks

Attempts without completed_at still count toward averages but are left
out of the monthly series and the streaks. Every calculation is
relative to the `now` passed in, never the wall clock.
"""

import time
from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import List, Optional

from testtutor.config import MONTHLY_PROGRESS_MONTHS, RECENT_ATTEMPTS_LIMIT
from testtutor.helpers import ensure_utc, isoformat, round_half_up, subtract_months
from testtutor.logging_config import get_logger, log_with_context

logger = get_logger("stats")

MIN_ATTEMPTS_FOR_IMPROVEMENT = 4


def _percentage(attempt) -> float:
    return attempt.percentage or 0


def _domain_name(attempt) -> str:
    test = getattr(attempt, "test", None)
    domain = getattr(test, "domain", None) if test is not None else None
    return domain.display_name if domain is not None else "Unknown"


def _completion_day(attempt) -> Optional[date]:
    completed_at = ensure_utc(attempt.completed_at)
    return completed_at.date() if completed_at else None


def average_percentage(attempts) -> int:
    """Mean percentage rounded half-up to an integer; 0 without attempts."""
    if not attempts:
        return 0
    return round_half_up(sum(_percentage(a) for a in attempts) / len(attempts))


def total_minutes(attempts) -> int:
    """Total time spent across attempts, converted from seconds to minutes."""
    seconds = sum(a.time_spent or 0 for a in attempts)
    return round_half_up(seconds / 60)


def improvement_rate(attempts) -> int:
    """
    Difference between the newest and oldest halves of the history.

    `attempts` is most-recent-first. With an odd count the middle attempt
    belongs to neither half. Fewer than 4 attempts always gives 0.
    """
    count = len(attempts)
    if count < MIN_ATTEMPTS_FOR_IMPROVEMENT:
        return 0
    half = count // 2
    newest = attempts[:half]
    oldest = attempts[-half:]
    newest_avg = sum(_percentage(a) for a in newest) / len(newest)
    oldest_avg = sum(_percentage(a) for a in oldest) / len(oldest)
    return round_half_up(newest_avg - oldest_avg)


def recent_activity(attempts, limit: int = RECENT_ATTEMPTS_LIMIT) -> List[dict]:
    """Project the most recent attempts for the activity feed."""
    return [
        {
            "id": str(attempt.id),
            "test_title": attempt.test.title if attempt.test is not None else None,
            "domain": _domain_name(attempt),
            "score": attempt.percentage,
            "completed_at": isoformat(attempt.completed_at),
            "time_spent": attempt.time_spent,
        }
        for attempt in attempts[:limit]
    ]


def domain_performance(attempts) -> List[dict]:
    """Group attempts by domain display name."""
    groups = OrderedDict()
    for attempt in attempts:
        name = _domain_name(attempt)
        group = groups.setdefault(name, {"name": name, "attempts": 0,
                                         "total_score": 0, "best_score": 0})
        group["attempts"] += 1
        group["total_score"] += _percentage(attempt)
        group["best_score"] = max(group["best_score"], _percentage(attempt))

    return [
        {
            "name": group["name"],
            "attempts": group["attempts"],
            "average_score": round_half_up(group["total_score"] / group["attempts"]),
            "best_score": group["best_score"],
        }
        for group in groups.values()
    ]


def monthly_progress(attempts, now: datetime,
                     months: int = MONTHLY_PROGRESS_MONTHS) -> List[dict]:
    """
    Attempt count and average percentage per UTC calendar month ("YYYY-MM"),
    oldest month first, for attempts completed within the trailing window.
    """
    cutoff = subtract_months(ensure_utc(now), months)
    dated = [
        (ensure_utc(a.completed_at), a) for a in attempts
        if a.completed_at is not None and ensure_utc(a.completed_at) >= cutoff
    ]
    dated.sort(key=lambda pair: pair[0])

    groups = OrderedDict()
    for completed_at, attempt in dated:
        month = completed_at.strftime("%Y-%m")
        group = groups.setdefault(month, {"month": month, "attempts": 0, "total_score": 0})
        group["attempts"] += 1
        group["total_score"] += _percentage(attempt)

    return [
        {
            "month": group["month"],
            "attempts": group["attempts"],
            "average_score": round_half_up(group["total_score"] / group["attempts"]),
        }
        for group in groups.values()
    ]


def current_streak(attempts, now: datetime) -> int:
    """
    Consecutive days with at least one completed attempt, counting back
    from today. A streak whose latest day is yesterday is still current,
    since today may simply not have been practised yet.
    """
    today = ensure_utc(now).date()
    days = sorted(
        {day for day in (_completion_day(a) for a in attempts)
         if day is not None and day <= today},
        reverse=True,
    )
    if not days:
        return 0

    expected = days[0]
    if expected < today - timedelta(days=1):
        return 0

    streak = 0
    for day in days:
        if day != expected:
            break
        streak += 1
        expected -= timedelta(days=1)
    return streak


def longest_streak(attempts) -> int:
    """Longest run of consecutive attempt days anywhere in the history."""
    days = sorted({day for day in (_completion_day(a) for a in attempts) if day is not None})
    if not days:
        return 0

    longest = 1
    run = 1
    for previous, day in zip(days, days[1:]):
        if (day - previous).days == 1:
            run += 1
            longest = max(longest, run)
        else:
            run = 1
    return longest


def build_user_stats(attempts, now: datetime) -> dict:
    """
    Build the full statistics summary for one learner.

    Args:
        attempts: The learner's completed attempts, most-recent-first
        now: Reference time for the monthly window and streaks

    Returns:
        Dict ready for JSON serialization
    """
    start_time = time.time()
    attempts = list(attempts or [])

    stats = {
        "total_tests": len(attempts),
        "average_score": average_percentage(attempts),
        "time_spent": total_minutes(attempts),
        "improvement_rate": improvement_rate(attempts),
        "recent_activity": recent_activity(attempts),
        "domain_performance": domain_performance(attempts),
        "monthly_progress": monthly_progress(attempts, now),
        "streaks": {
            "current": current_streak(attempts, now),
            "longest": longest_streak(attempts),
        },
    }

    log_with_context(logger, "DEBUG",
        "User stats computed over {} attempts".format(len(attempts)),
        extra_data={"duration_ms": round((time.time() - start_time) * 1000, 2)})
    return stats
