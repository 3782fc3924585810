"""
Analytics Service - catalog-wide rollups for the admin dashboard.

All functions work on records that have already been loaded (tests with
their questions and attempts, domains with their tests) and return plain
dicts. Nothing here touches the database or the wall clock; the caller
passes `now` for the recent-activity window.

Averages here keep two decimals (half-up), unlike the integer
percentages of the per-learner statistics.
"""

import time
from datetime import datetime, timedelta
from typing import List

from testtutor.config import RECENT_ACTIVITY_DAYS, TOP_TESTS_LIMIT
from testtutor.helpers import ensure_utc, isoformat, round_half_up
from testtutor.logging_config import get_logger, log_with_context
from testtutor.models.question import DIFFICULTIES
from testtutor.models.test import TEST_STATUSES

logger = get_logger("analytics")

USER_RECENT_ATTEMPTS = 5


def _status_key(status: str) -> str:
    return status.lower()


def _scored_percentages(attempts) -> List[float]:
    """Percentages of completed attempts that actually carry a score."""
    return [
        a.percentage for a in attempts
        if a.status == "COMPLETED" and a.percentage is not None
    ]


def _mean_2dp(values) -> float:
    if not values:
        return 0
    return round_half_up(sum(values) / len(values), 2)


def tests_by_status(tests) -> dict:
    """Count tests per lifecycle status; every status is present."""
    counts = {_status_key(status): 0 for status in TEST_STATUSES}
    for test in tests:
        key = _status_key(test.status or "")
        if key in counts:
            counts[key] += 1
    return counts


def questions_by_difficulty(questions) -> dict:
    """Count questions per difficulty tier; every tier is present."""
    counts = {difficulty.lower(): 0 for difficulty in DIFFICULTIES}
    for question in questions:
        key = (question.difficulty or "").lower()
        if key in counts:
            counts[key] += 1
    return counts


def top_performing_tests(tests, limit: int = TOP_TESTS_LIMIT) -> List[dict]:
    """
    Published tests with at least one completed attempt, most attempted first.

    The first `limit` qualifying tests in retrieval order are kept, then
    sorted by attempt count; ties keep their retrieval order.
    """
    eligible = [
        test for test in tests
        if test.status == "PUBLISHED"
        and any(a.status == "COMPLETED" for a in test.attempts)
    ][:limit]

    rows = [
        {
            "id": str(test.id),
            "title": test.title,
            "attempts": len(test.attempts),
            "average_score": _mean_2dp(_scored_percentages(test.attempts)),
            "domain": test.domain.display_name if test.domain is not None else None,
        }
        for test in eligible
    ]
    return sorted(rows, key=lambda row: row["attempts"], reverse=True)


def domain_stats(domains) -> List[dict]:
    """
    Per-domain test, question and attempt counts plus the mean percentage
    over every scored completed attempt in the domain. Tests without
    attempts do not dilute the average.
    """
    results = []
    for domain in domains:
        tests = list(domain.tests or [])
        percentages = []
        for test in tests:
            percentages.extend(_scored_percentages(test.attempts))

        results.append({
            "id": str(domain.id),
            "name": domain.name,
            "display_name": domain.display_name,
            "tests_count": len(tests),
            "questions_count": sum(len(test.questions) for test in tests),
            "attempts_count": sum(len(test.attempts) for test in tests),
            "average_score": _mean_2dp(percentages),
        })
    return results


def recent_activity_counts(tests, questions, attempts, now: datetime,
                           days: int = RECENT_ACTIVITY_DAYS) -> dict:
    """Tests and questions created, and attempts started, since now - days."""
    since = ensure_utc(now) - timedelta(days=days)

    def _within(value):
        return value is not None and ensure_utc(value) >= since

    return {
        "new_tests": sum(1 for t in tests if _within(t.created_at)),
        "new_questions": sum(1 for q in questions if _within(q.created_at)),
        "new_attempts": sum(1 for a in attempts if _within(a.started_at)),
    }


def build_dashboard(tests, questions, attempts, domains, total_users: int,
                    now: datetime) -> dict:
    """
    Assemble the admin dashboard.

    Args:
        tests: All tests, each with domain, questions and attempts loaded
        questions: All questions
        attempts: All attempts
        domains: All domains, each with tests loaded
        total_users: Number of registered users
        now: Reference time for the recent-activity window
    """
    start_time = time.time()
    tests = list(tests or [])
    questions = list(questions or [])
    attempts = list(attempts or [])
    domains = list(domains or [])

    dashboard = {
        "total_tests": len(tests),
        "total_questions": len(questions),
        "total_attempts": len(attempts),
        "total_users": total_users or 0,
        "total_domains": len(domains),
        "recent_activity": recent_activity_counts(tests, questions, attempts, now),
        "tests_by_status": tests_by_status(tests),
        "questions_by_difficulty": questions_by_difficulty(questions),
        "top_performing_tests": top_performing_tests(tests),
        "domain_stats": domain_stats(domains),
    }

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Dashboard computed: {} tests, {} attempts, {} domains".format(
            len(tests), len(attempts), len(domains)),
        extra_data={"duration_ms": round(duration_ms, 2)})
    return dashboard


def summarize_test(test) -> dict:
    """Attempt and pass-rate analytics for a single test."""
    attempts = list(test.attempts or [])
    completed = [a for a in attempts if a.status == "COMPLETED"]
    threshold = test.effective_pass_percentage

    if completed:
        average_score = round_half_up(
            sum(a.percentage or 0 for a in completed) / len(completed), 2)
        passed = sum(1 for a in completed if (a.percentage or 0) >= threshold)
        pass_rate = round_half_up(passed / len(completed) * 100, 2)
        average_time_spent = round_half_up(
            sum(a.time_spent or 0 for a in completed) / len(completed))
    else:
        average_score = 0
        pass_rate = 0
        average_time_spent = 0

    return {
        "id": str(test.id),
        "title": test.title,
        "status": test.status,
        "domain": test.domain.display_name if test.domain is not None else None,
        "pass_percentage": threshold,
        "questions_count": len(test.questions),
        "analytics": {
            "total_attempts": len(attempts),
            "completed_attempts": len(completed),
            "average_score": average_score,
            "pass_rate": pass_rate,
            "average_time_spent": average_time_spent,
        },
    }


def summarize_user(user) -> dict:
    """Attempt totals and recent attempts for a single user."""
    attempts = sorted(
        user.attempts or [],
        key=lambda a: ensure_utc(a.started_at),
        reverse=True,
    )
    completed = [a for a in attempts if a.status == "COMPLETED"]

    return {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "total_attempts": len(attempts),
        "completed_attempts": len(completed),
        "average_score": _mean_2dp([a.percentage or 0 for a in completed]),
        "tests_created": len(user.created_tests or []),
        "recent_attempts": [
            {
                "id": str(a.id),
                "test_id": str(a.test_id),
                "status": a.status,
                "percentage": a.percentage,
                "started_at": isoformat(a.started_at),
                "completed_at": isoformat(a.completed_at),
            }
            for a in attempts[:USER_RECENT_ATTEMPTS]
        ],
    }
