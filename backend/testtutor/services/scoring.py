"""
Scoring Service - turns a learner's submitted answers into a verdict.

Scoring rules:
1. A question is correct when the submitted option indices, taken as a
   set, equal the set of options flagged correct. Unanswered or malformed
   selections are simply incorrect.
2. score = sum of points of correct questions (1 point per question when
   a question carries no weight)
3. percentage = round_half_up(score / total_points * 100), 0 when the test
   has no questions
4. passed = percentage >= pass threshold (and never for an empty test)

`score_answers` is pure; `complete_attempt` applies it to a stored attempt
and finalizes that attempt.
"""

import math
import time
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy.orm import Session

from testtutor.helpers import ensure_utc, round_half_up, to_naive_utc, utc_now
from testtutor.logging_config import get_logger, log_with_context
from testtutor.models.attempt import TestAttempt

logger = get_logger("scoring")


class AttemptAlreadyCompleted(Exception):
    """The attempt's row was no longer IN_PROGRESS when it was finalized."""


def _question_points(question) -> int:
    points = getattr(question, "points", None)
    return 1 if points is None else points


def normalize_selection(raw) -> Optional[List[int]]:
    """
    Normalize a submitted answer to a sorted list of option indices.

    Accepts a single index or a list of indices. Returns [] for an
    unanswered question and None when the value is not a usable selection.
    """
    if raw is None:
        return []
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return [raw]
    if isinstance(raw, (list, tuple)):
        if any(isinstance(item, bool) or not isinstance(item, int) for item in raw):
            return None
        return sorted(set(raw))
    return None


def score_answers(questions, answers: Dict[str, object], pass_percentage: int) -> dict:
    """
    Score a set of answers against a test's questions.

    Args:
        questions: Ordered questions, each with id, points and correct_indices
        answers: Mapping of question id -> selected option index or indices
        pass_percentage: Minimum percentage (0-100) needed to pass

    Returns:
        Dict with score, total_points, percentage, passed, total_questions,
        correct_answers and question_results (one entry per question)
    """
    answers = answers if isinstance(answers, dict) else {}
    questions = list(questions or [])

    earned_points = 0
    total_points = 0
    correct_count = 0
    question_results = []

    for question in questions:
        points = _question_points(question)
        correct = sorted(question.correct_indices)
        selection = normalize_selection(answers.get(str(question.id)))

        is_correct = selection is not None and len(selection) > 0 and selection == correct
        if is_correct:
            correct_count += 1
            earned_points += points
        total_points += points

        question_results.append({
            "question_id": str(question.id),
            "is_correct": is_correct,
            "selected": selection if selection is not None else [],
            "correct": correct,
            "points": points,
            "earned_points": points if is_correct else 0,
        })

    if not questions or total_points <= 0:
        percentage = 0
        passed = False
    else:
        percentage = round_half_up(earned_points / total_points * 100)
        percentage = max(0, min(100, percentage))
        passed = percentage >= pass_percentage

    return {
        "score": earned_points,
        "total_points": total_points,
        "percentage": percentage,
        "passed": passed,
        "total_questions": len(questions),
        "correct_answers": correct_count,
        "question_results": question_results,
    }


def elapsed_seconds(started_at: Optional[datetime], now: datetime) -> int:
    """Whole seconds between start and `now`, never negative."""
    if started_at is None:
        return 0
    delta = (ensure_utc(now) - ensure_utc(started_at)).total_seconds()
    return max(0, int(math.floor(delta)))


def complete_attempt(attempt: TestAttempt, db: Session, now: datetime = None) -> dict:
    """
    Score an IN_PROGRESS attempt and finalize it.

    Sets status to COMPLETED, stamps completed_at and stores score,
    percentage and time_spent with a single UPDATE guarded on the row
    still being IN_PROGRESS. The caller commits the session.

    Raises:
        AttemptAlreadyCompleted: the stored attempt is no longer IN_PROGRESS

    Returns:
        The evaluation dict from `score_answers`, plus attempt/test ids
        and time_spent
    """
    start_time = time.time()
    now = now or utc_now()
    test = attempt.test

    evaluation = score_answers(test.questions, attempt.answers_dict,
                               test.effective_pass_percentage)
    time_spent = elapsed_seconds(attempt.started_at, now)

    # Only a row still IN_PROGRESS may be finalized; a concurrent
    # submission that got there first leaves nothing to update.
    updated = db.query(TestAttempt).filter(
        TestAttempt.id == attempt.id,
        TestAttempt.status == "IN_PROGRESS"
    ).update({
        "answers": attempt.answers,
        "status": "COMPLETED",
        "completed_at": to_naive_utc(now),
        "score": float(evaluation["score"]),
        "percentage": evaluation["percentage"],
        "time_spent": time_spent,
    }, synchronize_session=False)

    if updated == 0:
        log_with_context(logger, "WARNING", "Attempt was already completed",
                         context={"attempt_id": str(attempt.id)})
        raise AttemptAlreadyCompleted(str(attempt.id))

    db.refresh(attempt)

    evaluation.update({
        "attempt_id": str(attempt.id),
        "test_id": str(test.id),
        "user_id": str(attempt.user_id) if attempt.user_id else None,
        "pass_percentage": test.effective_pass_percentage,
        "time_spent": time_spent,
    })

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Attempt scored: {}% ({}/{} correct, passed={})".format(
            evaluation["percentage"], evaluation["correct_answers"],
            evaluation["total_questions"], evaluation["passed"]),
        context={
            "attempt_id": str(attempt.id),
            "user_id": str(attempt.user_id) if attempt.user_id else None,
            "test_id": str(test.id)
        },
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "score": float(evaluation["score"]),
            "time_spent": time_spent
        })

    return evaluation
