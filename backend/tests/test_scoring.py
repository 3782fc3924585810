"""
Tests for the attempt scoring service.
"""
import json
from datetime import datetime, timedelta, timezone

import pytest

from factories import build_attempt, build_domain, build_question, build_questions, build_test
from testtutor.models import TestAttempt
from testtutor.services.scoring import (
    AttemptAlreadyCompleted,
    complete_attempt,
    elapsed_seconds,
    normalize_selection,
    score_answers,
)


def answer_first_n_correctly(questions, n):
    """Answer the first n questions with their correct option, the rest wrongly."""
    answers = {}
    for i, question in enumerate(questions):
        correct = sorted(question.correct_indices)
        answers[question.id] = correct if i < n else [(correct[0] + 1) % 4]
    return answers


class TestNormalizeSelection:
    """Tests for normalize_selection."""

    def test_none_is_unanswered(self):
        assert normalize_selection(None) == []

    def test_single_index_is_wrapped(self):
        assert normalize_selection(2) == [2]

    def test_list_is_sorted_and_deduplicated(self):
        assert normalize_selection([3, 1, 3]) == [1, 3]

    def test_non_integer_items_are_rejected(self):
        assert normalize_selection(["1"]) is None
        assert normalize_selection([1.5]) is None

    def test_booleans_are_rejected(self):
        assert normalize_selection(True) is None
        assert normalize_selection([True]) is None

    def test_other_types_are_rejected(self):
        assert normalize_selection("A") is None
        assert normalize_selection({"0": 1}) is None


class TestScoreAnswers:
    """Tests for score_answers."""

    def test_no_questions_scores_zero_and_fails(self):
        result = score_answers([], {"q1": [0]}, pass_percentage=0)

        assert result["score"] == 0
        assert result["percentage"] == 0
        assert result["passed"] is False
        assert result["question_results"] == []

    def test_all_correct_is_full_marks(self):
        questions = build_questions(10)
        answers = answer_first_n_correctly(questions, 10)

        result = score_answers(questions, answers, pass_percentage=100)

        assert result["percentage"] == 100
        assert result["passed"] is True
        assert result["correct_answers"] == 10

    def test_three_of_four_is_75_percent(self):
        questions = build_questions(4)
        answers = answer_first_n_correctly(questions, 3)

        result = score_answers(questions, answers, pass_percentage=75)

        assert result["score"] == 3
        assert result["percentage"] == 75
        assert result["passed"] is True

    def test_threshold_is_inclusive(self):
        """24 questions, 18 correct, pass mark 75: exactly 75% passes."""
        questions = build_questions(24)
        answers = answer_first_n_correctly(questions, 18)

        result = score_answers(questions, answers, pass_percentage=75)

        assert result["percentage"] == 75
        assert result["passed"] is True

    def test_below_threshold_fails(self):
        """50 questions, 42 correct, pass mark 86."""
        questions = build_questions(50)
        answers = answer_first_n_correctly(questions, 42)

        result = score_answers(questions, answers, pass_percentage=86)

        assert result["percentage"] == 84
        assert result["passed"] is False

    def test_percentage_rounds_half_up(self):
        """1 of 8 correct is 12.5%, which rounds up to 13."""
        questions = build_questions(8)
        answers = answer_first_n_correctly(questions, 1)

        result = score_answers(questions, answers, pass_percentage=50)

        assert result["percentage"] == 13

    def test_unanswered_questions_are_incorrect(self):
        questions = build_questions(2)
        answers = {questions[0].id: [0]}

        result = score_answers(questions, answers, pass_percentage=50)

        assert [r["is_correct"] for r in result["question_results"]] == [True, False]
        assert result["question_results"][1]["selected"] == []
        assert result["percentage"] == 50

    def test_out_of_range_index_is_incorrect(self):
        questions = build_questions(1)

        result = score_answers(questions, {questions[0].id: [9]}, pass_percentage=0)

        assert result["question_results"][0]["is_correct"] is False
        assert result["percentage"] == 0

    def test_malformed_selection_is_incorrect_not_fatal(self):
        questions = build_questions(2)
        answers = {questions[0].id: "A", questions[1].id: [0]}

        result = score_answers(questions, answers, pass_percentage=50)

        assert result["question_results"][0]["is_correct"] is False
        assert result["question_results"][0]["selected"] == []
        assert result["correct_answers"] == 1

    def test_answers_for_unknown_questions_are_ignored(self):
        questions = build_questions(1)

        result = score_answers(questions, {"not-a-question": [0]}, pass_percentage=0)

        assert result["correct_answers"] == 0
        assert result["total_questions"] == 1

    def test_multiple_choice_requires_exact_set(self):
        question = build_question(correct=(0, 2))

        partial = score_answers([question], {question.id: [0]}, pass_percentage=0)
        extra = score_answers([question], {question.id: [0, 1, 2]}, pass_percentage=0)
        exact = score_answers([question], {question.id: [2, 0]}, pass_percentage=0)

        assert partial["question_results"][0]["is_correct"] is False
        assert extra["question_results"][0]["is_correct"] is False
        assert exact["question_results"][0]["is_correct"] is True

    def test_single_index_answer_is_accepted(self):
        question = build_question(correct=(1,))

        result = score_answers([question], {question.id: 1}, pass_percentage=100)

        assert result["passed"] is True

    def test_indices_follow_option_order_column(self):
        question = build_question(correct=(0,))
        # Reverse the display order: the correct option now sits last
        for option, order in zip(question.options, [4, 3, 2, 1]):
            option.order = order

        result = score_answers([question], {question.id: [3]}, pass_percentage=100)

        assert result["question_results"][0]["correct"] == [3]
        assert result["passed"] is True

    def test_points_weight_the_score(self):
        heavy = build_question(correct=(0,), points=3, order=0)
        light = build_question(correct=(0,), points=1, order=1)
        answers = {heavy.id: [0], light.id: [1]}

        result = score_answers([heavy, light], answers, pass_percentage=75)

        assert result["score"] == 3
        assert result["total_points"] == 4
        assert result["percentage"] == 75
        assert result["question_results"][0]["earned_points"] == 3
        assert result["question_results"][1]["earned_points"] == 0

    def test_missing_points_count_as_one(self):
        questions = build_questions(2)
        for question in questions:
            question.points = None
        answers = answer_first_n_correctly(questions, 1)

        result = score_answers(questions, answers, pass_percentage=50)

        assert result["total_points"] == 2
        assert result["percentage"] == 50

    def test_scoring_is_deterministic(self):
        questions = build_questions(7)
        answers = answer_first_n_correctly(questions, 4)

        first = score_answers(questions, answers, pass_percentage=60)
        second = score_answers(questions, answers, pass_percentage=60)

        assert first == second


class TestElapsedSeconds:
    """Tests for elapsed_seconds."""

    def test_floors_partial_seconds(self):
        start = datetime(2024, 6, 15, 11, 0, 0)
        now = datetime(2024, 6, 15, 11, 10, 30, 900000, tzinfo=timezone.utc)

        assert elapsed_seconds(start, now) == 630

    def test_never_negative(self):
        now = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)

        assert elapsed_seconds(now + timedelta(minutes=5), now) == 0

    def test_missing_start_is_zero(self):
        assert elapsed_seconds(None, datetime.now(timezone.utc)) == 0


class TestCompleteAttempt:
    """Tests for complete_attempt against a real session."""

    def test_finalizes_attempt(self, db_session, now):
        domain = build_domain()
        questions = build_questions(4)
        test = build_test(domain, questions=questions, pass_percentage=75)
        attempt = build_attempt(
            test,
            status="IN_PROGRESS",
            started_at=(now - timedelta(minutes=20)).replace(tzinfo=None),
            answers={q.id: [0] for q in questions[:3]},
        )
        db_session.add(domain)
        db_session.commit()

        evaluation = complete_attempt(attempt, db_session, now)
        db_session.commit()
        db_session.refresh(attempt)

        assert evaluation["percentage"] == 75
        assert evaluation["passed"] is True
        assert evaluation["time_spent"] == 1200
        assert evaluation["attempt_id"] == attempt.id
        assert attempt.status == "COMPLETED"
        assert attempt.percentage == 75
        assert attempt.score == 3.0
        assert attempt.time_spent == 1200
        assert attempt.completed_at == now.replace(tzinfo=None)

    def test_uses_domain_default_pass_percentage(self, db_session, now):
        domain = build_domain(config={"default_pass_percentage": 80})
        questions = build_questions(4)
        test = build_test(domain, questions=questions, pass_percentage=None)
        attempt = build_attempt(
            test,
            status="IN_PROGRESS",
            started_at=now.replace(tzinfo=None),
            answers={q.id: [0] for q in questions[:3]},
        )
        db_session.add(domain)
        db_session.commit()

        evaluation = complete_attempt(attempt, db_session, now)

        assert evaluation["pass_percentage"] == 80
        assert evaluation["percentage"] == 75
        assert evaluation["passed"] is False

    def test_stored_answers_are_json(self, db_session, now):
        domain = build_domain()
        questions = build_questions(1)
        test = build_test(domain, questions=questions)
        attempt = build_attempt(test, status="IN_PROGRESS",
                                started_at=now.replace(tzinfo=None))
        attempt.answers = json.dumps({questions[0].id: [0]})
        db_session.add(domain)
        db_session.commit()

        evaluation = complete_attempt(attempt, db_session, now)

        assert evaluation["percentage"] == 100

    def test_row_completed_by_another_request_is_left_alone(self, db_session, now):
        domain = build_domain()
        questions = build_questions(2)
        test = build_test(domain, questions=questions)
        attempt = build_attempt(
            test,
            status="IN_PROGRESS",
            started_at=(now - timedelta(minutes=5)).replace(tzinfo=None),
            answers={q.id: [0] for q in questions},
        )
        db_session.add(domain)
        db_session.commit()
        assert attempt.status == "IN_PROGRESS"
        first_finish = (now - timedelta(minutes=1)).replace(tzinfo=None)
        # The row is finalized behind this session's back; `attempt` still reads IN_PROGRESS
        db_session.query(TestAttempt).filter(TestAttempt.id == attempt.id).update(
            {"status": "COMPLETED", "completed_at": first_finish, "time_spent": 240,
             "percentage": 50},
            synchronize_session=False,
        )

        with pytest.raises(AttemptAlreadyCompleted):
            complete_attempt(attempt, db_session, now)

        stored = db_session.query(
            TestAttempt.completed_at, TestAttempt.time_spent, TestAttempt.percentage
        ).filter(TestAttempt.id == attempt.id).one()
        assert stored.completed_at == first_finish
        assert stored.time_spent == 240
        assert stored.percentage == 50


@pytest.mark.parametrize("pass_percentage,expected", [(0, True), (50, True), (51, False)])
def test_pass_boundary(pass_percentage, expected):
    questions = build_questions(2)
    answers = answer_first_n_correctly(questions, 1)

    assert score_answers(questions, answers, pass_percentage)["passed"] is expected
