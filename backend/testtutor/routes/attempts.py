"""
Attempts API routes - the life of a test attempt.

Provides endpoints for:
- Starting an attempt on a published test (registered user or guest)
- Saving answers while the attempt is in progress
- Submitting the attempt for scoring (exactly once)
- Viewing an attempt
"""

import json
import time
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Union
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, selectinload

from testtutor.database import get_db
from testtutor.helpers import get_now, isoformat, to_naive_utc
from testtutor.logging_config import get_logger, log_with_context
from testtutor.models.attempt import TestAttempt
from testtutor.models.question import Question
from testtutor.models.test import Test
from testtutor.models.user import User
from testtutor.services.scoring import AttemptAlreadyCompleted, complete_attempt

router = APIRouter()
logger = get_logger("http")
db_logger = get_logger("db")

AnswerMap = Dict[str, Union[List[int], int]]


# ── Pydantic schemas ─────────────────────────────────────────

class StartAttemptRequest(BaseModel):
    """Schema for starting an attempt. Omit user_id for a guest attempt."""
    user_id: Optional[str] = Field(None, description="Registered learner id")


class SaveAnswersRequest(BaseModel):
    """Schema for saving in-progress answers."""
    answers: AnswerMap = Field(..., description="question_id -> option index or indices")


class CompleteAttemptRequest(BaseModel):
    """Schema for submitting an attempt; answers replace the saved ones."""
    answers: Optional[AnswerMap] = None


def generate_session_id(now: datetime) -> str:
    """Build a guest session id: guest_<epoch ms>_<random suffix>."""
    return "guest_{}_{}".format(int(now.timestamp() * 1000), uuid.uuid4().hex[:9])


def serialize_attempt(attempt: TestAttempt) -> dict:
    """Serialize a TestAttempt ORM object to a dict for API response."""
    return {
        "id": str(attempt.id),
        "test_id": str(attempt.test_id),
        "user_id": str(attempt.user_id) if attempt.user_id else None,
        "session_id": attempt.session_id,
        "status": attempt.status,
        "answers": attempt.answers_dict,
        "started_at": isoformat(attempt.started_at),
        "completed_at": isoformat(attempt.completed_at),
        "score": float(attempt.score) if attempt.score is not None else None,
        "percentage": attempt.percentage,
        "time_spent": attempt.time_spent,
    }


def _database_failure(db: Session, error: SQLAlchemyError, context: dict) -> HTTPException:
    """Roll back, log on the db channel and build the 500 response."""
    db.rollback()
    log_with_context(db_logger, "ERROR", "Database write failed: {}".format(str(error)),
                     context=context)
    return HTTPException(status_code=500, detail="Database commit failed")


def _commit(db: Session, context: dict):
    """Commit the session, turning database failures into a 500."""
    try:
        db.commit()
    except SQLAlchemyError as e:
        raise _database_failure(db, e, context)


def _get_attempt(db: Session, attempt_id: str) -> TestAttempt:
    attempt = db.query(TestAttempt).filter(TestAttempt.id == attempt_id).first()
    if not attempt:
        raise HTTPException(status_code=404, detail="Attempt not found")
    return attempt


@router.post("/api/tests/{test_id}/attempts", status_code=201)
def start_attempt(test_id: str, request: Optional[StartAttemptRequest] = None,
                  db: Session = Depends(get_db), now: datetime = Depends(get_now)):
    """Start a new IN_PROGRESS attempt on a published test."""
    test = db.query(Test).filter(Test.id == test_id).first()
    if not test:
        raise HTTPException(status_code=404, detail="Test not found")

    if test.status != "PUBLISHED":
        raise HTTPException(status_code=400, detail="Test is not published")

    user_id = request.user_id if request else None
    session_id = None
    if user_id:
        if not db.query(User).filter(User.id == user_id).first():
            raise HTTPException(status_code=404, detail="User not found")
    else:
        session_id = generate_session_id(now)

    attempt = TestAttempt(
        id=str(uuid.uuid4()),
        test_id=test.id,
        user_id=user_id,
        session_id=session_id,
        answers="{}",
        status="IN_PROGRESS",
        started_at=to_naive_utc(now),
    )
    db.add(attempt)
    _commit(db, {"test_id": test_id, "user_id": user_id})
    db.refresh(attempt)

    log_with_context(logger, "INFO",
        "Attempt started on test {}".format(test_id),
        context={"attempt_id": str(attempt.id), "test_id": test_id, "user_id": user_id},
        extra_data={"guest": user_id is None})

    return serialize_attempt(attempt)


@router.get("/api/attempts/{attempt_id}")
def get_attempt(attempt_id: str, db: Session = Depends(get_db)):
    """Get a single attempt."""
    return serialize_attempt(_get_attempt(db, attempt_id))


@router.put("/api/attempts/{attempt_id}")
def save_answers(attempt_id: str, request: SaveAnswersRequest, db: Session = Depends(get_db)):
    """Replace the saved answers of an in-progress attempt."""
    attempt = _get_attempt(db, attempt_id)

    if attempt.is_completed:
        raise HTTPException(status_code=409, detail="Attempt is already completed")

    attempt.answers = json.dumps(request.answers)
    _commit(db, {"attempt_id": attempt_id})
    db.refresh(attempt)

    log_with_context(logger, "DEBUG",
        "Saved {} answers".format(len(request.answers)),
        context={"attempt_id": attempt_id})

    return serialize_attempt(attempt)


@router.post("/api/attempts/{attempt_id}/complete")
def submit_attempt(attempt_id: str, request: Optional[CompleteAttemptRequest] = None,
                   db: Session = Depends(get_db), now: datetime = Depends(get_now)):
    """Score and finalize an attempt. An attempt can only be completed once."""
    start_time = time.time()

    attempt = db.query(TestAttempt).options(
        joinedload(TestAttempt.test).joinedload(Test.domain),
        joinedload(TestAttempt.test).selectinload(Test.questions).selectinload(Question.options)
    ).filter(TestAttempt.id == attempt_id).first()

    if not attempt:
        raise HTTPException(status_code=404, detail="Attempt not found")

    if attempt.is_completed:
        raise HTTPException(status_code=409, detail="Attempt is already completed")

    if request is not None and request.answers is not None:
        attempt.answers = json.dumps(request.answers)

    try:
        evaluation = complete_attempt(attempt, db, now)
    except AttemptAlreadyCompleted:
        db.rollback()
        raise HTTPException(status_code=409, detail="Attempt is already completed")
    except SQLAlchemyError as e:
        raise _database_failure(db, e, {"attempt_id": attempt_id})
    _commit(db, {"attempt_id": attempt_id})

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Attempt {} completed: {}%".format(attempt_id, evaluation["percentage"]),
        context={"attempt_id": attempt_id},
        extra_data={"duration_ms": round(duration_ms, 2)})

    return evaluation
