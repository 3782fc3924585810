"""
Analytics API routes - admin dashboard and per-test / per-user analytics.
"""

import time
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, joinedload, selectinload

from testtutor.database import get_db
from testtutor.helpers import get_now
from testtutor.logging_config import get_logger, log_with_context
from testtutor.models.attempt import TestAttempt
from testtutor.models.domain import Domain
from testtutor.models.question import Question
from testtutor.models.test import Test
from testtutor.models.user import User
from testtutor.services.analytics import build_dashboard, summarize_test, summarize_user

router = APIRouter()
logger = get_logger("http")


@router.get("/api/analytics")
def get_dashboard(db: Session = Depends(get_db), now: datetime = Depends(get_now)):
    """Catalog-wide totals, breakdowns, top tests and domain rollups."""
    start_time = time.time()

    tests = db.query(Test).options(
        joinedload(Test.domain),
        selectinload(Test.questions),
        selectinload(Test.attempts)
    ).all()
    questions = db.query(Question).all()
    attempts = db.query(TestAttempt).all()
    domains = db.query(Domain).options(
        selectinload(Domain.tests).selectinload(Test.questions),
        selectinload(Domain.tests).selectinload(Test.attempts)
    ).all()
    total_users = db.query(User).count()

    dashboard = build_dashboard(tests, questions, attempts, domains, total_users, now)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO", "Dashboard analytics served",
                     extra_data={"duration_ms": round(duration_ms, 2)})

    return {"data": dashboard}


@router.get("/api/analytics/tests/{test_id}")
def get_test_analytics(test_id: str, db: Session = Depends(get_db)):
    """Attempt, score and pass-rate analytics for one test."""
    test = db.query(Test).options(
        joinedload(Test.domain),
        selectinload(Test.questions),
        selectinload(Test.attempts)
    ).filter(Test.id == test_id).first()

    if not test:
        raise HTTPException(status_code=404, detail="Test not found")

    return summarize_test(test)


@router.get("/api/analytics/users/{user_id}")
def get_user_analytics(user_id: str, db: Session = Depends(get_db)):
    """Attempt totals and recent attempts for one user."""
    user = db.query(User).options(
        selectinload(User.attempts),
        selectinload(User.created_tests)
    ).filter(User.id == user_id).first()

    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    return summarize_user(user)
