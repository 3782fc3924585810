"""
User statistics API route - a learner's progress dashboard.

Returns the learner's completed-attempt summary: averages, time spent,
improvement, recent activity, per-domain performance, monthly progress
and streaks.
"""

import time
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, joinedload

from testtutor.database import get_db
from testtutor.helpers import get_now
from testtutor.logging_config import get_logger, log_with_context
from testtutor.models.attempt import TestAttempt
from testtutor.models.test import Test
from testtutor.models.user import User
from testtutor.services.user_stats import build_user_stats

router = APIRouter()
logger = get_logger("http")


@router.get("/api/users/{user_id}/stats")
def get_user_stats(user_id: str, db: Session = Depends(get_db),
                   now: datetime = Depends(get_now)):
    """Statistics over every completed attempt of a user."""
    start_time = time.time()

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    attempts = db.query(TestAttempt).options(
        joinedload(TestAttempt.test).joinedload(Test.domain)
    ).filter(
        TestAttempt.user_id == user_id,
        TestAttempt.status == "COMPLETED"
    ).order_by(TestAttempt.completed_at.desc().nullslast()).all()

    stats = build_user_stats(attempts, now)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "User stats generated over {} attempts".format(len(attempts)),
        context={"user_id": user_id},
        extra_data={"duration_ms": round(duration_ms, 2)})

    return {"user_id": user_id, "stats": stats}
