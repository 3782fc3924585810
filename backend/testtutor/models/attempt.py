"""
TestAttempt model - one learner's pass through a test.

Created IN_PROGRESS when the learner starts, answers are saved as they go,
and the attempt is finalized exactly once on submission: status becomes
COMPLETED and score, percentage and time_spent are filled in.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Integer, Float, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship
from testtutor.database import Base
from testtutor.helpers import parse_json

ATTEMPT_STATUSES = ("IN_PROGRESS", "COMPLETED")


class TestAttempt(Base):
    """
    SQLAlchemy model for the test_attempts table.

    Guest attempts have no user_id and are identified by session_id instead.
    """
    __tablename__ = "test_attempts"
    __test__ = False

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique attempt identifier")
    test_id = Column(String(36), ForeignKey("tests.id"), nullable=False,
                     doc="Reference to the attempted test")
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True,
                     doc="Reference to the learner (NULL for guests)")
    session_id = Column(Text, nullable=True,
                        doc="Guest session identifier")
    answers = Column(Text, nullable=False, default="{}",
                     doc="Answers as JSON: {question_id: [option_index, ...]}")
    status = Column(Text, nullable=False, default="IN_PROGRESS",
                    doc="IN_PROGRESS | COMPLETED")
    started_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime, nullable=True)
    score = Column(Float, nullable=True,
                   doc="Points earned, set on completion")
    percentage = Column(Integer, nullable=True,
                        doc="Rounded percentage (0-100), set on completion")
    time_spent = Column(Integer, nullable=True,
                        doc="Seconds between start and completion")

    test = relationship("Test", back_populates="attempts")
    user = relationship("User", back_populates="attempts")

    __table_args__ = (
        Index("ix_test_attempts_test_id", "test_id"),
        Index("ix_test_attempts_user_id", "user_id"),
        Index("ix_test_attempts_status", "status"),
        Index("ix_test_attempts_started_at", "started_at"),
    )

    @property
    def answers_dict(self):
        """Parse answers JSON string to dict."""
        parsed = parse_json(self.answers)
        return parsed if isinstance(parsed, dict) else {}

    @property
    def is_completed(self) -> bool:
        return self.status == "COMPLETED"

    def __repr__(self):
        return f"<TestAttempt(id={self.id}, test={self.test_id}, status='{self.status}')>"
