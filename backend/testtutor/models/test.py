"""
Test model - a practice test belonging to a domain.

Tests move through an admin review workflow:
DRAFT -> PENDING_REVIEW -> PUBLISHED | REJECTED, and PUBLISHED -> ARCHIVED.
This service never changes the status; it only filters and counts by it.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Integer, Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship
from testtutor.config import DEFAULT_PASS_PERCENTAGE
from testtutor.database import Base

TEST_STATUSES = ("DRAFT", "PENDING_REVIEW", "PUBLISHED", "REJECTED", "ARCHIVED")


class Test(Base):
    """
    SQLAlchemy model for the tests table.

    pass_percentage and time_limit are optional; when unset the domain's
    configured defaults apply.
    """
    __tablename__ = "tests"
    __test__ = False

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique test identifier")
    title = Column(Text, nullable=False,
                   doc="Test title")
    description = Column(Text, nullable=True)
    domain_id = Column(String(36), ForeignKey("domains.id"), nullable=False,
                       doc="Reference to the owning domain")
    creator_id = Column(String(36), ForeignKey("users.id"), nullable=True,
                        doc="Reference to the user who authored the test")
    status = Column(Text, nullable=False, default="DRAFT",
                    doc="Lifecycle: DRAFT | PENDING_REVIEW | PUBLISHED | REJECTED | ARCHIVED")
    pass_percentage = Column(Integer, nullable=True,
                             doc="Minimum percentage to pass (0-100)")
    time_limit = Column(Integer, nullable=True,
                        doc="Time limit in minutes")
    is_public = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    published_at = Column(DateTime, nullable=True)

    domain = relationship("Domain", back_populates="tests")
    creator = relationship("User", back_populates="created_tests")
    questions = relationship("Question", back_populates="test",
                             order_by="Question.order")
    attempts = relationship("TestAttempt", back_populates="test")

    __table_args__ = (
        Index("ix_tests_domain_id", "domain_id"),
        Index("ix_tests_status", "status"),
    )

    @property
    def effective_pass_percentage(self) -> int:
        """Pass threshold: test setting, then domain default, then global default."""
        if self.pass_percentage is not None:
            return self.pass_percentage
        if self.domain is not None:
            configured = self.domain.config_dict.get("default_pass_percentage")
            if isinstance(configured, (int, float)):
                return int(configured)
        return DEFAULT_PASS_PERCENTAGE

    @property
    def effective_time_limit(self):
        """Time limit in minutes, falling back to the domain default (or None)."""
        if self.time_limit is not None:
            return self.time_limit
        if self.domain is not None:
            configured = self.domain.config_dict.get("default_time_limit")
            if isinstance(configured, (int, float)):
                return int(configured)
        return None

    def __repr__(self):
        return f"<Test(id={self.id}, title='{self.title}', status='{self.status}')>"
