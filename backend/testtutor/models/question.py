"""
Question and Option models.

A learner answers a question by selecting option indices: 0-based
positions in the question's options sorted by their `order` column.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Integer, Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship
from testtutor.database import Base

QUESTION_TYPES = ("SINGLE_CHOICE", "MULTIPLE_CHOICE", "TRUE_FALSE")
DIFFICULTIES = ("EASY", "MEDIUM", "HARD")


class Question(Base):
    """SQLAlchemy model for the questions table."""
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique question identifier")
    test_id = Column(String(36), ForeignKey("tests.id"), nullable=False)
    stem = Column(Text, nullable=False,
                  doc="Question text")
    type = Column(Text, nullable=False, default="SINGLE_CHOICE",
                  doc="SINGLE_CHOICE | MULTIPLE_CHOICE | TRUE_FALSE")
    explanation = Column(Text, nullable=True)
    points = Column(Integer, nullable=False, default=1,
                    doc="Points awarded for a correct answer")
    difficulty = Column(Text, nullable=False, default="MEDIUM",
                        doc="EASY | MEDIUM | HARD")
    order = Column(Integer, nullable=False, default=0,
                   doc="Position of the question within its test")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    test = relationship("Test", back_populates="questions")
    options = relationship("Option", back_populates="question",
                           order_by="Option.order")

    __table_args__ = (
        Index("ix_questions_test_id", "test_id"),
    )

    @property
    def ordered_options(self):
        """Options sorted by their order column; list position is the answer index."""
        return sorted(self.options or [], key=lambda o: o.order or 0)

    @property
    def correct_indices(self) -> frozenset:
        """Indices of the options flagged correct."""
        return frozenset(
            index for index, option in enumerate(self.ordered_options)
            if option.is_correct
        )

    def __repr__(self):
        return f"<Question(id={self.id}, test={self.test_id}, difficulty='{self.difficulty}')>"


class Option(Base):
    """SQLAlchemy model for the options table."""
    __tablename__ = "options"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    question_id = Column(String(36), ForeignKey("questions.id"), nullable=False)
    label = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    feedback = Column(Text, nullable=True,
                      doc="Optional feedback shown after answering")
    order = Column(Integer, nullable=False, default=0)

    question = relationship("Question", back_populates="options")

    def __repr__(self):
        return f"<Option(id={self.id}, correct={self.is_correct})>"
