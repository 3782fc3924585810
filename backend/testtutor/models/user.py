"""
User model - registered learners and administrators.

Authentication is handled upstream; this table only carries the identity
and role that attempts and created tests point to.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String
from sqlalchemy.orm import relationship
from testtutor.database import Base

USER_ROLES = ("USER", "ADMIN", "SUPER_ADMIN")


class User(Base):
    """SQLAlchemy model for the users table."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique user identifier")
    email = Column(Text, nullable=False, unique=True,
                   doc="Login email, unique per user")
    name = Column(Text, nullable=True,
                  doc="Display name")
    role = Column(Text, nullable=False, default="USER",
                  doc="Role: USER | ADMIN | SUPER_ADMIN")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        doc="Timestamp when the account was created")

    attempts = relationship("TestAttempt", back_populates="user")
    created_tests = relationship("Test", back_populates="creator")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
