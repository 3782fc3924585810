"""
Domain model - a subject area grouping tests ("Life in the UK",
"Driving Theory").

The config column holds per-domain defaults as JSON:
{"default_time_limit": 45, "default_pass_percentage": 75}
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, Boolean, DateTime, String
from sqlalchemy.orm import relationship
from testtutor.database import Base
from testtutor.helpers import parse_json


class Domain(Base):
    """SQLAlchemy model for the domains table."""
    __tablename__ = "domains"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique domain identifier")
    name = Column(Text, nullable=False, unique=True,
                  doc="URL slug, e.g. 'life-in-uk'")
    display_name = Column(Text, nullable=False,
                          doc="Human readable name shown on dashboards")
    description = Column(Text, nullable=True)
    config = Column(Text, nullable=False, default="{}",
                    doc="Domain defaults as JSON string")
    is_active = Column(Boolean, nullable=False, default=True,
                       doc="Inactive domains are hidden from the catalog")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    tests = relationship("Test", back_populates="domain")

    @property
    def config_dict(self):
        """Parse the config JSON string into a dict."""
        parsed = parse_json(self.config)
        return parsed if isinstance(parsed, dict) else {}

    def __repr__(self):
        return f"<Domain(id={self.id}, name='{self.name}')>"
