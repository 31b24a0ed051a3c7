"""Project selection model"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String

from app.models.base import Base


def utcnow() -> datetime:
    """UTC 'now' as tz-naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ProjectSelection(Base):
    """Projects (and optionally tasks) a user chose to mirror into the calendar"""

    __tablename__ = "project_selections"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False, index=True)

    # Ordered list of ProjectV2 node ids
    project_ids = Column(JSON, nullable=False, default=list)
    # {project_id: [item_id, ...]}; a missing project means "all tasks".
    # Stored only; project sync does not consult it.
    selected_tasks = Column(JSON, nullable=True)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<ProjectSelection(username='{self.username}', projects={len(self.project_ids or [])})>"
