"""Database models"""

from app.models.base import Base
from app.models.project_selection import ProjectSelection

__all__ = [
    "Base",
    "ProjectSelection",
]
