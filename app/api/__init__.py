"""API routes"""

from app.api import projects, sync, webhooks

__all__ = ["sync", "projects", "webhooks"]
