"""Services"""

from app.services.calendar_client import GoogleCalendarClient
from app.services.github_client import GitHubClient
from app.services.sync_service import SyncService
from app.services.webhook_service import WebhookService

__all__ = ["GitHubClient", "GoogleCalendarClient", "SyncService", "WebhookService"]
