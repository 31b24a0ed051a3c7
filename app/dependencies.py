"""Process-wide service instances.

The sync service must be shared by every trigger (timer, API, webhooks) so
that its single-flight guard covers all of them.
"""

from functools import lru_cache
from typing import List

from app.config import settings
from app.models.base import SessionLocal
from app.services.calendar_client import GoogleCalendarClient
from app.services.event_mapper import EventMapper
from app.services.github_client import GitHubClient
from app.services.selection_service import ProjectSelectionService
from app.services.sync_service import SyncService
from app.services.webhook_service import WebhookService


@lru_cache(maxsize=1)
def get_github_client() -> GitHubClient:
    return GitHubClient(
        settings.github_token,
        api_url=settings.github_api_url,
        timeout=settings.github_request_timeout_seconds,
    )


@lru_cache(maxsize=1)
def get_calendar_client() -> GoogleCalendarClient:
    return GoogleCalendarClient(
        settings.google_client_id,
        settings.google_client_secret,
        settings.google_redirect_uri,
        calendar_id=settings.google_calendar_id,
        token_file=settings.google_token_file,
    )


def read_selected_project_ids() -> List[str]:
    db = SessionLocal()
    try:
        return ProjectSelectionService(db).get_all_selected_project_ids()
    finally:
        db.close()


@lru_cache(maxsize=1)
def get_sync_service() -> SyncService:
    return SyncService(
        get_github_client(),
        get_calendar_client(),
        mapper=EventMapper(reminder_minutes=settings.event_reminder_minutes),
        selection_reader=read_selected_project_ids,
        organizations=settings.organizations,
        repositories=settings.repositories,
        label_allowlist=settings.label_allowlist,
        assignee_allowlist=settings.assignee_allowlist,
    )


@lru_cache(maxsize=1)
def get_webhook_service() -> WebhookService:
    return WebhookService(settings.github_webhook_secret, settings.github_webhook_algorithm)
