"""Sync trigger and Google OAuth endpoints"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse
from google.auth.exceptions import GoogleAuthError

from app.dependencies import get_calendar_client, get_sync_service
from app.services.calendar_client import GoogleCalendarClient
from app.services.sync_service import SyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])
auth_router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/issues")
def sync_issues(sync_service: SyncService = Depends(get_sync_service)):
    """Manually trigger an issue sync"""
    return sync_service.sync_issues()


@router.post("/projects")
def sync_projects(sync_service: SyncService = Depends(get_sync_service)):
    """Manually trigger a sync of the selected projects"""
    return sync_service.sync_projects()


@router.post("/full")
def full_sync(sync_service: SyncService = Depends(get_sync_service)):
    """Manually trigger issue sync followed by project sync"""
    return sync_service.full_sync()


@router.get("/status")
def sync_status(sync_service: SyncService = Depends(get_sync_service)):
    """Current guard state and the last completed run"""
    return sync_service.get_status()


@auth_router.get("/google")
def google_auth(calendar: GoogleCalendarClient = Depends(get_calendar_client)):
    """Start the Google OAuth flow"""
    return RedirectResponse(calendar.get_auth_url())


@auth_router.get("/google/callback")
def google_auth_callback(
    code: str, calendar: GoogleCalendarClient = Depends(get_calendar_client)
):
    """Finish the Google OAuth flow"""
    try:
        calendar.handle_oauth_callback(code)
    except (GoogleAuthError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Authorization failed: {e}")
    return {"status": "authorized", "message": "Google Calendar connected"}
