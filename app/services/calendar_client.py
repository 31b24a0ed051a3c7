"""Google Calendar API client wrapper"""
import logging
import os
from typing import Any, Dict, List, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from app.exceptions import CalendarNotAuthenticatedError, ConfigurationError
from app.services.event_mapper import CalendarEventDraft
from app.services.retry import TRANSIENT_STATUS_CODES, with_retries

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]

# Private extended property holding the idempotency key of the source item.
IDEMPOTENCY_PROPERTY = "githubIssueId"


def draft_to_event_body(draft: CalendarEventDraft) -> Dict[str, Any]:
    """Google Calendar `events` resource body for a draft"""
    body: Dict[str, Any] = {
        "summary": draft.summary,
        "description": draft.description,
        "start": draft.start.to_google(),
        "end": draft.end.to_google(),
        "extendedProperties": {
            "private": {
                IDEMPOTENCY_PROPERTY: draft.idempotency_key,
                "githubUrl": draft.source_url,
                "githubRepo": draft.source_label,
            }
        },
    }
    if draft.color_id:
        body["colorId"] = draft.color_id
    if draft.reminders:
        body["reminders"] = {
            "useDefault": False,
            "overrides": [{"method": r.method, "minutes": r.minutes} for r in draft.reminders],
        }
    return body


class GoogleCalendarClient:
    """OAuth-authorized access to one Google calendar"""

    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        redirect_uri: Optional[str],
        *,
        calendar_id: str = "primary",
        token_file: str = "tokens/google-tokens.json",
        credentials: Optional[Credentials] = None,
        service: Any = None,
    ):
        if not client_id or not client_secret or not redirect_uri:
            raise ConfigurationError(
                "GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, and GOOGLE_REDIRECT_URI are required"
            )
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.calendar_id = calendar_id
        self.token_file = token_file
        self.credentials = credentials
        self._service = service
        if self.credentials is None:
            self._load_credentials()

    # OAuth

    def _load_credentials(self):
        """Load saved credentials, if any"""
        if not os.path.exists(self.token_file):
            logger.warning(
                "No saved Google tokens found. Visit /auth/google to authorize the app."
            )
            return
        try:
            self.credentials = Credentials.from_authorized_user_file(self.token_file, SCOPES)
            logger.info("Google OAuth tokens loaded successfully")
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load Google tokens from {self.token_file}: {e}")

    def _save_credentials(self):
        directory = os.path.dirname(self.token_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.token_file, "w", encoding="utf-8") as fh:
            fh.write(self.credentials.to_json())
        logger.info("Google OAuth tokens saved successfully")

    def _flow(self) -> Flow:
        client_config = {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
                "redirect_uris": [self.redirect_uri],
            }
        }
        # Callback runs on a fresh Flow, so no PKCE verifier can be carried over.
        return Flow.from_client_config(
            client_config,
            scopes=SCOPES,
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def get_auth_url(self) -> str:
        """Authorization URL for the OAuth consent screen"""
        url, _state = self._flow().authorization_url(access_type="offline", prompt="consent")
        return url

    def handle_oauth_callback(self, code: str) -> None:
        """Exchange an authorization code for tokens and persist them"""
        flow = self._flow()
        try:
            flow.fetch_token(code=code)
        except (GoogleAuthError, ValueError) as e:
            logger.error(f"OAuth callback error: {e}")
            raise
        self.credentials = flow.credentials
        self._service = None
        self._save_credentials()
        logger.info("OAuth authorization successful")

    def is_authenticated(self) -> bool:
        creds = self.credentials
        return bool(creds is not None and (creds.token or creds.refresh_token))

    # API access

    def _get_service(self):
        if not self.is_authenticated():
            raise CalendarNotAuthenticatedError(
                "Not authenticated with Google Calendar. Please authorize the app first."
            )
        if self._service is None:
            self._service = build(
                "calendar", "v3", credentials=self.credentials, cache_discovery=False
            )
        return self._service

    @staticmethod
    def _should_retry(exc: Exception) -> bool:
        """Best-effort retry predicate for transient Calendar API failures."""
        if not isinstance(exc, HttpError):
            return False
        return getattr(exc.resp, "status", None) in TRANSIENT_STATUS_CODES

    def _with_retries(self, fn, **kwargs):
        return with_retries(fn, self._should_retry, **kwargs)

    def create_event(self, draft: CalendarEventDraft) -> str:
        """Create a calendar event, returning its remote id"""
        events = self._get_service().events()
        try:
            created = self._with_retries(
                lambda: events.insert(
                    calendarId=self.calendar_id, body=draft_to_event_body(draft)
                ).execute()
            )
        except Exception as e:
            logger.error(f"Failed to create event {draft.summary!r}: {e}")
            raise
        logger.info(f"Created calendar event: {draft.summary} (ID: {created['id']})")
        return created["id"]

    def update_event(self, event_id: str, draft: CalendarEventDraft) -> None:
        """Replace an existing calendar event"""
        events = self._get_service().events()
        try:
            self._with_retries(
                lambda: events.update(
                    calendarId=self.calendar_id,
                    eventId=event_id,
                    body=draft_to_event_body(draft),
                ).execute()
            )
        except Exception as e:
            logger.error(f"Failed to update event ID {event_id}: {e}")
            raise
        logger.info(f"Updated calendar event: {draft.summary} (ID: {event_id})")

    def delete_event(self, event_id: str) -> None:
        """Delete a calendar event"""
        events = self._get_service().events()
        try:
            self._with_retries(
                lambda: events.delete(calendarId=self.calendar_id, eventId=event_id).execute()
            )
        except Exception as e:
            logger.error(f"Failed to delete event ID {event_id}: {e}")
            raise
        logger.info(f"Deleted calendar event ID: {event_id}")

    def find_event_by_key(self, key: str) -> Optional[str]:
        """Remote id of the first event whose idempotency property equals `key`.

        Only the first match is returned; duplicates are not detected.
        """
        events = self._get_service().events()
        response = self._with_retries(
            lambda: events.list(
                calendarId=self.calendar_id,
                privateExtendedProperty=f"{IDEMPOTENCY_PROPERTY}={key}",
                maxResults=1,
            ).execute()
        )
        items = response.get("items") or []
        return items[0]["id"] if items else None

    def list_calendars(self) -> List[Dict[str, Any]]:
        """List calendars visible to the authorized account"""
        calendars = self._get_service().calendarList()
        response = self._with_retries(lambda: calendars.list().execute())
        return response.get("items") or []
