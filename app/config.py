"""Application configuration"""

from typing import List

from pydantic_settings import BaseSettings


def _split_csv(value: str | None) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings(BaseSettings):
    """Application settings"""

    # Database (project selections)
    database_url: str = "sqlite:///./calendar_sync.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # GitHub source
    github_token: str | None = None
    github_api_url: str = "https://api.github.com/graphql"
    github_request_timeout_seconds: float = 30.0
    # Comma-separated lists. Repositories are "owner/name".
    github_organizations: str | None = None
    github_repositories: str | None = None
    # Inclusion filters; empty means "no restriction" on that axis.
    github_labels: str | None = None
    github_assignees: str | None = None

    # Webhooks
    # When empty, signature verification is bypassed (development only).
    github_webhook_secret: str | None = None
    github_webhook_algorithm: str = "sha256"

    # Google Calendar
    google_client_id: str | None = None
    google_client_secret: str | None = None
    google_redirect_uri: str | None = None
    google_calendar_id: str = "primary"
    google_token_file: str = "tokens/google-tokens.json"

    # Sync
    sync_cron_schedule: str = "0 */6 * * *"
    # Which sync the periodic timer runs: "issues", "projects" or "full".
    sync_scheduled_mode: str = "full"
    sync_scheduler_enabled: bool = True
    event_reminder_minutes: int = 30

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def organizations(self) -> List[str]:
        return _split_csv(self.github_organizations)

    @property
    def repositories(self) -> List[str]:
        return _split_csv(self.github_repositories)

    @property
    def label_allowlist(self) -> List[str]:
        return _split_csv(self.github_labels)

    @property
    def assignee_allowlist(self) -> List[str]:
        return _split_csv(self.github_assignees)


settings = Settings()
