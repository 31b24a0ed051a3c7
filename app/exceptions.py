"""Exception types shared across services"""


class ConfigurationError(RuntimeError):
    """A required credential or secret is missing or invalid.

    Raised from component constructors; the component refuses to initialize.
    """


class GitHubAPIError(RuntimeError):
    """The GitHub GraphQL API returned an HTTP error or an `errors` payload."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class CalendarNotAuthenticatedError(RuntimeError):
    """A calendar operation was attempted before OAuth authorization."""
