"""Custom exception types for the Graph tutorial wrapper.

Error messages follow the same shape everywhere:
- What failed (operation or component)
- Why it failed (the specific condition)
- How to fix it (actionable guidance)
"""


class TutorialError(Exception):
    """Base exception for all graphtutorial errors."""

    pass


class ConfigLoadError(TutorialError):
    """Raised when config.yaml cannot be loaded (file not found, YAML parse error)."""

    pass


class ConfigValidationError(TutorialError):
    """Raised when settings are missing or fail Pydantic validation."""

    pass


class AuthenticationError(TutorialError):
    """Raised when MSAL cannot acquire a token (device code or client credentials)."""

    pass


class GraphNotInitializedError(TutorialError):
    """Raised when a user operation runs before initialize_for_user_auth()."""

    def __init__(self, message: str = "Graph has not been initialized for user auth"):
        super().__init__(message)


class GraphAPIError(TutorialError):
    """Raised when Microsoft Graph API returns an error.

    Attributes:
        status_code: HTTP status code from the API
        error_code: Error code from Graph API response (if available)
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code


class RateLimitExceeded(GraphAPIError):
    """Raised when Graph keeps answering 429 after all retries."""

    def __init__(self, message: str, retry_after: str | None = None):
        super().__init__(message, status_code=429, error_code="TooManyRequests")
        self.retry_after = retry_after
