from typing import List, Optional


class BackendError(Exception):
    """
    The backend answered with a non-2xx status.

    `messages` holds the backend's `message` field normalised to a list, since
    validation failures come back as arrays of strings.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, messages: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.messages = messages or [message]

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code in (401, 403)


class BackendUnavailableError(BackendError):
    """The backend could not be reached (connection error or timeout)."""

    def __init__(self, message: str = "The service is temporarily unavailable. Please try again."):
        super().__init__(message, status_code=None)


class SessionRequiredError(Exception):
    """Raised by page dependencies when the visitor has no usable session."""

    def __init__(self, sign_in_url: str, redirect_to: Optional[str] = None):
        super().__init__(sign_in_url)
        self.sign_in_url = sign_in_url
        self.redirect_to = redirect_to


class MediaStagingError(Exception):
    pass


class InvalidTokenError(Exception):
    pass
