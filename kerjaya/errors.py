"""
Error taxonomy for the login and session subsystem.

Every failure that crosses the AuthService boundary is one of these.
Telethon exceptions are translated before they reach callers.
"""

from typing import Optional


class AuthError(Exception):
    """Base class for all user-facing auth failures."""

    status_code: int = 400
    default_message: str = "Authentication failed."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class InvalidInput(AuthError):
    """Missing or malformed phone number or code."""
    status_code = 400
    default_message = "Phone number is required."


class NotFound(AuthError):
    """No pending login challenge for the phone number."""
    status_code = 400
    default_message = "Login session not found."


class InvalidCredential(AuthError):
    """Wrong or expired one-time code."""
    status_code = 400
    default_message = "The code is incorrect or has expired."


class Unauthorized(AuthError):
    """Unknown or absent app token."""
    status_code = 401
    default_message = "Unauthorized"


class SessionExpired(AuthError):
    """App token is known locally but Telegram rejects its credential."""
    status_code = 401
    default_message = "Session has ended. Please log in again."


class RateLimited(AuthError):
    """Telegram refused the request because of flood limits."""
    status_code = 429
    default_message = "Too many attempts. Please wait before trying again."

    def __init__(self, message: Optional[str] = None, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        return result


class ProviderUnavailable(AuthError):
    """Telegram could not be reached or failed unexpectedly."""
    status_code = 500
    default_message = "Telegram is unavailable. Please try again later."


class SessionStoreCorruptError(Exception):
    """The persisted session file could not be parsed."""
