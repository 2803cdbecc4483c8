"""
Telegram login service.

Runs the two-phase code login (begin -> complete), issues app tokens,
resolves profiles and handles logout. Telethon failures are translated
into the errors in kerjaya.errors here and never leak to callers.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from telethon.errors import (
    ApiIdInvalidError,
    FloodError,
    FloodWaitError,
    ForbiddenError,
    PhoneCodeEmptyError,
    PhoneCodeExpiredError,
    PhoneCodeInvalidError,
    PhoneNumberBannedError,
    PhoneNumberFloodError,
    PhoneNumberInvalidError,
    PhoneNumberUnoccupiedError,
    RPCError,
    ServerError,
    SessionPasswordNeededError,
    UnauthorizedError,
)

from ..auth import ChallengeRegistry, SessionStore, mask_token, normalize_code, normalize_phone
from ..errors import (
    AuthError,
    InvalidCredential,
    InvalidInput,
    ProviderUnavailable,
    RateLimited,
    SessionExpired,
)
from ..telegram_provider import Identity, LoginProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PROVIDER_TIMEOUT = 30.0


def _rpc_message(exc: RPCError) -> str:
    return getattr(exc, "message", None) or type(exc).__name__


def _classify_request_error(exc: RPCError) -> AuthError:
    """Map a send-code failure."""
    if isinstance(exc, PhoneNumberInvalidError):
        return InvalidInput("Invalid phone number.")
    if isinstance(exc, PhoneNumberBannedError):
        return InvalidInput("This phone number is banned from Telegram.")
    if isinstance(exc, PhoneNumberUnoccupiedError):
        return InvalidInput("No Telegram account uses this phone number.")
    if isinstance(exc, FloodWaitError):
        return RateLimited(retry_after=exc.seconds)
    if isinstance(exc, (PhoneNumberFloodError, FloodError)):
        return RateLimited()
    if isinstance(exc, ApiIdInvalidError):
        return ProviderUnavailable("Telegram API credentials are invalid.")
    return ProviderUnavailable(f"Telegram rejected the request: {_rpc_message(exc)}")


def _classify_sign_in_error(exc: RPCError) -> AuthError:
    """Map a sign-in failure. Anything unrecognised counts as a bad code."""
    if isinstance(exc, SessionPasswordNeededError):
        return InvalidCredential(
            "Two-step verification is enabled on this account; password login is not supported."
        )
    if isinstance(exc, (PhoneCodeInvalidError, PhoneCodeExpiredError, PhoneCodeEmptyError)):
        return InvalidCredential()
    if isinstance(exc, PhoneNumberUnoccupiedError):
        return InvalidInput("No Telegram account uses this phone number.")
    if isinstance(exc, FloodWaitError):
        return RateLimited(retry_after=exc.seconds)
    if isinstance(exc, FloodError):
        return RateLimited()
    if isinstance(exc, ServerError):
        return ProviderUnavailable()
    return InvalidCredential()


def _classify_session_error(exc: RPCError) -> AuthError:
    """Map a failure while using a stored credential."""
    if isinstance(exc, (UnauthorizedError, ForbiddenError)):
        return SessionExpired()
    if isinstance(exc, FloodWaitError):
        return RateLimited(retry_after=exc.seconds)
    if isinstance(exc, FloodError):
        return RateLimited()
    if isinstance(exc, ServerError):
        return ProviderUnavailable()
    return SessionExpired()


class AuthService:
    """
    Service for Telegram-based login.

    Handles:
    - Sending a login code (begin_login)
    - Verifying the code and issuing an app token (complete_login)
    - Resolving the Telegram profile behind a token
    - Logout
    """

    def __init__(
        self,
        provider: LoginProvider,
        challenges: ChallengeRegistry,
        sessions: SessionStore,
        timeout_seconds: float = DEFAULT_PROVIDER_TIMEOUT,
        revoke_upstream_on_logout: bool = False
    ):
        """
        Initialize auth service.

        Args:
            provider: Telegram provider (or a stand-in with the same methods)
            challenges: Registry of pending code challenges
            sessions: Persistent app token store
            timeout_seconds: Upper bound for every provider call
            revoke_upstream_on_logout: Also log the Telegram session out on logout
        """
        self.provider = provider
        self.challenges = challenges
        self.sessions = sessions
        self.timeout_seconds = timeout_seconds
        self.revoke_upstream_on_logout = revoke_upstream_on_logout

    async def _call_provider(
        self,
        operation: str,
        call: Callable[[], Awaitable[T]],
        classify: Callable[[RPCError], AuthError]
    ) -> T:
        """Run one provider call under the timeout and translate its failures."""
        try:
            return await asyncio.wait_for(call(), timeout=self.timeout_seconds)
        except AuthError:
            raise
        except asyncio.TimeoutError as e:
            logger.warning(f"Telegram {operation} timed out after {self.timeout_seconds}s")
            raise ProviderUnavailable("Telegram did not respond in time. Please try again.") from e
        except RPCError as e:
            error = classify(e)
            logger.warning(f"Telegram {operation} rejected: {type(e).__name__} -> {type(error).__name__}")
            raise error from e
        except OSError as e:
            logger.error(f"Telegram {operation} connection failed: {e}")
            raise ProviderUnavailable() from e
        except Exception as e:
            logger.error(f"Telegram {operation} failed unexpectedly: {e}", exc_info=True)
            raise ProviderUnavailable() from e

    async def begin_login(self, phone: Optional[str]) -> str:
        """
        Send a login code to a phone number.

        Args:
            phone: Phone number of the Telegram account

        Returns:
            The normalized phone number the challenge is keyed by

        Raises:
            InvalidInput, RateLimited, ProviderUnavailable
        """
        if not phone or not str(phone).strip():
            raise InvalidInput("Phone number is required.")

        normalized = normalize_phone(phone)
        if not normalized:
            raise InvalidInput("Invalid phone number.")

        logger.info(f"Requesting Telegram login code for {normalized}...")
        handle = await self._call_provider(
            "send code",
            lambda: self.provider.request_code(normalized),
            _classify_request_error,
        )

        superseded = self.challenges.put(normalized, handle)
        if superseded:
            logger.info(f"Earlier code for {normalized} is no longer valid")

        logger.info(f"Login code sent to {normalized}")
        return normalized

    async def complete_login(self, phone: Optional[str], code: Optional[str]) -> str:
        """
        Verify a login code and issue an app token.

        The pending challenge is consumed whether or not the code is
        correct; a failed attempt must start over with begin_login.

        Args:
            phone: Phone number used in begin_login
            code: Code Telegram delivered to the account

        Returns:
            New app token

        Raises:
            InvalidInput, NotFound, InvalidCredential, RateLimited, ProviderUnavailable
        """
        normalized = normalize_phone(phone)
        if not normalized:
            raise InvalidInput("Invalid phone number.")

        clean_code = normalize_code(code)
        if not clean_code:
            raise InvalidInput("Login code is required.")

        challenge = self.challenges.take(normalized)

        logger.info(f"Verifying Telegram login code for {normalized}...")
        credential = await self._call_provider(
            "sign in",
            lambda: self.provider.complete_code(challenge.handle, normalized, clean_code),
            _classify_sign_in_error,
        )

        token = self.sessions.generate_token()
        self.sessions.put(token, credential)

        logger.info(f"Login completed for {normalized}, issued {mask_token(token)}")
        return token

    async def resolve_profile(self, token: Optional[str]) -> Identity:
        """
        Fetch the Telegram identity behind an app token.

        A credential Telegram no longer accepts is evicted from the store.

        Raises:
            Unauthorized, SessionExpired, RateLimited, ProviderUnavailable
        """
        credential = self.sessions.get(token)

        try:
            identity = await self._call_provider(
                "get profile",
                lambda: self.provider.fetch_identity(credential),
                _classify_session_error,
            )
        except SessionExpired:
            logger.info(f"Session {mask_token(token)} rejected by Telegram, evicting")
            self.sessions.remove(token)
            raise

        return identity

    async def logout(self, token: Optional[str]) -> bool:
        """
        Remove a session. Always succeeds, even for unknown tokens.

        Returns:
            True if a session was removed
        """
        try:
            credential = self.sessions.pop(token)
        except OSError as e:
            logger.error(f"Could not persist logout of {mask_token(token)}: {e}")
            return False

        if credential is None:
            return False

        if self.revoke_upstream_on_logout:
            try:
                await self._call_provider(
                    "log out",
                    lambda: self.provider.revoke(credential),
                    _classify_session_error,
                )
            except AuthError as e:
                logger.warning(f"Upstream logout for {mask_token(token)} failed: {e.message}")

        return True

    def purge_expired_challenges(self) -> int:
        """Drop login challenges whose code window has passed."""
        return self.challenges.purge_expired()
