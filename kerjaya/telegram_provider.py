"""Telegram login provider for Kerjaya."""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, asdict
from typing import AsyncIterator, Protocol

from telethon import TelegramClient
from telethon.errors import AuthKeyUnregisteredError
from telethon.sessions import StringSession

from .config import TelegramConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChallengeHandle:
    """
    State needed to finish a code login.

    Telegram binds the phone_code_hash to the connection's auth key, so
    the temporary session string travels with it instead of a live client.
    """
    phone_code_hash: str
    session_string: str

    def __repr__(self) -> str:
        return "ChallengeHandle(<redacted>)"


@dataclass
class Identity:
    """Telegram account details shown on the profile screen."""
    id: str
    first_name: str
    last_name: str
    username: str
    phone: str

    def to_dict(self) -> dict:
        return asdict(self)


class LoginProvider(Protocol):
    """Operations the auth service needs from the messaging provider."""

    async def request_code(self, phone: str) -> ChallengeHandle:
        ...

    async def complete_code(self, handle: ChallengeHandle, phone: str, code: str) -> str:
        ...

    async def fetch_identity(self, credential: str) -> Identity:
        ...

    async def revoke(self, credential: str) -> None:
        ...


class TelegramProvider:
    """
    Telethon-backed login provider.

    Each call connects a fresh client and always disconnects it,
    whichever way the call ends.
    """

    def __init__(self, config: TelegramConfig):
        self.config = config

    def _create_client(self, session_string: str, retries: int) -> TelegramClient:
        return TelegramClient(
            StringSession(session_string),
            self.config.api_id,
            self.config.api_hash,
            connection_retries=retries,
        )

    @asynccontextmanager
    async def _connected(self, session_string: str, retries: int) -> AsyncIterator[TelegramClient]:
        client = self._create_client(session_string, retries)
        try:
            await client.connect()
            yield client
        finally:
            await client.disconnect()

    async def request_code(self, phone: str) -> ChallengeHandle:
        """Send a login code to the phone's Telegram account."""
        async with self._connected("", self.config.login_retries) as client:
            sent = await client.send_code_request(phone)
            session_string = client.session.save()

        logger.debug(f"Telegram code dispatched to {phone} via {type(sent.type).__name__}")
        return ChallengeHandle(
            phone_code_hash=sent.phone_code_hash,
            session_string=session_string,
        )

    async def complete_code(self, handle: ChallengeHandle, phone: str, code: str) -> str:
        """Sign in with the code and return the durable session string."""
        async with self._connected(handle.session_string, self.config.login_retries) as client:
            await client.sign_in(
                phone=phone,
                code=code,
                phone_code_hash=handle.phone_code_hash,
            )
            return client.session.save()

    async def fetch_identity(self, credential: str) -> Identity:
        """Load the account behind a stored session string."""
        async with self._connected(credential, self.config.profile_retries) as client:
            if not await client.is_user_authorized():
                raise AuthKeyUnregisteredError(request=None)
            me = await client.get_me()

        if me is None:
            raise AuthKeyUnregisteredError(request=None)

        return Identity(
            id=str(me.id),
            first_name=me.first_name or "",
            last_name=me.last_name or "",
            username=me.username or "",
            phone=me.phone or "Private",
        )

    async def revoke(self, credential: str) -> None:
        """Log the session out on Telegram's side."""
        async with self._connected(credential, self.config.profile_retries) as client:
            await client.log_out()


def create_provider(config: TelegramConfig) -> TelegramProvider:
    """Build the default provider, warning when credentials are missing."""
    if not config.is_configured():
        logger.warning(
            "TELEGRAM_API_ID / TELEGRAM_API_HASH not set! "
            "Login requests will fail until they are configured in .env."
        )
    return TelegramProvider(config)
