"""
Pending login challenges.

A challenge is created when a one-time code is sent to a phone and is
consumed by the first verification attempt, successful or not.
Challenges are kept in memory only; a restart simply forces users to
request a new code.
"""

import time
import logging
import threading
from typing import Any, Callable, Dict, Optional
from dataclasses import dataclass

from ..errors import NotFound

logger = logging.getLogger(__name__)

DEFAULT_CHALLENGE_TTL = 300.0  # 5 minutes


@dataclass
class LoginChallenge:
    """A one-time-code login attempt tied to a phone number."""
    phone: str
    handle: Any  # Provider-issued, opaque to the registry
    created_at: float

    def is_expired(self, now: float, ttl: float) -> bool:
        return now - self.created_at >= ttl


class ChallengeRegistry:
    """
    In-memory registry of pending challenges keyed by phone number.

    One slot per phone. All access goes through a single lock, so
    `take` is atomic with respect to concurrent `put`/`take` calls.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CHALLENGE_TTL,
        clock: Callable[[], float] = time.monotonic
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._challenges: Dict[str, LoginChallenge] = {}
        self._lock = threading.Lock()

    def put(self, phone: str, handle: Any) -> Optional[LoginChallenge]:
        """
        Store a challenge for a phone, replacing any pending one.

        Args:
            phone: Phone number the code was sent to
            handle: Provider challenge handle

        Returns:
            The superseded challenge if one was still live, else None
        """
        challenge = LoginChallenge(phone=phone, handle=handle, created_at=self._clock())

        with self._lock:
            previous = self._challenges.get(phone)
            self._challenges[phone] = challenge

        if previous is None or previous.is_expired(challenge.created_at, self._ttl):
            return None

        logger.info(f"Replaced pending login challenge for {phone}")
        return previous

    def take(self, phone: str) -> LoginChallenge:
        """
        Remove and return the pending challenge for a phone.

        Raises:
            NotFound: If no live challenge exists for the phone
        """
        with self._lock:
            challenge = self._challenges.pop(phone, None)

        if challenge is None:
            raise NotFound()

        if challenge.is_expired(self._clock(), self._ttl):
            logger.info(f"Login challenge for {phone} expired")
            raise NotFound()

        return challenge

    def purge_expired(self) -> int:
        """Evict every expired challenge. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [
                phone for phone, challenge in self._challenges.items()
                if challenge.is_expired(now, self._ttl)
            ]
            for phone in expired:
                del self._challenges[phone]

        if expired:
            logger.info(f"Purged {len(expired)} expired login challenges")
        return len(expired)

    def __contains__(self, phone: str) -> bool:
        with self._lock:
            challenge = self._challenges.get(phone)
        return challenge is not None and not challenge.is_expired(self._clock(), self._ttl)

    def __len__(self) -> int:
        with self._lock:
            return len(self._challenges)
