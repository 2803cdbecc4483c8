"""
App session storage.

Maps opaque app tokens to Telegram session strings and keeps the mapping
in a JSON file, rewritten in full on every change. Fine for the expected
scale of tens to low thousands of sessions.

Several processes may share the file (the API server and the admin
script). Every rewrite happens under an exclusive lock on a sibling
``.lock`` file and starts from the current file contents, and reads pick
up rewrites made elsewhere.
"""

import os
import json
import fcntl
import logging
import secrets
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from ..errors import SessionStoreCorruptError, Unauthorized

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "tk_"
TOKEN_BYTES = 24  # 192 bits of entropy


def mask_token(token: Optional[str]) -> str:
    """Shorten a token for log output."""
    if not token:
        return "<none>"
    return f"{token[:len(TOKEN_PREFIX) + 4]}…"


class SessionStore:
    """
    JSON-backed token -> credential store.

    Mutations and the file rewrite run under one lock, so concurrent
    logins and logouts never lose each other's updates. The in-memory
    mapping only changes after the file write succeeded.
    """

    def __init__(self, file_path: Path, strict: bool = False):
        """
        Initialize the session store and load the persisted mapping.

        Args:
            file_path: Path to the sessions JSON file
            strict: Raise SessionStoreCorruptError on an unreadable file
                instead of starting empty

        Raises:
            SessionStoreCorruptError: If strict and the file is malformed
        """
        self.file_path = Path(file_path)
        self.strict = strict
        self._lock = threading.Lock()
        self._stamp: Optional[Tuple[int, int, int]] = None
        self._sessions: Dict[str, str] = self._load()

    def _file_stamp(self) -> Optional[Tuple[int, int, int]]:
        try:
            st = os.stat(self.file_path)
        except FileNotFoundError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def _read(self) -> Dict[str, str]:
        """Parse the session file. Raises OSError or ValueError."""
        data = json.loads(self.file_path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("top-level value is not an object")
        for token, credential in data.items():
            if not isinstance(credential, str) or not token.startswith(TOKEN_PREFIX):
                raise ValueError(f"invalid entry {mask_token(token)}")
        return data

    def _load(self) -> Dict[str, str]:
        """Load the mapping from disk at startup."""
        if not self.file_path.exists():
            logger.info(f"No session file at {self.file_path}, starting empty")
            return {}

        try:
            stamp = self._file_stamp()
            data = self._read()
        except (OSError, ValueError) as e:
            logger.error(f"Session file {self.file_path} is unreadable: {e}")
            if self.strict:
                raise SessionStoreCorruptError(str(e)) from e
            self._quarantine()
            return {}

        self._stamp = stamp
        logger.info(f"Loaded {len(data)} sessions from {self.file_path}")
        return data

    def _refresh(self):
        """
        Reload the mapping if another process rewrote the file.
        Caller must hold the lock.
        """
        stamp = self._file_stamp()
        if stamp == self._stamp:
            return

        if stamp is None:
            logger.warning(f"Session file {self.file_path} disappeared, dropping cached sessions")
            self._sessions = {}
            self._stamp = None
            return

        try:
            data = self._read()
        except (OSError, ValueError) as e:
            # Keep serving the last good mapping; the next rewrite replaces the file
            logger.error(f"Session file {self.file_path} changed but is unreadable: {e}")
            self._stamp = stamp
            return

        logger.debug(f"Reloaded {len(data)} sessions from {self.file_path}")
        self._sessions = data
        self._stamp = stamp

    def _quarantine(self):
        """Move a corrupt session file aside so it is not overwritten."""
        backup = self.file_path.with_name(self.file_path.name + ".corrupt")
        try:
            os.replace(self.file_path, backup)
            logger.warning(f"All sessions were dropped; corrupt file kept at {backup}")
        except OSError as e:
            logger.error(f"Could not move corrupt session file aside: {e}")

    @contextmanager
    def _file_lock(self) -> Iterator[None]:
        """Hold an exclusive lock shared with other processes using the file."""
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        lock_path = self.file_path.with_name(self.file_path.name + ".lock")
        with open(lock_path, "a") as lock_file:
            fcntl.flock(lock_file, fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file, fcntl.LOCK_UN)

    def _save(self, sessions: Dict[str, str]):
        """Write a whole mapping to disk. Caller must hold both locks."""
        tmp_path = self.file_path.with_name(self.file_path.name + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(sessions, f, indent=2)
        os.replace(tmp_path, self.file_path)

    def _commit(self, sessions: Dict[str, str]):
        """Persist a new mapping, then make it the live one."""
        self._save(sessions)
        self._sessions = sessions
        self._stamp = self._file_stamp()

    @staticmethod
    def generate_token() -> str:
        """Create a new app token from a cryptographically secure source."""
        return TOKEN_PREFIX + secrets.token_urlsafe(TOKEN_BYTES)

    def put(self, token: str, credential: str):
        """
        Store a credential under a token and persist.

        Raises:
            OSError: If the file could not be written; the store is unchanged
        """
        with self._lock, self._file_lock():
            self._refresh()
            updated = dict(self._sessions)
            updated[token] = credential
            self._commit(updated)
        logger.info(f"Stored session {mask_token(token)}")

    def get(self, token: Optional[str]) -> str:
        """
        Look up the credential for a token.

        Raises:
            Unauthorized: If no session exists for the token
        """
        if not token:
            raise Unauthorized()

        with self._lock:
            self._refresh()
            credential = self._sessions.get(token)

        if credential is None:
            raise Unauthorized()
        return credential

    def pop(self, token: Optional[str]) -> Optional[str]:
        """
        Delete a session and return its credential, or None if absent.

        Raises:
            OSError: If the file could not be written; the store is unchanged
        """
        if not token:
            return None

        with self._lock, self._file_lock():
            self._refresh()
            if token not in self._sessions:
                return None
            updated = dict(self._sessions)
            credential = updated.pop(token)
            self._commit(updated)

        logger.info(f"Removed session {mask_token(token)}")
        return credential

    def remove(self, token: Optional[str]) -> bool:
        """
        Delete a session. Removing an unknown token is a no-op.

        Returns:
            True if a session was removed
        """
        return self.pop(token) is not None

    def tokens(self) -> List[str]:
        """List all stored tokens."""
        with self._lock:
            self._refresh()
            return list(self._sessions)

    def __contains__(self, token: str) -> bool:
        with self._lock:
            self._refresh()
            return token in self._sessions

    def __len__(self) -> int:
        with self._lock:
            self._refresh()
            return len(self._sessions)
