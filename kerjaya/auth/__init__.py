"""
Authentication module for Kerjaya.

Holds the state behind Telegram login: pending code challenges and
the persisted app sessions.
"""

from .challenges import ChallengeRegistry, LoginChallenge
from .sessions import SessionStore, mask_token
from .phone import normalize_phone, normalize_code

__all__ = [
    "ChallengeRegistry",
    "LoginChallenge",
    "SessionStore",
    "mask_token",
    "normalize_phone",
    "normalize_code",
]
