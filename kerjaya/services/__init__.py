"""
Services layer for Kerjaya.

Business logic shared by the HTTP API and the admin scripts.
"""

from typing import Optional

from ..auth import ChallengeRegistry, SessionStore
from ..config import Config, load_config
from ..telegram_provider import LoginProvider, create_provider
from .auth_service import AuthService

__all__ = [
    "AuthService",
    "create_auth_service",
]


def create_auth_service(
    config: Optional[Config] = None,
    provider: Optional[LoginProvider] = None
) -> AuthService:
    """
    Factory function to create the auth service with its stores.

    Args:
        config: Optional config (loads from env if not provided)
        provider: Optional provider (Telethon-backed if not provided)

    Returns:
        Configured AuthService
    """
    cfg = config or load_config()

    challenges = ChallengeRegistry(ttl_seconds=cfg.auth.challenge_ttl_seconds)
    sessions = SessionStore(cfg.auth.sessions_file, strict=cfg.auth.strict_store)

    return AuthService(
        provider=provider or create_provider(cfg.telegram),
        challenges=challenges,
        sessions=sessions,
        timeout_seconds=cfg.telegram.timeout_seconds,
        revoke_upstream_on_logout=cfg.auth.revoke_upstream_on_logout,
    )
