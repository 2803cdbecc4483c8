"""
API dependencies.

Provides dependency injection for services and the app token header.
"""

import logging
from typing import Optional, Annotated
from dataclasses import dataclass

from fastapi import Depends, Header

from kerjaya.config import load_config, Config
from kerjaya.services import AuthService, create_auth_service

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


@dataclass
class Services:
    """Container for all services."""
    config: Config
    auth: AuthService


# Global services instance (singleton)
_services: Optional[Services] = None


def get_services() -> Services:
    """
    Get or create the services singleton.

    This initializes all services on first call.
    """
    global _services

    if _services is None:
        logger.info("Initializing services...")

        config = load_config()
        auth = create_auth_service(config)

        _services = Services(config=config, auth=auth)

        logger.info(f"Services initialized with {len(auth.sessions)} stored sessions")

    return _services


def close_services():
    """Drop the services singleton."""
    global _services
    if _services:
        _services = None
        logger.info("Services closed")


# Dependency for getting services
def services_dep() -> Services:
    """FastAPI dependency for services."""
    return get_services()


ServicesDep = Annotated[Services, Depends(services_dep)]


async def get_app_token(
    authorization: Annotated[Optional[str], Header()] = None
) -> Optional[str]:
    """
    Read the app token from the Authorization header.

    The raw token is the expected form; a "Bearer " prefix is tolerated.
    """
    if not authorization:
        return None

    token = authorization.strip()
    if token.lower().startswith(BEARER_PREFIX):
        token = token[len(BEARER_PREFIX):].strip()

    return token or None


AppTokenDep = Annotated[Optional[str], Depends(get_app_token)]
