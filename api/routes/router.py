"""
API router.

Aggregates all endpoints served under /api.
"""

from fastapi import APIRouter

from . import auth

router = APIRouter()

# Paths match the mobile client: /api/login, /api/verify, /api/profile, /api/logout
router.include_router(auth.router, tags=["Authentication"])
