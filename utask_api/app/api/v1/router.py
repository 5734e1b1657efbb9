"""
Top‑level router for version 1 of the API.

This router aggregates domain‑specific routers (auth, services,
proposals, etc.) under a unified prefix.  When new endpoints are added
or when new domains are introduced, update this file to include their
routers.
"""

from fastapi import APIRouter

from .endpoints import (
    auth,
    categories,
    services,
    proposals,
    notifications,
    wallet,
)

# Create a router for version 1 and include sub‑routers for each domain.
router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(categories.router, prefix="/categories", tags=["categories"])
# Service proposals are created and listed under /services/{id}/proposals;
# decisions on a single proposal live under /proposals/{id}.
router.include_router(services.router, prefix="/services", tags=["services"])
router.include_router(proposals.router, prefix="/proposals", tags=["proposals"])
router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
router.include_router(wallet.router, prefix="/wallet", tags=["wallet"])
