# File: app/api/v1/api.py
from fastapi import APIRouter
from app.api.v1.endpoints import trf, claims, visa, accommodation, transport, approvals, notifications

# Create main API router
api_router = APIRouter()

api_router.include_router(
    trf.router,
    prefix="/trf",
    tags=["travel-requests"]
)

api_router.include_router(
    claims.router,
    prefix="/claims",
    tags=["claims"]
)

api_router.include_router(
    visa.router,
    prefix="/visa",
    tags=["visa"]
)

api_router.include_router(
    accommodation.router,
    prefix="/accommodation",
    tags=["accommodation"]
)

api_router.include_router(
    transport.router,
    prefix="/transport",
    tags=["transport"]
)

api_router.include_router(
    approvals.router,
    prefix="/approvals",
    tags=["approvals"]
)

api_router.include_router(
    notifications.router,
    prefix="/notifications",
    tags=["notifications"]
)
