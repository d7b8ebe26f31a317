"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from cowork_booking.api.routes import bookings, internal

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(bookings.router)
api_router.include_router(internal.router)
