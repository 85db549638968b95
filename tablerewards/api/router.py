"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from tablerewards.api.routes import auth, users, restaurants, bookings, rewards, cron

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(restaurants.router)
api_router.include_router(bookings.router)
api_router.include_router(rewards.router)
api_router.include_router(cron.router)
