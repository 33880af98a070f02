"""API route registrations."""
from fastapi import APIRouter

from findash.api.routes import admin, auth, dashboard, notifications, transactions, user


api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(auth.verification_router)
api_router.include_router(auth.session_router)
api_router.include_router(user.router)
api_router.include_router(transactions.router)
api_router.include_router(dashboard.router)
api_router.include_router(notifications.router)
api_router.include_router(admin.router)

__all__ = ["api_router"]
