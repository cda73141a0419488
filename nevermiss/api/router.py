"""API router aggregation."""

from fastapi import APIRouter

from nevermiss.api.accounts import router as accounts_router
from nevermiss.api.auth import router as auth_router
from nevermiss.api.health import router as health_router
from nevermiss.api.meetings import router as meetings_router
from nevermiss.api.popup import router as popup_router
from nevermiss.api.settings import router as settings_router
from nevermiss.api.status import router as status_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(status_router)
api_router.include_router(meetings_router)
api_router.include_router(accounts_router)
# Browser sign-in (consent redirect + OAuth callback)
api_router.include_router(auth_router)
api_router.include_router(settings_router)
api_router.include_router(popup_router)
