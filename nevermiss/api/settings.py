"""Settings endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends

from nevermiss.api.dependencies import get_meeting_service
from nevermiss.models.settings import SettingsUpdate, UserSettings
from nevermiss.service import MeetingService

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=UserSettings)
async def get_settings(
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> UserSettings:
    return service.store.settings


@router.put("", response_model=UserSettings)
async def update_settings(
    update: SettingsUpdate,
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> UserSettings:
    """Apply a partial settings change.

    Reminders are re-armed with the new lead time and the sync job
    picks up a changed refresh interval.
    """
    return await service.update_settings(update)
