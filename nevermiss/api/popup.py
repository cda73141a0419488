"""Reminder popup endpoints, polled by the desktop shell."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from nevermiss.api.dependencies import get_meeting_service
from nevermiss.api.meetings import MeetingItem, to_meeting_item
from nevermiss.service import MeetingService

router = APIRouter(prefix="/popup", tags=["popup"])


class PopupResponse(BaseModel):
    visible: bool
    meeting: MeetingItem | None = None
    play_sound: bool = False


@router.get("", response_model=PopupResponse)
async def get_popup(
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> PopupResponse:
    """Get the reminder currently on screen, if any."""
    active = getattr(service.popup, "active", None)
    if active is None:
        return PopupResponse(visible=False)
    return PopupResponse(
        visible=True,
        meeting=to_meeting_item(active.event, service.clock()),
        play_sound=active.play_sound,
    )


@router.post("/close")
async def close_popup(
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> dict:
    service.popup.close()
    return {"closed": True}
