"""Meeting view endpoints: list, dismiss, sync."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from nevermiss.api.dependencies import get_meeting_service
from nevermiss.meetings.formatting import duration, relative_time, time_range
from nevermiss.models.event import CalendarEvent, ConferenceProvider, ResponseStatus
from nevermiss.service import MeetingService

router = APIRouter(tags=["meetings"])


class MeetingItem(BaseModel):
    """One meeting row as displayed in the menu."""

    id: str
    account_id: str
    title: str
    start_time: datetime
    end_time: datetime
    is_all_day: bool
    is_in_progress: bool
    relative: str
    time_range: str
    duration: str
    location: str | None
    organizer: str | None
    response_status: ResponseStatus
    conference_provider: ConferenceProvider | None
    join_url: str | None
    html_link: str | None


class MeetingsResponse(BaseModel):
    title: str
    timed: list[MeetingItem]
    all_day: list[MeetingItem]
    combined: list[MeetingItem]


class SyncResponse(BaseModel):
    """Outcome of a manual sync."""

    applied: bool
    event_count: int
    reauth_required: list[str]
    errors: dict[str, str]


def to_meeting_item(event: CalendarEvent, now: datetime) -> MeetingItem:
    return MeetingItem(
        id=event.id,
        account_id=event.account_id,
        title=event.title,
        start_time=event.start_time,
        end_time=event.end_time,
        is_all_day=event.is_all_day,
        is_in_progress=event.start_time <= now < event.end_time,
        relative=relative_time(event.start_time, now),
        time_range="All day" if event.is_all_day else time_range(event.start_time, event.end_time),
        duration=duration(event.start_time, event.end_time),
        location=event.location,
        organizer=event.organizer,
        response_status=event.response_status,
        conference_provider=event.conference_info.provider if event.conference_info else None,
        join_url=event.join_url,
        html_link=event.html_link,
    )


@router.get("/meetings", response_model=MeetingsResponse)
async def list_meetings(
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> MeetingsResponse:
    """Get the relevant-now view: timed meetings first, then all-day events."""
    view = service.store.view
    now = service.clock()
    timed = [to_meeting_item(e, now) for e in view.timed]
    all_day = [to_meeting_item(e, now) for e in view.all_day]
    return MeetingsResponse(
        title=service.store.title,
        timed=timed,
        all_day=all_day,
        combined=[*timed, *all_day],
    )


@router.post("/meetings/{event_id}/dismiss")
async def dismiss_meeting(
    event_id: str,
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> dict:
    """Hide a meeting from the view until dismissals are cleared."""
    if not await service.dismiss(event_id):
        raise HTTPException(status_code=404, detail=f"Meeting {event_id} not found")
    return {"dismissed": event_id}


@router.delete("/meetings/dismissed")
async def clear_dismissed(
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> dict:
    """Restore every dismissed meeting."""
    await service.clear_dismissed()
    return {"cleared": True}


@router.post("/sync", response_model=SyncResponse)
async def sync_now(
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> SyncResponse:
    """Run a sync cycle now and wait for it."""
    result = await service.sync_now()
    if result is None:
        return SyncResponse(applied=False, event_count=0, reauth_required=[], errors={})
    return SyncResponse(
        applied=True,
        event_count=len(service.store.events),
        reauth_required=result.reauth_required,
        errors=result.errors,
    )
