"""Status endpoint: what the menu-bar shell renders."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from nevermiss.api.dependencies import get_meeting_service
from nevermiss.service import MeetingService

router = APIRouter(tags=["status"])


class ReauthEntry(BaseModel):
    account_id: str
    email: str


class JobStatus(BaseModel):
    id: str
    next_run: str | None


class StatusResponse(BaseModel):
    """Menu-bar title plus sync and timer bookkeeping."""

    title: str
    meeting_count: int = Field(description="Meetings in the relevant view")
    account_count: int
    last_synced_at: datetime | None
    reauth_required: list[ReauthEntry]
    sync_errors: dict[str, str]
    scheduler_running: bool
    jobs: list[JobStatus]
    pending_reminders: dict[str, datetime]


@router.get("/status", response_model=StatusResponse)
async def get_status(
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> StatusResponse:
    """Get the menu-bar title, sync state and timer status."""
    store = service.store
    reauth = [
        ReauthEntry(account_id=account.id, email=account.email)
        for account in store.accounts
        if account.id in store.reauth_required
    ]
    return StatusResponse(
        title=store.title,
        meeting_count=len(store.view.combined),
        account_count=len(store.accounts),
        last_synced_at=store.last_synced_at,
        reauth_required=reauth,
        sync_errors=store.sync_errors,
        scheduler_running=service.scheduler.running,
        jobs=[
            JobStatus(
                id=job.id,
                next_run=str(job.next_run_time) if job.next_run_time else None,
            )
            for job in service.scheduler.get_jobs()
        ],
        pending_reminders=service.notifications.pending_fire_times(),
    )
