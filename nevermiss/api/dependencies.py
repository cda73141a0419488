"""Shared FastAPI dependencies."""

from fastapi import HTTPException

from nevermiss.service import MeetingService


def get_meeting_service() -> MeetingService:
    """Dependency to get the MeetingService singleton.

    Raises:
        HTTPException: If service not initialized
    """
    try:
        return MeetingService.get_instance()
    except RuntimeError:
        raise HTTPException(
            status_code=503,
            detail="MeetingService not initialized",
        )
