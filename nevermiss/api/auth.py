"""Browser sign-in endpoints.

``/auth/login`` starts a PKCE flow and redirects the browser to the
Google consent page; Google redirects back to ``/auth/callback``,
which hands the full callback URL to the waiting flow.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from nevermiss.api.dependencies import get_meeting_service
from nevermiss.service import MeetingService

router = APIRouter(prefix="/auth", tags=["auth"])

CALLBACK_PAGE = """<!doctype html>
<html><head><title>NeverMiss</title></head>
<body><p>{message}</p><p>You can close this window.</p></body></html>
"""


@router.get("/login")
async def login(
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> RedirectResponse:
    """Start sign-in and redirect to the consent page.

    Raises:
        HTTPException: 409 if a sign-in is already pending
    """
    try:
        url = await service.start_login()
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if url is None:
        raise HTTPException(
            status_code=500,
            detail=service.last_auth_error or "Sign-in could not be started",
        )
    return RedirectResponse(url, status_code=307)


@router.get("/callback", response_class=HTMLResponse)
async def callback(
    request: Request,
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> HTMLResponse:
    """Receive the OAuth redirect and resume the pending sign-in."""
    if not service.presenter.complete(str(request.url)):
        raise HTTPException(status_code=409, detail="No sign-in is pending")
    if "error" in request.query_params:
        message = "Sign-in was cancelled."
    else:
        message = "Sign-in received."
    return HTMLResponse(CALLBACK_PAGE.format(message=message))


@router.post("/cancel")
async def cancel(
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> dict:
    """Abandon the pending sign-in, if any."""
    return {"cancelled": service.presenter.cancel()}
