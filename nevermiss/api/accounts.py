"""Connected account endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from nevermiss.api.dependencies import get_meeting_service
from nevermiss.models.account import Account
from nevermiss.service import MeetingService

router = APIRouter(prefix="/accounts", tags=["accounts"])


class AccountResponse(BaseModel):
    """Account metadata; credentials are never exposed."""

    id: str
    email: str
    display_name: str
    is_enabled: bool
    needs_reauthentication: bool
    sync_error: str | None = None


class AccountUpdate(BaseModel):
    is_enabled: bool


def _to_response(account: Account, service: MeetingService) -> AccountResponse:
    store = service.store
    return AccountResponse(
        **account.public_dict(),
        needs_reauthentication=(
            account.needs_reauthentication or account.id in store.reauth_required
        ),
        sync_error=store.sync_errors.get(account.id),
    )


@router.get("", response_model=list[AccountResponse])
async def list_accounts(
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> list[AccountResponse]:
    """List connected accounts in the order they were added."""
    return [_to_response(account, service) for account in service.store.accounts]


@router.patch("/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: str,
    update: AccountUpdate,
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> AccountResponse:
    """Enable or disable syncing for an account.

    Enabling starts a background sync so its meetings appear promptly.
    """
    account = await service.set_account_enabled(account_id, update.is_enabled)
    if account is None:
        raise HTTPException(status_code=404, detail=f"Account {account_id} not found")
    if account.is_enabled:
        service.request_sync()
    return _to_response(account, service)


@router.delete("/{account_id}")
async def remove_account(
    account_id: str,
    service: Annotated[MeetingService, Depends(get_meeting_service)],
) -> dict:
    """Disconnect an account and forget its tokens and meetings."""
    if not await service.remove_account(account_id):
        raise HTTPException(status_code=404, detail=f"Account {account_id} not found")
    return {"removed": account_id}
