"""Health endpoints: process liveness plus calendar sync health."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from nevermiss.config import settings
from nevermiss.service import MeetingService

router = APIRouter(prefix="/health", tags=["health"])


class SyncHealth(BaseModel):
    """How fresh the meeting snapshot is and which accounts are failing."""

    accounts: int = 0
    enabled_accounts: int = 0
    last_synced_at: datetime | None = None
    reauth_required: list[str] = Field(default_factory=list, description="Account emails")
    failing_accounts: list[str] = Field(default_factory=list, description="Account emails")


class HealthResponse(BaseModel):
    status: str = Field(description="healthy, or degraded while any account is failing")
    timestamp: datetime
    version: str
    environment: str
    sync: SyncHealth | None = None


class ReadinessResponse(BaseModel):
    status: str
    checks: dict[str, str]


def _sync_health(service: MeetingService) -> SyncHealth:
    store = service.store
    return SyncHealth(
        accounts=len(store.accounts),
        enabled_accounts=sum(1 for a in store.accounts if a.is_enabled),
        last_synced_at=store.last_synced_at,
        reauth_required=[a.email for a in store.accounts if a.id in store.reauth_required],
        failing_accounts=[a.email for a in store.accounts if a.id in store.sync_errors],
    )


@router.get("/", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Report version and, once loaded, the state of calendar sync."""
    service = getattr(request.app.state, "meeting_service", None)
    sync = _sync_health(service) if service else None
    degraded = sync is not None and bool(sync.reauth_required or sync.failing_accounts)
    return HealthResponse(
        status="degraded" if degraded else "healthy",
        timestamp=datetime.now(UTC),
        version=settings.app_version,
        environment=settings.app_env,
        sync=sync,
    )


@router.get("/live")
async def liveness() -> dict[str, str]:
    return {"status": "alive"}


@router.get("/ready", response_model=ReadinessResponse)
async def readiness(request: Request) -> ReadinessResponse:
    """Ready once persisted state is loaded and the database answers.

    A sync that has not completed yet is reported as "pending" but does
    not block readiness; reminders work from the loaded state.
    """
    checks: dict[str, str] = {}

    db = getattr(request.app.state, "db", None)
    if db is None:
        checks["database"] = "not_configured"
    else:
        checks["database"] = "ok" if await db.is_healthy() else "failed"

    service = getattr(request.app.state, "meeting_service", None)
    checks["meeting_service"] = "ok" if service else "not_configured"

    ready = all(v == "ok" for v in checks.values())
    if service:
        checks["sync"] = "ok" if service.store.last_synced_at else "pending"
    return ReadinessResponse(status="ready" if ready else "not_ready", checks=checks)
