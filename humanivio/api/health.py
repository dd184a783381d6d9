from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from humanivio.api.deps import get_app_settings
from humanivio.core.config import Settings
from humanivio.schemas.common import HealthResponse

root_router = APIRouter()
router = APIRouter()


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@root_router.get("/", response_class=PlainTextResponse)
async def banner(settings: Settings = Depends(get_app_settings)) -> str:
    return f"{settings.app_name} is running"


@router.get("/health", response_model=HealthResponse)
async def health(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    return HealthResponse(status="OK", service=settings.app_name, timestamp=utc_timestamp())
