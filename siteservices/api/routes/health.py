from datetime import datetime, timezone

from fastapi import APIRouter

from siteservices.core.config import get_settings

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("", summary="Public health check")
async def health() -> dict[str, object]:
    return {
        "ok": True,
        "server": get_settings().app_name,
        "time": datetime.now(timezone.utc).isoformat(),
    }
