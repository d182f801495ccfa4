from fastapi import APIRouter

from estatehub.core.config import get_settings

router = APIRouter()


@router.get("/healthz", summary="Liveness check.")
async def healthz() -> dict[str, str]:
    settings = get_settings()
    return {"status": "ok", "app": settings.app_name, "env": settings.app_env}
