from fastapi import APIRouter

from estatehub.api.routes import health, translation, units

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(translation.router, prefix="/translations", tags=["translations"])
api_router.include_router(units.router, prefix="/projects/{project_id}/units", tags=["units"])
