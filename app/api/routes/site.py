"""
Public, non-secret configuration for the website frontend.
"""
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from app.core.config import settings

router = APIRouter()


class SiteConfigResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mapbox_token: Optional[str] = Field(None, alias="mapboxToken")
    environment: str


@router.get(
    "/site-config",
    response_model=SiteConfigResponse,
    response_model_by_alias=True,
    summary="Frontend configuration",
    description="Public map token for the global presence map.",
)
async def site_config() -> SiteConfigResponse:
    return SiteConfigResponse(mapbox_token=settings.MAPBOX_TOKEN, environment=settings.ENVIRONMENT)
