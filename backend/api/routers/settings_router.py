"""Display settings API routes (HTTP mirror of the realtime config messages)."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel

from core.dependencies import get_settings_service
from services import SettingsService
from shared.errors import DisplayQueueError
from shared.models import DisplayConfig

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


class SettingsResponse(BaseModel):
    success: bool = True
    message: str = ""
    config: DisplayConfig


@router.get("", response_model=SettingsResponse)
async def get_config(service: SettingsService = Depends(get_settings_service)) -> SettingsResponse:
    try:
        return SettingsResponse(config=await service.get_config())
    except Exception as e:
        logger.exception(f"Failed to get settings: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch settings") from None


@router.put("", response_model=SettingsResponse)
async def update_config(
    patch: dict[str, Any] = Body(...),
    service: SettingsService = Depends(get_settings_service),
) -> SettingsResponse:
    """Merge toggles/prices into the current config."""
    try:
        config = await service.update_config(patch)
        return SettingsResponse(message="Settings updated", config=config)
    except DisplayQueueError:
        raise
    except Exception as e:
        logger.exception(f"Failed to update settings: {e}")
        raise HTTPException(status_code=500, detail="Failed to update settings") from None


@router.post("/presets", response_model=SettingsResponse)
async def add_preset(
    preset: dict[str, Any] = Body(...),
    service: SettingsService = Depends(get_settings_service),
) -> SettingsResponse:
    try:
        config = await service.add_preset(preset)
        return SettingsResponse(message="Preset saved", config=config)
    except DisplayQueueError:
        raise
    except Exception as e:
        logger.exception(f"Failed to add preset: {e}")
        raise HTTPException(status_code=500, detail="Failed to save preset") from None


@router.delete("/presets/{preset_id}", response_model=SettingsResponse)
async def remove_preset(
    preset_id: str,
    service: SettingsService = Depends(get_settings_service),
) -> SettingsResponse:
    try:
        config = await service.remove_preset(preset_id)
        return SettingsResponse(message="Preset removed", config=config)
    except DisplayQueueError:
        raise
    except Exception as e:
        logger.exception(f"Failed to remove preset {preset_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to remove preset") from None
