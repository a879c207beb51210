"""Display config: feature toggles and pricing presets."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from services.notifier import DisplayNotifier
from shared.errors import NotFoundError, ValidationError
from shared.models.display_config import DisplayConfig, PricingPreset
from shared.repositories.display_config import DisplayConfigRepository

logger = logging.getLogger(__name__)


class SettingsService:
    def __init__(self, repo: DisplayConfigRepository, notifier: DisplayNotifier) -> None:
        self.repo = repo
        self.notifier = notifier

    async def get_config(self) -> DisplayConfig:
        return await self.repo.get()

    async def update_config(self, patch: dict[str, Any]) -> DisplayConfig:
        current = await self.repo.get()
        updated = current.apply(patch)
        await self.repo.save_toggles(updated)
        logger.info(f"Display config updated: {sorted(patch)}")
        await self.notifier.publish_settings(updated)
        return updated

    async def add_preset(self, data: dict[str, Any]) -> DisplayConfig:
        try:
            preset = PricingPreset.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid pricing preset: {e.error_count()} error(s)") from e
        await self.repo.add_preset(preset)
        logger.info(f"Added pricing preset {preset.id} ({preset.mode})")
        config = await self.repo.get()
        await self.notifier.publish_settings(config)
        return config

    async def remove_preset(self, preset_id: str) -> DisplayConfig:
        if not await self.repo.remove_preset(preset_id):
            raise NotFoundError(f"Pricing preset {preset_id} not found")
        logger.info(f"Removed pricing preset {preset_id}")
        config = await self.repo.get()
        await self.notifier.publish_settings(config)
        return config
