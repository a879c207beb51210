"""Repository for display_config and pricing_presets tables."""

from __future__ import annotations

import json
import logging

import asyncpg

from shared.cache import AsyncTTLCache, cached
from shared.models.display_config import DisplayConfig, PricingPreset

logger = logging.getLogger(__name__)

# Read on every intake; writes are rare and invalidate explicitly.
_config_cache = AsyncTTLCache(maxsize=4, ttl=300)
_CACHE_KEY = "display_config"

_PRESET_COLUMNS = "id, mode, date, duration, price"


class DisplayConfigRepository:
    """Pure SQL operations for the display switches and pricing presets."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    @cached(cache=_config_cache, key_func=lambda self: _CACHE_KEY)
    async def get(self) -> DisplayConfig:
        """Current config; defaults when nothing has been saved yet."""
        async with self.pool.acquire() as conn:
            toggles = await conn.fetchval("SELECT toggles FROM display_config WHERE id = 1")
            rows = await conn.fetch(
                f"SELECT {_PRESET_COLUMNS} FROM pricing_presets ORDER BY created_at DESC, id"
            )
        if isinstance(toggles, str):
            toggles = json.loads(toggles)
        known = {
            k: v for k, v in (toggles or {}).items() if k in DisplayConfig.model_fields
        }
        known.pop("settings", None)
        return DisplayConfig(
            **known, settings=[PricingPreset(**dict(r)) for r in rows]
        )

    async def save_toggles(self, config: DisplayConfig) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO display_config (id, toggles, updated_at)
                VALUES (1, $1::jsonb, NOW())
                ON CONFLICT (id) DO UPDATE SET
                    toggles = EXCLUDED.toggles, updated_at = NOW()
                """,
                json.dumps(config.toggles()),
            )
        _config_cache.invalidate(_CACHE_KEY)

    async def add_preset(self, preset: PricingPreset) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO pricing_presets (id, mode, date, duration, price)
                VALUES ($1, $2, $3, $4, $5)
                ON CONFLICT (id) DO UPDATE SET
                    mode = EXCLUDED.mode, date = EXCLUDED.date,
                    duration = EXCLUDED.duration, price = EXCLUDED.price
                """,
                preset.id,
                preset.mode,
                preset.date,
                preset.duration,
                preset.price,
            )
        _config_cache.invalidate(_CACHE_KEY)

    async def remove_preset(self, preset_id: str) -> bool:
        async with self.pool.acquire() as conn:
            result = await conn.execute("DELETE FROM pricing_presets WHERE id = $1", preset_id)
        _config_cache.invalidate(_CACHE_KEY)
        return result == "DELETE 1"
