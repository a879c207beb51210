"""Tests for application settings and the display config model."""

import pytest

from core.config import Settings
from fakes import Harness
from services.broadcaster import EVENT_SETTINGS
from shared.errors import NotFoundError, ValidationError
from shared.models import DisplayConfig


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings(database_url="postgresql://x/y")

        assert settings.history_retention_seconds == 172800
        assert settings.playback_expiry_enabled is True
        assert settings.ranking_broadcast_limit == 3
        assert settings.cors_origins == [settings.frontend_url]

    def test_log_level_falls_back_to_info(self) -> None:
        assert Settings(database_url="postgresql://x/y", log_level="chatty").log_level == "INFO"
        assert Settings(database_url="postgresql://x/y", log_level="debug").log_level == "DEBUG"

    def test_media_prefix_normalized(self) -> None:
        settings = Settings(database_url="postgresql://x/y", media_url_prefix="media/")
        assert settings.media_url_prefix == "/media"


class TestDisplayConfig:
    def test_defaults_accept_everything(self) -> None:
        config = DisplayConfig()
        assert all(config.accepts(t) for t in ("image", "text", "gift", "birthday"))
        assert (config.price, config.time, config.table_count) == (100, 10, 10)

    def test_apply_validates_whole_config(self) -> None:
        config = DisplayConfig()

        assert config.apply({"time": 15, "enable_text": False}).time == 15
        with pytest.raises(ValidationError):
            config.apply({"time": 0})
        with pytest.raises(ValidationError):
            config.apply({"table_count": "many"})
        with pytest.raises(ValidationError):
            config.apply({"unknownToggle": True})
        with pytest.raises(ValidationError):
            config.apply({"settings": []})

    def test_system_off_closes_everything(self) -> None:
        config = DisplayConfig(system_on=False)
        assert not any(config.accepts(t) for t in ("image", "text", "gift", "birthday"))


class TestSettingsService:
    @pytest.mark.asyncio
    async def test_update_persists_and_broadcasts(self, harness: Harness) -> None:
        updated = await harness.services.settings.update_config({"price": 250})

        assert updated.price == 250
        assert (await harness.services.settings.get_config()).price == 250
        assert harness.subscriber.events(EVENT_SETTINGS)[-1]["price"] == 250

    @pytest.mark.asyncio
    async def test_presets(self, harness: Harness) -> None:
        settings = harness.services.settings
        config = await settings.add_preset(
            {"id": "p1", "mode": "image", "duration": "30", "price": 50}
        )
        assert [p.id for p in config.settings] == ["p1"]

        with pytest.raises(ValidationError):
            await settings.add_preset({"id": "p2", "mode": "hologram"})

        config = await settings.remove_preset("p1")
        assert config.settings == []
        with pytest.raises(NotFoundError):
            await settings.remove_preset("p1")
