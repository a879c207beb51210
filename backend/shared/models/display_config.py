"""Display configuration: feature toggles plus pricing presets.

The config is one typed structure with a single validated update path
(:meth:`DisplayConfig.apply`) rather than a free-form dict merged from clients.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shared.errors import ValidationError as ConfigValidationError


class PricingPreset(BaseModel):
    """A duration/price option offered to submitters for one content mode."""

    id: str = Field(..., min_length=1)
    mode: str = Field(..., pattern="^(image|text|gift|birthday)$")
    date: str | None = None
    duration: str | None = None
    price: float = Field(default=0, ge=0)


class DisplayConfig(BaseModel):
    """Runtime switches shared with every connected screen and admin panel."""

    model_config = ConfigDict(extra="forbid")

    system_on: bool = True
    enable_image: bool = True
    enable_text: bool = True
    enable_gift: bool = True
    enable_birthday: bool = True
    price: float = Field(default=100, ge=0)
    time: int = Field(default=10, ge=1)
    table_count: int = Field(default=10, ge=1)
    settings: list[PricingPreset] = Field(default_factory=list)

    def accepts(self, content_type: str) -> bool:
        """Whether intake is open for *content_type*."""
        if not self.system_on:
            return False
        return bool(getattr(self, f"enable_{content_type}", False))

    def toggles(self) -> dict[str, Any]:
        """Persistable part of the config (presets live in their own table)."""
        return self.model_dump(exclude={"settings"})

    def apply(self, patch: dict[str, Any]) -> DisplayConfig:
        """Return a new config with *patch* merged in, validated as a whole.

        Presets cannot be replaced through a patch; they are added and removed
        one at a time.
        """
        if "settings" in patch:
            raise ConfigValidationError("settings presets are managed individually")
        merged = {**self.toggles(), **patch, "settings": self.settings}
        try:
            return DisplayConfig.model_validate(merged)
        except ValidationError as e:
            raise ConfigValidationError(_summarize(e)) from e


def _summarize(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts) or "invalid config"
