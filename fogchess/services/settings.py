"""
User preferences (sound on/off and volume) behind a small get/set interface.

Nothing in the engine reads these; the UI injects whichever service it wants.
"""

from pathlib import Path
from typing import Protocol

from loguru import logger
from pydantic import BaseModel, ValidationError, field_validator


class SoundSettings(BaseModel):
    enabled: bool = True
    volume: float = 0.5

    @field_validator("volume")
    @classmethod
    def clamp_volume(cls, value: float) -> float:
        return max(0.0, min(1.0, value))


class SettingsService(Protocol):
    def get(self) -> SoundSettings: ...
    def set(self, settings: SoundSettings) -> None: ...


class InMemorySettingsService:
    def __init__(self, settings: SoundSettings | None = None) -> None:
        self._settings = settings or SoundSettings()

    def get(self) -> SoundSettings:
        return self._settings

    def set(self, settings: SoundSettings) -> None:
        self._settings = settings


class JsonFileSettingsService:
    """Persists the settings as JSON. A missing or unreadable file means defaults."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def get(self) -> SoundSettings:
        if not self.path.exists():
            return SoundSettings()
        try:
            return SoundSettings.model_validate_json(self.path.read_text())
        except (OSError, ValidationError) as err:
            logger.warning(f"Could not read settings from {self.path}, using defaults: {err}")
            return SoundSettings()

    def set(self, settings: SoundSettings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(settings.model_dump_json())


def set_sound_enabled(service: SettingsService, enabled: bool) -> SoundSettings:
    settings = service.get().model_copy(update={"enabled": enabled})
    service.set(settings)
    return settings


def set_sound_volume(service: SettingsService, volume: float) -> SoundSettings:
    # model_copy skips validation, so go through model_validate to get the clamping
    settings = SoundSettings.model_validate(
        {**service.get().model_dump(), "volume": volume}
    )
    service.set(settings)
    return settings
