"""Sevens server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from sevens.logic.bot import BotStrategy
from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class GameServerSettings(BaseSettings):
    model_config = {"env_prefix": "SEVENS_"}

    # room ids are 3 digits (100-999), so at most 900 rooms can exist
    max_rooms: int = Field(default=500, ge=1, le=900)
    bot_delay_seconds: float = Field(default=1.5, ge=0)
    disconnect_grace_seconds: float = Field(default=30.0, ge=0)
    room_deletion_seconds: float = Field(default=5.0, ge=0)
    bot_strategy: BotStrategy = BotStrategy.RANDOM
    log_dir: str = Field(default="backend/logs/sevens", min_length=1)
    cors_origins: list[str] = ["http://localhost:3000"]

    @field_validator("bot_strategy", mode="before")
    @classmethod
    def validate_bot_strategy(cls, v: str | BotStrategy) -> BotStrategy:
        if isinstance(v, str):
            try:
                return BotStrategy[v.strip().upper()]
            except KeyError:
                raise ValueError(f"unknown bot strategy {v!r}") from None
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
