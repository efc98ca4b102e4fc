import pytest
from pydantic import ValidationError

from sevens.logic.bot import BotStrategy
from sevens.server.settings import GameServerSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "SEVENS_MAX_ROOMS",
        "SEVENS_BOT_DELAY_SECONDS",
        "SEVENS_BOT_STRATEGY",
        "SEVENS_CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)


class TestGameServerSettings:
    def test_defaults(self):
        settings = GameServerSettings()
        assert settings.max_rooms == 500
        assert settings.bot_delay_seconds == 1.5
        assert settings.disconnect_grace_seconds == 30.0
        assert settings.room_deletion_seconds == 5.0
        assert settings.bot_strategy is BotStrategy.RANDOM

    def test_reads_prefixed_env(self, monkeypatch):
        monkeypatch.setenv("SEVENS_MAX_ROOMS", "20")
        monkeypatch.setenv("SEVENS_BOT_DELAY_SECONDS", "0.2")
        monkeypatch.setenv("SEVENS_BOT_STRATEGY", "heuristic")

        settings = GameServerSettings()

        assert settings.max_rooms == 20
        assert settings.bot_delay_seconds == 0.2
        assert settings.bot_strategy is BotStrategy.HEURISTIC

    def test_cors_origins_from_csv(self, monkeypatch):
        monkeypatch.setenv("SEVENS_CORS_ORIGINS", "http://a.test, http://b.test")
        assert GameServerSettings().cors_origins == ["http://a.test", "http://b.test"]

    def test_cors_origins_from_json(self, monkeypatch):
        monkeypatch.setenv("SEVENS_CORS_ORIGINS", '["http://a.test"]')
        assert GameServerSettings().cors_origins == ["http://a.test"]

    @pytest.mark.parametrize("max_rooms", [0, 901])
    def test_max_rooms_bounded_by_id_space(self, max_rooms):
        with pytest.raises(ValidationError):
            GameServerSettings(max_rooms=max_rooms)

    def test_negative_delay_rejected(self):
        with pytest.raises(ValidationError):
            GameServerSettings(bot_delay_seconds=-1)

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValidationError):
            GameServerSettings(bot_strategy="clever")
