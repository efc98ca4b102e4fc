import random

import pytest

from sevens.messaging.mock import MockConnection
from sevens.messaging.router import MessageRouter
from sevens.server.app import create_app
from sevens.server.settings import GameServerSettings
from sevens.session.manager import SessionManager


@pytest.fixture
async def manager():
    """Session manager with short timers so grace and deletion fire within a test."""
    session_manager = SessionManager(
        bot_delay_seconds=0.01,
        disconnect_grace_seconds=0.05,
        room_deletion_seconds=0.05,
        rng=random.Random(7),
    )
    yield session_manager
    session_manager.cancel_all_timers()


@pytest.fixture
async def slow_manager():
    """Session manager whose timers never fire during a test, for deterministic turn checks."""
    session_manager = SessionManager(
        bot_delay_seconds=60,
        disconnect_grace_seconds=60,
        room_deletion_seconds=60,
        rng=random.Random(7),
    )
    yield session_manager
    session_manager.cancel_all_timers()


@pytest.fixture
def message_router(manager):
    return MessageRouter(manager)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def settings():
    return GameServerSettings(
        bot_delay_seconds=0.01,
        disconnect_grace_seconds=0.05,
        room_deletion_seconds=0.05,
        cors_origins=["http://localhost:3000"],
    )


@pytest.fixture
def app(settings):
    return create_app(settings=settings)
