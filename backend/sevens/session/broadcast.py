"""Shared broadcast utility for sending messages to player groups."""

import contextlib
from collections.abc import Iterable
from typing import Any

from sevens.session.models import Player


async def broadcast_to_players(
    players: Iterable[Player],
    message: dict[str, Any],
    exclude_connection_id: str | None = None,
) -> None:
    """Send a message to every player, skipping one if excluded.

    The players are snapshotted via list() first: a send yields to the loop
    and a concurrent disconnect may mutate the caller's collection.
    A failed send to one player never stops delivery to the others.
    """
    for player in list(players):
        if player.connection_id != exclude_connection_id:
            with contextlib.suppress(RuntimeError, OSError, ConnectionError):
                await player.connection.send_message(message)
