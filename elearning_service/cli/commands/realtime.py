"""Realtime channel commands."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import click

from elearning_service.cli.utils import coro, error, header, info


def _render(payload: Any) -> str:
    try:
        return json.dumps(payload, default=str)
    except (TypeError, ValueError):
        return repr(payload)


@click.group(name="realtime")
def realtime() -> None:
    """Realtime notification channel commands."""


@realtime.command(name="listen")
@click.option("--user-id", required=True, help="User id sent in the handshake")
@click.option(
    "--no-reconnect",
    is_flag=True,
    default=False,
    help="Exit instead of reconnecting after a failure or disconnect",
)
@coro
async def listen(user_id: str, no_reconnect: bool) -> None:
    """Print connection state changes and new messages until Ctrl+C.

    Exits once the client gives up reconnecting.
    """
    from elearning_service.core.settings import get_realtime_settings
    from elearning_service.infra.realtime import ConnectionState, RealtimeClient

    settings = get_realtime_settings()
    client = RealtimeClient(settings)
    done = asyncio.Event()

    def on_state(state: ConnectionState) -> None:
        info(f"State: {state.label}")
        if no_reconnect and state in (ConnectionState.ERROR, ConnectionState.DISCONNECTED):
            done.set()
        elif (
            state is ConnectionState.ERROR
            and client.reconnect_attempts >= settings.max_reconnect_attempts
        ):
            done.set()

    def on_message(payload: Any) -> None:
        header("new_message")
        click.echo(_render(payload))

    client.add_listener(on_state)
    client.on_new_message(on_message)

    info(f"Connecting to {settings.base_url} as {user_id}")
    try:
        await client.connect(user_id, auto_reconnect=not no_reconnect)
        await done.wait()
    finally:
        status = client.describe_status()
        await client.close()

    error(f"Listener stopped: {status}")
