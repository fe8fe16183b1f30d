#!/usr/bin/env python3

from __future__ import annotations
import asyncio
import json
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from eddwire.codec import JsonCodec
from eddwire.envelope import create_envelope
from eddwire.errors import ConnectError, ConnectTimeoutError, TransportError
from eddwire.log import configure_root_logging, get_logger
from eddwire.vocabulary import CLOSE_REASONS
from eddclient.channel import PresenceChannel
from eddclient.config import ClientConfig, ConfigError, load_config
from eddclient.transport import WebsocketsTransport
from eddclient.ws_client import ConnectionManager

app = typer.Typer(help="EDD multiplexing WebSocket client")
console = Console()
logger = get_logger(__name__)


def _load(config: Optional[Path]) -> ClientConfig:
    try:
        return load_config(config)
    except ConfigError as e:
        console.print(f"[red]Config error[/]: {e}")
        raise typer.Exit(code=2)


@app.command()
def envelope(
    channel: str = typer.Argument(..., help="Channel alias"),
    name: str = typer.Argument(..., help="Message name, e.g. edd:auth:basic"),
    body: Optional[str] = typer.Option(None, help="JSON body"),
):
    """Print the wire form of an envelope and exit."""
    try:
        parsed: Any = json.loads(body) if body is not None else None
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON body[/]: {e}")
        raise typer.Exit(code=2)
    env = create_envelope(channel, name, parsed)
    console.print(JsonCodec().encode(env.to_dict()), markup=False, highlight=False, soft_wrap=True)


@app.command()
def codes():
    """Print the WebSocket close-code table used for error reports."""
    table = Table(title="Close codes")
    table.add_column("Code")
    table.add_column("Name")
    table.add_column("Reason")
    for code, reason in CLOSE_REASONS.items():
        table.add_row(str(int(code)), code.name.lower(), reason)
    console.print(table)


@app.command()
def listen(
    channel: List[str] = typer.Option([], "--channel", "-c", help="Channel alias to register (repeatable)"),
    server: Optional[str] = typer.Option(None, help="WebSocket URL of the EDD server"),
    timeout: Optional[float] = typer.Option(None, help="Connect timeout in seconds"),
    username: Optional[str] = typer.Option(None, help="Username for basic auth"),
    password: Optional[str] = typer.Option(None, help="Password for basic auth"),
    config: Optional[Path] = typer.Option(None, help="YAML config file"),
):
    """Connect, register channels and print everything that arrives."""
    cfg = _load(config)
    address = server or cfg.server
    aliases = channel or cfg.channels
    user = username or cfg.username
    secret = password or cfg.password
    connect_timeout = timeout or cfg.connect_timeout

    if not aliases:
        console.print("[red]At least one --channel is required[/]")
        raise typer.Exit(code=2)

    transport = WebsocketsTransport()
    try:
        manager = ConnectionManager(address, transport=transport, connect_timeout=connect_timeout)
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(code=2)

    configure_root_logging(cfg.log_level)
    channels = [_listening_channel(alias, user, secret) for alias in aliases]

    async def main_loop() -> None:
        done = asyncio.Event()

        def on_error(error: Any) -> None:
            console.print(f"[red]error[/]: {error}")
            # A failed dial never reaches connected, so no disconnected callback follows
            if isinstance(error, (ConnectTimeoutError, ConnectError, TransportError)) and not manager.is_connected:
                done.set()

        manager.on_error(on_error)
        for ch in channels:
            ch.on_disconnected(done.set)
            manager.register(ch)

        console.print(f"[bold green]EDD client starting[/] on {address} with {', '.join(aliases)}")
        manager.start()
        try:
            await done.wait()
        finally:
            manager.stop()
            await transport.aclose()

    try:
        asyncio.run(main_loop())
    except KeyboardInterrupt:
        console.print("Interrupted")

    for ch in channels:
        table = Table(title=f"Online users on {ch.get_alias()}")
        table.add_column("User ID")
        for u in ch.presence.list_sorted():
            table.add_row(u)
        console.print(table)


def _listening_channel(alias: str, username: Optional[str], password: Optional[str]) -> PresenceChannel:
    ch = PresenceChannel(alias)

    def on_challenge(body: Any) -> None:
        methods = body.get("methods", []) if isinstance(body, dict) else []
        console.print(f"[yellow]{alias}[/] auth challenge: {', '.join(methods) or '-'}")
        if "basic" in methods and username is not None and password is not None:
            ch.send_auth_basic(username, password)
        elif username is not None:
            console.print(f"[red]{alias}[/]: server does not offer basic auth")

    def on_pass(body: Any) -> None:
        console.print(f"[bold green]{alias}[/] authenticated as {ch.user_id}")

    def on_join(body: Any) -> None:
        console.print(f"[cyan]{alias}[/] user joined: {body.get('id') if isinstance(body, dict) else body}")

    def on_left(body: Any) -> None:
        console.print(f"[dim]{alias}[/] user left: {body.get('id') if isinstance(body, dict) else body}")

    ch.on_connected(lambda: console.print(f"[green]{alias}[/] connected"))
    ch.auth_challenged(on_challenge)
    ch.auth_passed(on_pass)
    ch.user_join(on_join)
    ch.user_left(on_left)
    return ch


def main() -> None:
    app()


if __name__ == "__main__":
    main()
