"""CLI entrypoint for GeoCoins."""

from __future__ import annotations

import asyncio
from typing import Any

import typer
from rich import print

from geocoins.config import settings
from geocoins.errors import GeoCoinsError
from geocoins.event_runtime import EventJob, EventKind, EventRuntime
from geocoins.ledger import CellLedger
from geocoins.luck import PitGenerator
from geocoins.models import Coin, Point
from geocoins.persistence import JsonFileSnapshotStore, PersistenceCoordinator
from geocoins.session import Direction, GameSession
from geocoins.telemetry.logging import LoggingTelemetry, configure_logging

app = typer.Typer(help="GeoCoins: collect coins from pits on a map grid")

SaveFileOption = typer.Option(None, "--save-file", help="Snapshot file (defaults to GEOCOINS_SAVE_PATH)")


def _start_position() -> Point:
    return Point(lat=settings.start_lat, lng=settings.start_lng)


def _build_session(save_file: str | None) -> GameSession:
    start_position = _start_position()
    return GameSession(
        store=JsonFileSnapshotStore(save_file or settings.save_path),
        persistence=PersistenceCoordinator(
            tile_width=settings.tile_degrees,
            tile_visibility_radius=settings.neighborhood_size,
            start_position=start_position,
        ),
        generator=PitGenerator(settings.pit_spawn_probability),
        tile_width=settings.tile_degrees,
        tile_visibility_radius=settings.neighborhood_size,
        start_position=start_position,
        telemetry=LoggingTelemetry(),
    )


def _run_events(save_file: str | None, events: list[tuple[EventKind, dict[str, Any]]]) -> tuple[GameSession, list[EventJob]]:
    """Restore the session, apply ``events`` in order, then write the snapshot once."""
    configure_logging(settings.log_level)
    session = _build_session(save_file)
    runtime = EventRuntime(session, shutdown_timeout_seconds=settings.shutdown_timeout_seconds)

    async def _run() -> list[EventJob]:
        await runtime.start()
        job_ids = [runtime.submit(kind, **args) for kind, args in events]
        await runtime.join()
        await runtime.stop()
        return [runtime.get_job(job_id) for job_id in job_ids]

    try:
        jobs = asyncio.run(_run())
    except (GeoCoinsError, OSError) as exc:
        print({"error": str(exc), "hint": "The save file was left untouched."})
        raise typer.Exit(code=1)
    return session, jobs


def _format_pit(ledger: CellLedger) -> dict:
    return {"cell": ledger.cell.key, "coin_count": len(ledger), "coins": ledger.coin_strings()}


def _format_coin(coin: Coin | None) -> str | None:
    return None if coin is None else str(coin)


def _status(session: GameSession) -> dict:
    position = session.player.position
    return {
        "position": [position.lat, position.lng],
        "cell": session.board.cell_for_point(position).key,
        "coins": session.player.coin_strings(),
        "nearby_pits": len(session.nearby_pits()),
    }


@app.command()
def start() -> None:
    """Show runtime configuration."""
    print(
        {
            "app_name": settings.app_name,
            "tile_degrees": settings.tile_degrees,
            "neighborhood_size": settings.neighborhood_size,
            "pit_spawn_probability": settings.pit_spawn_probability,
            "start_position": [settings.start_lat, settings.start_lng],
            "save_path": settings.save_path,
        }
    )


@app.command()
def status(save_file: str = SaveFileOption) -> None:
    """Show the player's position, held coins and the number of pits in view."""
    session, _ = _run_events(save_file, [])
    print(_status(session))


@app.command()
def pits(save_file: str = SaveFileOption) -> None:
    """List pits around the player and the coins inside them."""
    session, _ = _run_events(save_file, [])
    print({"pits": [_format_pit(ledger) for ledger in session.nearby_pits()]})


@app.command()
def cells(save_file: str = SaveFileOption) -> None:
    """List every grid cell the board has registered this run."""
    session, _ = _run_events(save_file, [])
    print({"known_cells": [cell.key for cell in session.board.known_cells()]})


@app.command()
def move(
    direction: Direction = typer.Argument(..., help="north/south/east/west"),
    steps: int = typer.Option(1, min=1, help="How many tiles to move"),
    save_file: str = SaveFileOption,
) -> None:
    """Move the player by whole tiles."""
    session, _ = _run_events(save_file, [(EventKind.STEP, {"direction": direction})] * steps)
    print(_status(session))


@app.command()
def goto(
    lat: float = typer.Option(..., help="Latitude"),
    lng: float = typer.Option(..., help="Longitude"),
    save_file: str = SaveFileOption,
) -> None:
    """Move the player to a reported position, as a location sensor would."""
    session, _ = _run_events(save_file, [(EventKind.POSITION, {"point": Point(lat=lat, lng=lng)})])
    print(_status(session))


@app.command()
def collect(
    x: int = typer.Option(..., help="Pit cell x"),
    y: int = typer.Option(..., help="Pit cell y"),
    index: int = typer.Option(0, help="Position of the coin inside the pit"),
    save_file: str = SaveFileOption,
) -> None:
    """Take a coin from a pit."""
    session, jobs = _run_events(save_file, [(EventKind.COLLECT, {"x": x, "y": y, "index": index})])
    coin = jobs[0].result
    print({"collected": _format_coin(coin), "coins": session.player.coin_strings()})
    if coin is None:
        raise typer.Exit(code=1)


@app.command()
def deposit(
    x: int = typer.Option(..., help="Pit cell x"),
    y: int = typer.Option(..., help="Pit cell y"),
    save_file: str = SaveFileOption,
) -> None:
    """Give back the most recently collected coin to a pit."""
    session, jobs = _run_events(save_file, [(EventKind.DEPOSIT, {"x": x, "y": y})])
    coin = jobs[0].result
    print({"deposited": _format_coin(coin), "coins": session.player.coin_strings()})
    if coin is None:
        raise typer.Exit(code=1)


@app.command()
def reset(save_file: str = SaveFileOption) -> None:
    """Forget all pits and held coins and return to the start position."""
    session, _ = _run_events(save_file, [(EventKind.RESET, {})])
    print(_status(session))


if __name__ == "__main__":
    app()
