"""Snapshot and restore of board, ledgers and player state.

The whole game state is written once, when a session ends, as one JSON
document::

    {
      "cells": {"369995:-1220533": "369995:-1220533#0 369995:-1220533#1"},
      "playerCoins": ["369990:-1220530#4"],
      "playerPosition": [36.9995, -122.0533],
      "playerPath": [[36.9996, -122.0533]]
    }

Writes overwrite in place. A missing document means first run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from geocoins.board import Board
from geocoins.errors import CorruptSnapshotError
from geocoins.ledger import CELL_KEY_PATTERN, CellLedger, decode_coin
from geocoins.models import Point
from geocoins.player import PlayerState


class Snapshot(BaseModel):
    """Durable representation of one session's end state."""

    model_config = ConfigDict(populate_by_name=True)

    cells: dict[str, str] = Field(default_factory=dict)
    player_coins: list[str] = Field(default_factory=list, alias="playerCoins")
    player_position: tuple[float, float] | None = Field(default=None, alias="playerPosition")
    player_path: list[tuple[float, float]] = Field(default_factory=list, alias="playerPath")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)

    @classmethod
    def from_json(cls, text: str) -> Snapshot:
        try:
            return cls.model_validate_json(text)
        except ValidationError as exc:
            raise CorruptSnapshotError(f"Corrupt persisted snapshot: {exc}") from exc


class SnapshotStore(Protocol):
    """Durable key-value slot holding the serialized snapshot."""

    def read(self) -> str | None:
        """Return the stored document, or ``None`` if nothing was saved yet."""

    def write(self, text: str) -> None:
        """Replace the stored document."""


class InMemorySnapshotStore:
    """Store used by tests and throwaway sessions."""

    def __init__(self, text: str | None = None) -> None:
        self.text = text
        self.writes = 0

    def read(self) -> str | None:
        return self.text

    def write(self, text: str) -> None:
        self.text = text
        self.writes += 1


class JsonFileSnapshotStore:
    """Single JSON file on disk."""

    def __init__(self, file_path: str | Path) -> None:
        self._path = Path(file_path)

    @property
    def path(self) -> Path:
        return self._path

    def read(self) -> str | None:
        if not self._path.exists():
            return None
        text = self._path.read_text(encoding="utf-8")
        return text if text.strip() else None

    def write(self, text: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(text, encoding="utf-8")


@dataclass(slots=True)
class RestoredState:
    board: Board
    ledgers: dict[str, CellLedger] = field(default_factory=dict)
    player: PlayerState | None = None


class PersistenceCoordinator:
    """Builds snapshots from live state and rebuilds live state from snapshots."""

    def __init__(
        self,
        *,
        tile_width: float,
        tile_visibility_radius: int,
        start_position: Point,
        logger: logging.Logger | None = None,
    ) -> None:
        self._tile_width = tile_width
        self._tile_visibility_radius = tile_visibility_radius
        self._start_position = start_position
        self._logger = logger or logging.getLogger("geocoins.persistence")

    def snapshot(self, ledgers: dict[str, CellLedger], player: PlayerState) -> Snapshot:
        return Snapshot(
            cells={ledger.cell.key: ledger.serialize() for ledger in ledgers.values()},
            player_coins=player.coin_strings(),
            player_position=(player.position.lat, player.position.lng),
            player_path=[(point.lat, point.lng) for point in player.path],
        )

    def restore(self, snapshot: Snapshot | None) -> RestoredState:
        board = Board(self._tile_width, self._tile_visibility_radius)
        if snapshot is None:
            self._logger.info("snapshot_missing", extra={"start_position": str(self._start_position)})
            return RestoredState(board=board, player=PlayerState(position=self._start_position))

        ledgers: dict[str, CellLedger] = {}
        for key, text in snapshot.cells.items():
            cell = board.canonical_cell_for(self._parse_cell_key(key))
            if cell.key != key:
                raise CorruptSnapshotError(f"Non-canonical persisted cell key: {key!r}")
            ledgers[cell.key] = CellLedger(cell, board).deserialize(text)

        player = PlayerState(
            position=Point(*snapshot.player_position) if snapshot.player_position else self._start_position,
            coins=[decode_coin(token, board) for token in snapshot.player_coins],
            path=[Point(*pair) for pair in snapshot.player_path],
        )

        self._reserve_serials(ledgers, player)
        self._logger.info(
            "snapshot_restored",
            extra={"cell_count": len(ledgers), "player_coin_count": len(player.coins)},
        )
        return RestoredState(board=board, ledgers=ledgers, player=player)

    def load(self, store: SnapshotStore) -> RestoredState:
        text = store.read()
        return self.restore(Snapshot.from_json(text) if text else None)

    def save(self, store: SnapshotStore, ledgers: dict[str, CellLedger], player: PlayerState) -> Snapshot:
        snapshot = self.snapshot(ledgers, player)
        store.write(snapshot.to_json())
        self._logger.info(
            "snapshot_written",
            extra={"cell_count": len(snapshot.cells), "player_coin_count": len(snapshot.player_coins)},
        )
        return snapshot

    @staticmethod
    def _parse_cell_key(key: str) -> tuple[int, int]:
        match = CELL_KEY_PATTERN.match(key)
        if match is None:
            raise CorruptSnapshotError(f"Corrupt persisted cell key: {key!r}")
        return int(match.group(1)), int(match.group(2))

    @staticmethod
    def _reserve_serials(ledgers: dict[str, CellLedger], player: PlayerState) -> None:
        # Coins minted by a cell may sit in other ledgers or in the inventory.
        coins = [coin for ledger in ledgers.values() for coin in ledger]
        coins.extend(player.coins)
        for coin in coins:
            origin = ledgers.get(coin.cell.key)
            if origin is not None:
                origin.reserve_serial(coin.serial)
