"""Session orchestration: movement, pit discovery, coin transfers and the final save."""

from __future__ import annotations

import logging
from enum import Enum

from geocoins.board import Board
from geocoins.ledger import CellLedger
from geocoins.luck import PitGenerator
from geocoins.models import Cell, Coin, Point
from geocoins.persistence import PersistenceCoordinator, Snapshot, SnapshotStore
from geocoins.player import PlayerState
from geocoins.telemetry.logging import NullTelemetry, Telemetry


class Direction(str, Enum):
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"


_DIRECTION_OFFSETS: dict[Direction, tuple[int, int]] = {
    Direction.NORTH: (1, 0),
    Direction.SOUTH: (-1, 0),
    Direction.EAST: (0, 1),
    Direction.WEST: (0, -1),
}


class GameSession:
    """Owns the board, the ledgers of discovered pits and the player for one run.

    All mutating methods are expected to be called one at a time; see
    :class:`geocoins.event_runtime.EventRuntime` for the serialized driver.
    """

    def __init__(
        self,
        *,
        store: SnapshotStore,
        persistence: PersistenceCoordinator,
        generator: PitGenerator,
        tile_width: float,
        tile_visibility_radius: int,
        start_position: Point,
        telemetry: Telemetry | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._persistence = persistence
        self._generator = generator
        self._tile_width = tile_width
        self._tile_visibility_radius = tile_visibility_radius
        self._start_position = start_position
        self._telemetry = telemetry or NullTelemetry()
        self._logger = logger or logging.getLogger("geocoins.session")

        self.board = Board(tile_width, tile_visibility_radius)
        self.ledgers: dict[str, CellLedger] = {}
        self.player = PlayerState(position=start_position)
        self._started = False
        self._saved = False

    @property
    def started(self) -> bool:
        return self._started

    def start(self) -> list[CellLedger]:
        """Restore the persisted state and reveal pits around the player."""
        restored = self._persistence.load(self._store)
        self.board = restored.board
        self.ledgers = restored.ledgers
        self.player = restored.player or PlayerState(position=self._start_position)
        self._started = True
        self._saved = False
        self._logger.info(
            "session_started",
            extra={"known_pits": len(self.ledgers), "player_coin_count": len(self.player.coins)},
        )
        return self.reveal_neighborhood()

    def ledger_for(self, cell: Cell) -> CellLedger | None:
        return self.ledgers.get(cell.key)

    def reveal_neighborhood(self) -> list[CellLedger]:
        """Generate pits for neighbouring cells seen for the first time; return the new ledgers."""
        created: list[CellLedger] = []
        for cell in self.board.neighbors_of(self.player.position):
            if cell.key in self.ledgers or not self._generator.has_pit(cell):
                continue
            ledger = CellLedger(cell, self.board)
            for _ in range(self._generator.initial_coin_count(cell)):
                ledger.add_coin()
            self.ledgers[cell.key] = ledger
            created.append(ledger)

        if created:
            self._logger.debug("pits_generated", extra={"count": len(created)})
        return created

    def nearby_pits(self) -> list[CellLedger]:
        cells = self.board.neighbors_of(self.player.position)
        return [self.ledgers[cell.key] for cell in cells if cell.key in self.ledgers]

    def move_to(self, point: Point) -> list[CellLedger]:
        self.player.move_to(point)
        self._telemetry.emit("player_moved", {"lat": point.lat, "lng": point.lng})
        return self.reveal_neighborhood()

    def on_position(self, point: Point) -> list[CellLedger]:
        """Handle a position report from a location sensor."""
        return self.move_to(point)

    def step(self, direction: Direction | str) -> list[CellLedger]:
        d_lat, d_lng = _DIRECTION_OFFSETS[Direction(direction)]
        current = self.player.position
        return self.move_to(
            Point(
                lat=current.lat + d_lat * self._tile_width,
                lng=current.lng + d_lng * self._tile_width,
            )
        )

    def collect(self, cell: Cell, index: int = 0) -> Coin | None:
        ledger = self.ledger_for(cell)
        if ledger is None:
            return None
        coin = ledger.remove_coin(index)
        if coin is not None:
            self.player.pick_up(coin)
            self._telemetry.emit("coin_collected", {"cell": cell.key, "coin": str(coin)})
        return coin

    def deposit(self, cell: Cell) -> Coin | None:
        ledger = self.ledger_for(cell)
        if ledger is None:
            return None
        coin = self.player.give_back()
        if coin is not None:
            ledger.add_coin(coin)
            self._telemetry.emit("coin_deposited", {"cell": cell.key, "coin": str(coin)})
        return coin

    def reset(self) -> list[CellLedger]:
        """Forget every discovered pit and return the player to the start position."""
        self.board = Board(self._tile_width, self._tile_visibility_radius)
        self.ledgers = {}
        self.player = PlayerState(position=self._start_position)
        self._telemetry.emit("session_reset", {})
        return self.reveal_neighborhood()

    def shutdown(self) -> Snapshot | None:
        """Write the snapshot once; later calls, or calls before start(), do nothing."""
        if not self._started or self._saved:
            return None
        snapshot = self._persistence.save(self._store, self.ledgers, self.player)
        self._saved = True
        self._telemetry.emit("session_saved", {"cells": len(snapshot.cells)})
        return snapshot
