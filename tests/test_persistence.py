from __future__ import annotations

import json
from pathlib import Path

import pytest

from geocoins.board import Board
from geocoins.errors import CorruptCoinError, CorruptSnapshotError
from geocoins.ledger import CellLedger
from geocoins.models import Point
from geocoins.persistence import (
    InMemorySnapshotStore,
    JsonFileSnapshotStore,
    PersistenceCoordinator,
    Snapshot,
)
from geocoins.player import PlayerState

START = Point(lat=36.9995, lng=-122.0533)


def _coordinator() -> PersistenceCoordinator:
    return PersistenceCoordinator(tile_width=1e-4, tile_visibility_radius=8, start_position=START)


def test_missing_snapshot_restores_defaults() -> None:
    restored = _coordinator().restore(None)

    assert len(restored.board) == 0
    assert restored.ledgers == {}
    assert restored.player is not None
    assert restored.player.position == START
    assert restored.player.coins == []
    assert restored.player.path == []


def test_empty_store_and_empty_record_restore_defaults(tmp_path: Path) -> None:
    coordinator = _coordinator()

    from_file = coordinator.load(JsonFileSnapshotStore(tmp_path / "absent.json"))
    from_record = coordinator.load(InMemorySnapshotStore("{}"))

    for restored in (from_file, from_record):
        assert restored.ledgers == {}
        assert restored.player.position == START
        assert restored.player.coins == []


def test_snapshot_uses_documented_field_names() -> None:
    board = Board(1e-4, 8)
    ledger = CellLedger(board.canonical_cell_for((3, 4)), board)
    ledger.add_coin()
    ledger.add_coin()
    player = PlayerState(position=Point(1.0, 2.0))
    player.pick_up(ledger.remove_coin())

    payload = json.loads(_coordinator().snapshot({ledger.cell.key: ledger}, player).to_json())

    assert payload == {
        "cells": {"3:4": "3:4#1"},
        "playerCoins": ["3:4#0"],
        "playerPosition": [1.0, 2.0],
        "playerPath": [],
    }


def test_restore_rebuilds_canonical_cells_and_serial_counters() -> None:
    snapshot = Snapshot.from_json(
        json.dumps(
            {
                "cells": {"3:4": "3:4#1 8:8#0", "8:8": ""},
                "playerCoins": ["3:4#5", "8:8#2"],
                "playerPosition": [0.5, 0.25],
            }
        )
    )

    restored = _coordinator().restore(snapshot)

    first = restored.ledgers["3:4"]
    empty = restored.ledgers["8:8"]
    assert first.cell is restored.board.canonical_cell_for((3, 4))
    assert list(first)[1].cell is empty.cell
    assert restored.player.coins[0].cell is first.cell
    assert first.next_serial == 6
    assert empty.next_serial == 3
    assert len(empty) == 0
    assert restored.player.position == Point(0.5, 0.25)


def test_save_and_load_round_trip_through_file(tmp_path: Path) -> None:
    coordinator = _coordinator()
    store = JsonFileSnapshotStore(tmp_path / "saves" / "game.json")
    board = Board(1e-4, 8)
    ledger = CellLedger(board.canonical_cell_for((-1, 2)), board)
    for _ in range(3):
        ledger.add_coin()
    player = PlayerState(position=START)
    player.move_to(Point(37.0, -122.0))
    player.pick_up(ledger.remove_coin(1))

    coordinator.save(store, {ledger.cell.key: ledger}, player)
    restored = coordinator.load(store)

    assert restored.ledgers["-1:2"].coin_strings() == ["-1:2#0", "-1:2#2"]
    assert restored.player.coin_strings() == ["-1:2#1"]
    assert restored.player.path == [Point(37.0, -122.0)]
    assert restored.player.position == Point(37.0, -122.0)
    assert restored.ledgers["-1:2"].add_coin().serial == 3


def test_invalid_json_is_a_corrupt_snapshot() -> None:
    with pytest.raises(CorruptSnapshotError):
        _coordinator().load(InMemorySnapshotStore("{not json"))


def test_bad_cell_key_is_a_corrupt_snapshot() -> None:
    with pytest.raises(CorruptSnapshotError):
        _coordinator().restore(Snapshot(cells={"three:four": ""}))


def test_bad_coin_text_is_a_corrupt_coin() -> None:
    with pytest.raises(CorruptCoinError):
        _coordinator().restore(Snapshot(cells={"1:1": "1:1#0 garbage"}))


@pytest.mark.parametrize("key", ["01:2", "1:+2", "-0:2", "\u0661:2"])
def test_non_canonical_cell_key_is_a_corrupt_snapshot(key: str) -> None:
    with pytest.raises(CorruptSnapshotError):
        _coordinator().restore(Snapshot(cells={"1:2": "1:2#0", key: ""}))
