"""Per-cell coin ledgers and the textual coin format."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from typing import Callable, Protocol

from geocoins.board import Board
from geocoins.errors import CorruptCoinError
from geocoins.models import Cell, Coin

COIN_PATTERN = re.compile(r"^(-?[0-9]+):(-?[0-9]+)#([0-9]+)$")
CELL_KEY_PATTERN = re.compile(r"^(-?[0-9]+):(-?[0-9]+)$")


def encode_coin(coin: Coin) -> str:
    return str(coin)


def decode_coin(text: str, board: Board) -> Coin:
    """Parse ``x:y#serial`` into a coin whose cell is canonical on ``board``."""
    match = COIN_PATTERN.match(text)
    if match is None:
        raise CorruptCoinError(f"Corrupt persisted coin: {text!r}")
    x, y, serial = (int(group) for group in match.groups())
    coin = Coin(cell=board.canonical_cell_for((x, y)), serial=serial)
    if str(coin) != text:
        raise CorruptCoinError(f"Non-canonical persisted coin: {text!r}")
    return coin


class LedgerListener(Protocol):
    """Receives a ledger after each of its mutations."""

    def __call__(self, ledger: CellLedger) -> None:
        ...


class CellLedger:
    """Ordered coins currently resident at one cell."""

    def __init__(self, cell: Cell, board: Board, *, logger: logging.Logger | None = None) -> None:
        self.cell = cell
        self._board = board
        self._logger = logger or logging.getLogger("geocoins.ledger")
        self._coins: list[Coin] = []
        self._serialized = ""
        self._next_serial = 0
        self._listeners: list[LedgerListener] = []

    @classmethod
    def from_serialized(cls, board: Board, text: str, cell: Cell | None = None) -> CellLedger:
        """Build a ledger from persisted text, inferring the cell from its first coin if needed."""
        tokens = text.split()
        if cell is None:
            if not tokens:
                raise CorruptCoinError("Cannot infer the owning cell of an empty ledger")
            cell = decode_coin(tokens[0], board).cell
        return cls(cell, board).deserialize(text)

    def __len__(self) -> int:
        return len(self._coins)

    def __iter__(self) -> Iterator[Coin]:
        return iter(self._coins)

    def __repr__(self) -> str:
        return f"CellLedger(cell={self.cell.key}, coins={len(self._coins)})"

    @property
    def coins(self) -> tuple[Coin, ...]:
        return tuple(self._coins)

    @property
    def next_serial(self) -> int:
        return self._next_serial

    def reserve_serial(self, serial: int) -> None:
        """Make sure ``serial`` is never minted again by this ledger."""
        if serial >= self._next_serial:
            self._next_serial = serial + 1

    def add_coin(self, coin: Coin | None = None) -> Coin:
        if coin is None:
            coin = Coin(cell=self.cell, serial=self._next_serial)
        if coin.cell is self.cell:
            self.reserve_serial(coin.serial)
        self._coins.append(coin)
        self._changed("coin_added", coin)
        return coin

    def remove_coin(self, index: int = 0) -> Coin | None:
        if index < 0 or index >= len(self._coins):
            return None
        coin = self._coins.pop(index)
        self._changed("coin_removed", coin)
        return coin

    def coin_strings(self) -> list[str]:
        return [encode_coin(coin) for coin in self._coins]

    def serialize(self) -> str:
        return self._serialized

    def deserialize(self, text: str | None) -> CellLedger:
        if not text or not text.strip():
            return self

        coins = [decode_coin(token, self._board) for token in text.split()]
        self._coins = coins
        for coin in coins:
            if coin.cell is self.cell:
                self.reserve_serial(coin.serial)
        self._serialized = " ".join(self.coin_strings())
        self._notify()
        return self

    def subscribe(self, listener: LedgerListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it again."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _changed(self, event: str, coin: Coin) -> None:
        self._serialized = " ".join(self.coin_strings())
        self._logger.debug(event, extra={"cell": self.cell.key, "coin": str(coin), "coin_count": len(self._coins)})
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
