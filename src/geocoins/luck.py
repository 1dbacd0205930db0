"""Deterministic, reproducible luck values used for world generation.

Not a secure random source: the same parts always hash to the same value so
that a world can be regenerated identically on every run.
"""

from __future__ import annotations

import hashlib
import math
from typing import Callable

from geocoins.models import Cell

INITIAL_VALUE_SALT = "initialValue"
MAX_INITIAL_COINS = 100

LuckFn = Callable[..., float]


def _format_part(part: object) -> str:
    if isinstance(part, float):
        return repr(part)
    return str(part)


def luck(*parts: object) -> float:
    """Hash ``parts`` into a float in ``[0, 1)``."""
    key = ",".join(_format_part(part) for part in parts)
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], "big") / 2**32


class PitGenerator:
    """Decides which cells host pits and how many coins a new pit starts with."""

    def __init__(self, spawn_probability: float, *, luck_fn: LuckFn = luck) -> None:
        self.spawn_probability = spawn_probability
        self._luck = luck_fn

    def has_pit(self, cell: Cell) -> bool:
        return self._luck(cell.x, cell.y) < self.spawn_probability

    def initial_coin_count(self, cell: Cell) -> int:
        return math.floor(self._luck(cell.x, cell.y, INITIAL_VALUE_SALT) * MAX_INITIAL_COINS)
