from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Point:
    lat: float
    lng: float


@dataclass(frozen=True, slots=True)
class Cell:
    x: int
    y: int

    @property
    def key(self) -> str:
        return f"{self.x}:{self.y}"


@dataclass(frozen=True, slots=True)
class Coin:
    """A collectible token; ``cell`` is where it was minted, not where it is now."""

    cell: Cell
    serial: int

    def __str__(self) -> str:
        return f"{self.cell.x}:{self.cell.y}#{self.serial}"


