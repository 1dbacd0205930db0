from __future__ import annotations

from dataclasses import dataclass, field

from geocoins.models import Coin, Point


@dataclass(slots=True)
class PlayerState:
    """Player position, held coins and trail.

    ``coins`` is a stack: :meth:`give_back` always returns the coin picked up
    most recently.
    """

    position: Point
    coins: list[Coin] = field(default_factory=list)
    path: list[Point] = field(default_factory=list)

    def move_to(self, point: Point) -> None:
        self.position = point
        self.path.append(point)

    def pick_up(self, coin: Coin) -> None:
        self.coins.append(coin)

    def give_back(self) -> Coin | None:
        if not self.coins:
            return None
        return self.coins.pop()

    def coin_strings(self) -> list[str]:
        return [str(coin) for coin in self.coins]
