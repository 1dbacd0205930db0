"""Grid quantization and the canonical cell registry."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator

from geocoins.models import Cell, Point


def quantize(point: Point, step: float) -> tuple[int, int]:
    """Map a continuous point onto integer grid coordinates.

    Each axis is divided by ``step`` and rounded half up, so ``0.5`` becomes
    ``1`` and ``-0.5`` becomes ``0``. Cell identity depends on this rule.
    """
    return _round_half_up(point.lat / step), _round_half_up(point.lng / step)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class Board:
    """Owns exactly one :class:`Cell` instance per coordinate pair for its lifetime."""

    def __init__(
        self,
        tile_width: float,
        tile_visibility_radius: int,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.tile_width = tile_width
        self.tile_visibility_radius = tile_visibility_radius
        self._logger = logger or logging.getLogger("geocoins.board")
        self._known_cells: dict[tuple[int, int], Cell] = {}

    def __len__(self) -> int:
        return len(self._known_cells)

    def __contains__(self, coords: tuple[int, int]) -> bool:
        return coords in self._known_cells

    def canonical_cell_for(self, coords: tuple[int, int]) -> Cell:
        key = (int(coords[0]), int(coords[1]))
        cell = self._known_cells.get(key)
        if cell is None:
            cell = Cell(x=key[0], y=key[1])
            self._known_cells[key] = cell
            self._logger.debug("cell_registered", extra={"cell": cell.key})
        return cell

    def cell_for_point(self, point: Point) -> Cell:
        return self.canonical_cell_for(quantize(point, self.tile_width))

    def bounds_for_cell(self, cell: Cell) -> tuple[Point, Point]:
        """Return the (south-west, north-east) corners of the tile centred on ``cell``."""
        half = self.tile_width / 2
        center_lat = cell.x * self.tile_width
        center_lng = cell.y * self.tile_width
        return (
            Point(lat=center_lat - half, lng=center_lng - half),
            Point(lat=center_lat + half, lng=center_lng + half),
        )

    def neighbors_of(self, point: Point, radius: int | None = None) -> list[Cell]:
        """Cells within ``radius`` tiles of ``point``'s cell, centre included.

        Ordered row-major by (horizontal offset, vertical offset).
        """
        if radius is None:
            radius = self.tile_visibility_radius
        origin = self.cell_for_point(point)
        cells: list[Cell] = []
        for h in range(-radius, radius + 1):
            for v in range(-radius, radius + 1):
                cells.append(self.canonical_cell_for((origin.x + h, origin.y + v)))
        return cells

    def known_cells(self) -> Iterator[Cell]:
        return iter(self._known_cells.values())
