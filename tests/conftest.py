from __future__ import annotations

import pytest

from geocoins.luck import PitGenerator
from geocoins.models import Point
from geocoins.persistence import InMemorySnapshotStore, PersistenceCoordinator
from geocoins.session import GameSession

START = Point(lat=0.0, lng=0.0)


def pits_at(*cells: tuple[int, int], initial_value: float = 0.05) -> PitGenerator:
    """Generator that places pits exactly at ``cells`` with the same starting value."""
    wanted = set(cells)

    def fake_luck(*parts: object) -> float:
        if len(parts) == 3:
            return initial_value
        return 0.0 if (parts[0], parts[1]) in wanted else 0.99

    return PitGenerator(spawn_probability=0.5, luck_fn=fake_luck)


def make_session(store: InMemorySnapshotStore, generator: PitGenerator | None = None) -> GameSession:
    return GameSession(
        store=store,
        persistence=PersistenceCoordinator(tile_width=1.0, tile_visibility_radius=1, start_position=START),
        generator=generator or pits_at((0, 0), (1, 1)),
        tile_width=1.0,
        tile_visibility_radius=1,
        start_position=START,
    )


@pytest.fixture
def store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()
