from __future__ import annotations

from geocoins.luck import INITIAL_VALUE_SALT, PitGenerator, luck
from geocoins.models import Cell


def test_luck_is_deterministic_and_in_range() -> None:
    values = [luck(x, y, INITIAL_VALUE_SALT) for x in range(-5, 5) for y in range(-5, 5)]

    assert values == [luck(x, y, INITIAL_VALUE_SALT) for x in range(-5, 5) for y in range(-5, 5)]
    assert all(0.0 <= value < 1.0 for value in values)


def test_salt_separates_spawn_and_initial_value() -> None:
    assert luck(5, 12) != luck(5, 12, INITIAL_VALUE_SALT)


def test_generator_uses_spawn_probability() -> None:
    cell = Cell(5, 12)
    value = luck(5, 12)

    assert PitGenerator(spawn_probability=value + 1e-9).has_pit(cell) is True
    assert PitGenerator(spawn_probability=value).has_pit(cell) is False
    assert PitGenerator(spawn_probability=0.0).has_pit(cell) is False


def test_initial_coin_count_floors_scaled_luck() -> None:
    def fake_luck(*parts: object) -> float:
        assert parts == (5, 12, "initialValue")
        return 0.37

    assert PitGenerator(0.1, luck_fn=fake_luck).initial_coin_count(Cell(5, 12)) == 37


def test_initial_coin_count_is_reproducible() -> None:
    generator = PitGenerator(0.1)
    counts = [generator.initial_coin_count(Cell(x, 0)) for x in range(20)]

    assert counts == [PitGenerator(0.5).initial_coin_count(Cell(x, 0)) for x in range(20)]
    assert all(0 <= count < 100 for count in counts)
