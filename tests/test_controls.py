import pytest

from game.maze import Direction
from game.maze.controls import direction_for_key


@pytest.mark.parametrize("key,expected", [
    ("ArrowUp", Direction.UP),
    ("ArrowDown", Direction.DOWN),
    ("ArrowLeft", Direction.LEFT),
    ("ArrowRight", Direction.RIGHT),
    ("w", Direction.UP),
    ("S", Direction.DOWN),
    ("a", Direction.LEFT),
    ("D", Direction.RIGHT),
])
def test_bound_keys(key, expected):
    assert direction_for_key(key) is expected


@pytest.mark.parametrize("key", ["x", "Enter", "arrowup", " ", ""])
def test_unbound_keys_are_ignored(key):
    assert direction_for_key(key) is None
