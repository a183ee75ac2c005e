"""Shared fixtures: a tiny hand-drawn room so engine tests stay exact"""

import pytest

from game.maze import MazeChaseGame, layout_from_rows
from game.maze.utils import grid_to_pixel

# Open 3x5 room, exit on its right end, plus a sealed pocket at (5, 1)
ROOM = (
    "#######",
    "#.....#",
    "#.....#",
    "#.....#",
    "#######",
    "#.#####",
    "#######",
)
ROOM_ENTRANCE = (1, 1)
ROOM_EXIT = (1, 5)
POCKET = (5, 1)


def room_factory(index):
    return layout_from_rows(ROOM, ROOM_ENTRANCE, ROOM_EXIT)


def place(agent, cell):
    agent.grid_pos = cell
    agent.pixel_pos = grid_to_pixel(cell)


def park_ally(game, cell=POCKET):
    """Shut the companion away so it cannot interfere"""
    ally = game.level.ally
    ally.start = cell
    place(ally, cell)
    ally.recent_cells.clear()


@pytest.fixture
def make_game():
    def _make(**overrides):
        kwargs = dict(
            maze_factory=room_factory,
            base_enemies=0,
            max_extra_enemies=0,
            ally_noise=0.0,
            seed=0,
        )
        kwargs.update(overrides)
        game = MazeChaseGame(**kwargs)
        park_ally(game)
        return game
    return _make


@pytest.fixture
def game(make_game):
    """Room game with no enemies and nothing to pick up"""
    g = make_game()
    g.level.collectibles.clear()
    g.level.power_ups.clear()
    return g
