"""
Maze generation from hand-authored templates
---------------------------------------------
- '#' is a wall, any other character is open floor
- Template chosen by level index, exit side rotates right/up/down/left
- Carving order: template -> corridor clear -> border walls -> entrance/exit
  (the border pass would otherwise seal the exit)
- No randomness: the same level index always yields the same maze
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Set, Tuple

import numpy as np

from .entities import Direction, GridPos
from .utils import flood_fill, in_bounds, is_open

MAZE_WIDTH = 21
MAZE_HEIGHT = 19

MAZE_TEMPLATES: Tuple[Tuple[str, ...], ...] = (
    (
        "#####################",
        "#...................#",
        "#.###.#######.###.#.#",
        "#...#.........#...#.#",
        "#.#.#.###.###.#.###.#",
        "#.#...#.....#...#...#",
        "#.#####.###.#####.###",
        "#.......#.#.......#.#",
        "#.#####.#.#.#####.#.#",
        "#.#...#...#.#...#...#",
        "#.#.#.#####.#.#.###.#",
        "#...#.......#.#.....#",
        "#####.#####.#.#######",
        "#.....#...#.#.......#",
        "#.#####.#.#.#######.#",
        "#.#.....#...#.......#",
        "#.#.#######.#.#####.#",
        "#...........#.......#",
        "#####################",
    ),
    (
        "#####################",
        "#...................#",
        "#.#####.###.#####.#.#",
        "#.....#.#.#.#.....#.#",
        "#####.#.#.#.#.#####.#",
        "#...#...#...#...#...#",
        "#.#.#########.#.#.###",
        "#.#...........#.#...#",
        "#.###########.#.###.#",
        "#.............#.....#",
        "#.#########.#######.#",
        "#.#.......#.#.......#",
        "#.#.#####.#.#.#####.#",
        "#...#...#...#.#...#.#",
        "#####.#.#####.#.#.#.#",
        "#.....#.......#.#...#",
        "#.###########.#.###.#",
        "#.............#.....#",
        "#####################",
    ),
    (
        "#####################",
        "#...................#",
        "#.###.#.#####.#.###.#",
        "#.#...#.......#...#.#",
        "#.#.###.#####.###.#.#",
        "#.#.#.........#.#.#.#",
        "#.#.#.#######.#.#.#.#",
        "#...#.#.....#.#...#.#",
        "###.#.#.###.#.#.###.#",
        "#...#...#.#...#.....#",
        "#.#######.#######.###",
        "#.#.............#...#",
        "#.#.###########.###.#",
        "#...#.........#.....#",
        "#####.#######.#####.#",
        "#.....#.....#.......#",
        "#.#####.###.#######.#",
        "#.......#...........#",
        "#####################",
    ),
    (
        "#####################",
        "#...................#",
        "#.#######.#.#######.#",
        "#.......#.#.#.......#",
        "#######.#.#.#.#######",
        "#.......#.#.#.......#",
        "#.#######.#.#######.#",
        "#.#.......#.......#.#",
        "#.#.#############.#.#",
        "#...#...........#...#",
        "#.###.#########.###.#",
        "#.#...#.......#...#.#",
        "#.#.###.#####.###.#.#",
        "#.#.#...#...#...#.#.#",
        "#.#.#.###.#.###.#.#.#",
        "#...#.....#.....#...#",
        "#.#####.#####.#####.#",
        "#.......#.#.........#",
        "#####################",
    ),
)

EXIT_SIDES = (Direction.RIGHT, Direction.UP, Direction.DOWN, Direction.LEFT)


@dataclass(frozen=True, eq=False)
class MazeLayout:
    """A generated maze: wall grid (1 = wall, 0 = open) plus entrance/exit cells"""
    grid: np.ndarray
    entrance: GridPos
    exit: GridPos
    exit_side: Direction = Direction.NONE

    @property
    def height(self) -> int:
        return self.grid.shape[0]

    @property
    def width(self) -> int:
        return self.grid.shape[1]

    @property
    def center(self) -> GridPos:
        return (self.height // 2, self.width // 2)

    def is_wall(self, cell: GridPos) -> bool:
        return not is_open(self.grid, cell)

    def to_rows(self) -> List[str]:
        """ASCII form, handy for debugging and tests"""
        rows = []
        for r in range(self.height):
            chars = []
            for c in range(self.width):
                if (r, c) == self.exit:
                    chars.append("E")
                elif (r, c) == self.entrance:
                    chars.append("S")
                else:
                    chars.append("#" if self.grid[r, c] else ".")
            rows.append("".join(chars))
        return rows


def parse_template(rows: Sequence[str]) -> np.ndarray:
    if not rows:
        raise ValueError("Maze template has no rows")
    width = len(rows[0])
    if any(len(row) != width for row in rows):
        raise ValueError("Maze template rows must all have the same width")
    return np.array([[1 if ch == "#" else 0 for ch in row] for row in rows], dtype=np.uint8)


def layout_from_rows(
    rows: Sequence[str],
    entrance: GridPos,
    exit_cell: GridPos,
    exit_side: Direction = Direction.NONE,
) -> MazeLayout:
    """Build a layout from a hand-drawn grid without any carving"""
    grid = parse_template(rows)
    for name, cell in (("entrance", entrance), ("exit", exit_cell)):
        if not is_open(grid, cell):
            raise ValueError(f"{name} {cell} is outside the maze or on a wall")
    grid.flags.writeable = False
    return MazeLayout(grid=grid, entrance=entrance, exit=exit_cell, exit_side=exit_side)


def _entrance_and_exit(side: Direction, height: int, width: int) -> Tuple[GridPos, GridPos]:
    mid_r, mid_c = height // 2, width // 2
    if side is Direction.RIGHT:
        return (mid_r, 1), (mid_r, width - 1)
    if side is Direction.LEFT:
        return (mid_r, width - 2), (mid_r, 0)
    if side is Direction.UP:
        return (height - 2, mid_c), (0, mid_c)
    return (1, mid_c), (height - 1, mid_c)


def generate_maze(level_index: int) -> MazeLayout:
    """Deterministic maze for a level index (0-based)"""
    template = MAZE_TEMPLATES[level_index % len(MAZE_TEMPLATES)]
    side = EXIT_SIDES[level_index % len(EXIT_SIDES)]

    grid = parse_template(template)
    height, width = grid.shape
    entrance, exit_cell = _entrance_and_exit(side, height, width)

    # 1. Corridor clear: 3x3 around the entrance (interior only) and the exit
    er, ec = entrance
    xr, xc = exit_cell
    for dr in (-1, 0, 1):
        for dc in (-1, 0, 1):
            if 0 < er + dr < height - 1 and 0 < ec + dc < width - 1:
                grid[er + dr, ec + dc] = 0
            if in_bounds(grid, (xr + dr, xc + dc)):
                grid[xr + dr, xc + dc] = 0

    # ...and the whole lane running along the exit edge
    if side is Direction.RIGHT:
        grid[1:height - 1, width - 2] = 0
    elif side is Direction.LEFT:
        grid[1:height - 1, 1] = 0
    elif side is Direction.UP:
        grid[1, 1:width - 1] = 0
    else:
        grid[height - 2, 1:width - 1] = 0

    # 2. Border walls
    grid[0, :] = 1
    grid[-1, :] = 1
    grid[:, 0] = 1
    grid[:, -1] = 1

    # 3. Entrance/exit openings
    grid[entrance] = 0
    grid[exit_cell] = 0

    grid.flags.writeable = False
    return MazeLayout(grid=grid, entrance=entrance, exit=exit_cell, exit_side=side)


def reachable_cells(layout: MazeLayout) -> Set[GridPos]:
    return flood_fill(layout.grid, layout.entrance)


def place_collectibles(layout: MazeLayout, reachable: Set[GridPos]) -> Set[GridPos]:
    """One cash item per reachable open cell, skipping the exit and the entrance area"""
    er, ec = layout.entrance
    return {
        cell for cell in reachable
        if cell != layout.exit
        and not (abs(cell[0] - er) <= 2 and abs(cell[1] - ec) <= 2)
    }


def place_power_ups(layout: MazeLayout, reachable: Set[GridPos]) -> Set[GridPos]:
    """Power-ups sit on the inner corners of the map when those are open"""
    h, w = layout.height, layout.width
    corners = [(2, 2), (2, w - 3), (h - 3, 2), (h - 3, w - 3)]
    return {cell for cell in corners if cell in reachable}
