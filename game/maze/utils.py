"""
Utility functions for grid/pixel mapping and maze movement rules
"""

from __future__ import annotations
import random
from collections import deque
from typing import Iterable, List, Optional, Set

import numpy as np

from .entities import Direction, GridPos, MOVES, PixelPos

TILE_SIZE = 30
MOVE_SPEED = 3
ALIGN_TOLERANCE = 1.0


def clamp(x: float, lo: float, hi: float) -> float:
    """Clamp value between low and high bounds"""
    return lo if x < lo else hi if x > hi else x


def manhattan(a: GridPos, b: GridPos) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


# ----------------------------
# Coordinate mapping
# ----------------------------

def grid_to_pixel(cell: GridPos, tile_size: float = TILE_SIZE) -> PixelPos:
    """Pixel position of a cell center"""
    row, col = cell
    return (col * tile_size + tile_size / 2, row * tile_size + tile_size / 2)


def pixel_to_grid(pixel: PixelPos, tile_size: float = TILE_SIZE) -> GridPos:
    x, y = pixel
    return (int(y // tile_size), int(x // tile_size))


def is_aligned(
    pixel: PixelPos,
    tile_size: float = TILE_SIZE,
    tolerance: float = ALIGN_TOLERANCE,
) -> bool:
    """True when the position sits on a cell center (within tolerance) on both axes"""
    half = tile_size / 2
    for v in pixel:
        offset = (v - half) % tile_size
        if min(offset, tile_size - offset) > tolerance:
            return False
    return True


# ----------------------------
# Movement rules
# ----------------------------

def step(cell: GridPos, direction: Direction) -> GridPos:
    dr, dc = direction.delta
    return (cell[0] + dr, cell[1] + dc)


def in_bounds(grid: np.ndarray, cell: GridPos) -> bool:
    rows, cols = grid.shape
    return 0 <= cell[0] < rows and 0 <= cell[1] < cols


def is_open(grid: np.ndarray, cell: GridPos) -> bool:
    return in_bounds(grid, cell) and grid[cell] == 0


def can_move(grid: np.ndarray, cell: GridPos, direction: Direction) -> bool:
    """False when the destination is out of bounds or a wall"""
    if direction is Direction.NONE:
        return False
    return is_open(grid, step(cell, direction))


def valid_directions(grid: np.ndarray, cell: GridPos) -> List[Direction]:
    return [d for d in MOVES if can_move(grid, cell, d)]


def flood_fill(grid: np.ndarray, start: GridPos) -> Set[GridPos]:
    """All open cells reachable from start (BFS over 4-neighbours)"""
    if not is_open(grid, start):
        return set()
    seen = {start}
    queue = deque([start])
    while queue:
        cell = queue.popleft()
        for d in MOVES:
            nxt = step(cell, d)
            if nxt not in seen and is_open(grid, nxt):
                seen.add(nxt)
                queue.append(nxt)
    return seen


def nearest_open_cell(
    grid: np.ndarray,
    anchor: GridPos,
    allowed: Optional[Iterable[GridPos]] = None,
    exclude: Iterable[GridPos] = (),
) -> Optional[GridPos]:
    """Closest usable cell to anchor by Manhattan distance, ties broken by (row, col)"""
    ranked = nearest_open_cells(grid, anchor, allowed=allowed, exclude=exclude)
    return ranked[0] if ranked else None


def nearest_open_cells(
    grid: np.ndarray,
    anchor: GridPos,
    allowed: Optional[Iterable[GridPos]] = None,
    exclude: Iterable[GridPos] = (),
) -> List[GridPos]:
    if allowed is None:
        rows, cols = np.nonzero(grid == 0)
        allowed = zip(rows.tolist(), cols.tolist())
    skip = set(exclude)
    candidates = [c for c in allowed if c not in skip and is_open(grid, c)]
    return sorted(candidates, key=lambda c: (manhattan(c, anchor), c))


def seed_everything(py_seed: Optional[int]):
    """Seed all random number generators"""
    if py_seed is None:
        return
    random.seed(py_seed)
    np.random.seed(py_seed)
