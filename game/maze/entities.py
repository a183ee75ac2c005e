"""
Game entity dataclasses
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, FrozenSet, Optional, Tuple

import numpy as np

GridPos = Tuple[int, int]  # (row, col)
PixelPos = Tuple[float, float]  # (x, y)


class Direction(Enum):
    NONE = "none"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"

    @property
    def delta(self) -> GridPos:
        """(d_row, d_col) for one step"""
        return _DELTAS[self]


_DELTAS = {
    Direction.NONE: (0, 0),
    Direction.UP: (-1, 0),
    Direction.DOWN: (1, 0),
    Direction.LEFT: (0, -1),
    Direction.RIGHT: (0, 1),
}

# Stable evaluation order; the first best candidate wins ties
MOVES = (Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT)


class GameStatus(Enum):
    PLAYING = "playing"
    PAUSED = "paused"
    LEVEL_COMPLETE = "levelComplete"
    GAME_OVER = "gameOver"


class EnemyBehaviorMode(Enum):
    """Greedy nearest-target chase, or chase with a bounded lock-on"""
    GREEDY = "greedy"
    LOCK_ON = "lock_on"


class CollisionMode(Enum):
    """What happens when an unpowered agent touches an enemy"""
    LENIENT = "lenient"  # score penalty + respawn
    STRICT = "strict"  # immediate game over


@dataclass
class Agent:
    """Player or ally agent entity"""
    role: str  # "player" or "ally"
    name: str
    start: GridPos
    grid_pos: GridPos
    pixel_pos: PixelPos
    direction: Direction = Direction.NONE
    queued_direction: Direction = Direction.NONE
    score: int = 0
    power_up_active: bool = False
    power_up_expiry_ms: float = 0.0
    grab_ticks: int = 0  # ticks left on the pickup animation
    recent_cells: Deque[GridPos] = field(default_factory=lambda: deque(maxlen=4))  # current cell + last 3

    @property
    def is_grabbing(self) -> bool:
        return self.grab_ticks > 0


@dataclass
class Enemy:
    """Cell-bound enemy that chases (or flees from) the nearest agent"""
    id: str
    grid_pos: GridPos
    direction: Direction = Direction.NONE
    fleeing: bool = False
    locked_target: Optional[str] = None  # agent role while locked on
    lock_misses: int = 0  # evaluations spent out of range while locked

    @property
    def is_locked(self) -> bool:
        return self.locked_target is not None


# ----------------------------
# Immutable views handed to the host each tick
# ----------------------------

@dataclass(frozen=True)
class AgentView:
    role: str
    name: str
    grid_pos: GridPos
    pixel_pos: PixelPos
    direction: Direction
    score: int
    power_up_active: bool
    power_up_ms_left: float
    is_grabbing: bool


@dataclass(frozen=True)
class EnemyView:
    id: str
    grid_pos: GridPos
    pixel_pos: PixelPos
    direction: Direction
    fleeing: bool
    is_locked: bool


@dataclass(frozen=True, eq=False)
class GameSnapshot:
    level_index: int
    status: GameStatus
    grid: np.ndarray  # read-only, 1 = wall
    entrance: GridPos
    exit: GridPos
    collectibles: FrozenSet[GridPos]
    power_ups: FrozenSet[GridPos]
    player: AgentView
    ally: AgentView
    enemies: Tuple[EnemyView, ...]
    level_score: int
    total_score: int
    combined_score: int
    tick: int
    clock_ms: float
