"""Money Grab maze-chase game - simulation engine and Gymnasium environment"""

from .engine import MazeChaseGame
from .entities import CollisionMode, Direction, EnemyBehaviorMode, GameSnapshot, GameStatus
from .env import MazeChaseEnv, run_random_episode
from .maze_gen import MazeLayout, generate_maze, layout_from_rows

__all__ = [
    'MazeChaseGame',
    'MazeChaseEnv',
    'run_random_episode',
    'MazeLayout',
    'generate_maze',
    'layout_from_rows',
    'CollisionMode',
    'Direction',
    'EnemyBehaviorMode',
    'GameSnapshot',
    'GameStatus',
]
