"""
MazeChaseEnv - Gymnasium wrapper around the Money Grab maze-chase game
----------------------------------------------------------------------
- The learning agent drives the human-player slot; the ally stays AI
- Discrete action: 0 stay, 1 up, 2 down, 3 left, 4 right (queued input)
- One step = frame_skip simulation ticks (10 ticks cross one cell)
- Vector observation: own state + wall sensors + exit/ally offsets
  + top-K nearest enemies + top-M nearest cash + nearest power-up
- Episode ends on level complete or game over; truncated at max_steps

Quick test:
    python -m game.maze.env
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from .engine import MazeChaseGame
from .entities import Direction, GameStatus, GridPos, MOVES
from .utils import can_move, clamp, manhattan, seed_everything

ACTION_DIRECTIONS = (Direction.NONE,) + MOVES

REWARD_CONFIG = {
    "R_CASH": 1.0,
    "R_POWER_UP": 3.0,
    "R_DEFEAT": 3.0,
    "R_HIT": 5.0,
    "R_EXIT": 20.0,
    "R_TIME": 0.01,
    "R_GAME_OVER": 10.0,
}

COLORS = {
    "floor": (18, 18, 30),
    "wall": (37, 99, 235),
    "exit": (16, 185, 129),
    "cash": (74, 222, 128),
    "power_up": (251, 191, 36),
    "enemy": (239, 68, 68),
    "enemy_fleeing": (96, 165, 250),
    "player": (250, 204, 21),
    "ally": (59, 130, 246),
}


class MazeChaseEnv(gym.Env):
    """Maze-chase environment; the policy plays alongside the AI companion"""

    metadata = {"render_modes": ["human", "rgb_array"], "render_fps": 60}

    def __init__(
        self,
        render_mode: Optional[str] = None,
        frame_skip: int = 10,
        max_steps: int = 1500,
        k_enemies: int = 4,
        m_cash: int = 4,
        start_level: int = 0,
        enemy_mode: str = "greedy",
        collision_mode: str = "lenient",
        reward_config: Optional[Dict[str, float]] = None,
        game_kwargs: Optional[Dict[str, Any]] = None,
    ):
        super().__init__()

        assert render_mode is None or render_mode in self.metadata["render_modes"]
        assert frame_skip >= 1
        self.render_mode = render_mode

        self.frame_skip = frame_skip
        self.max_steps = max_steps
        self.k_enemies = k_enemies
        self.m_cash = m_cash
        self.start_level = start_level
        self.enemy_mode = enemy_mode
        self.collision_mode = collision_mode
        self.reward_config = dict(REWARD_CONFIG, **(reward_config or {}))
        self.game_kwargs = dict(game_kwargs or {})

        self.action_space = spaces.Discrete(len(ACTION_DIRECTIONS))

        # pos(2) power(2) walls(4) exit(2) ally(2) enemies(3 each) cash(2 each) power-up(2)
        obs_dim = 2 + 2 + 4 + 2 + 2 + (self.k_enemies * 3) + (self.m_cash * 2) + 2
        self.observation_space = spaces.Box(
            low=-1.0, high=1.0, shape=(obs_dim,), dtype=np.float32
        )

        self._window = None
        self.game: MazeChaseGame = None  # type: ignore
        self._step_count = 0
        self._events: Dict[str, float] = {}
        self._totals: Dict[str, float] = {}

    # ----------------------------
    # Gym API
    # ----------------------------

    def reset(self, seed: Optional[int] = None, options: Optional[dict] = None):
        super().reset(seed=seed)
        seed_everything(seed)

        game_seed = int(self.np_random.integers(0, 2**31 - 1))
        self.game = MazeChaseGame(
            enemy_mode=self.enemy_mode,
            collision_mode=self.collision_mode,
            seed=game_seed,
            **self.game_kwargs,
        )
        if self.start_level:
            self.game.load_level(self.start_level)
        if self._window is not None:
            self._window.game = self.game

        self._step_count = 0
        self._totals = {}
        return self._get_obs(), self._get_info()

    def step(self, action):
        self._events = {}
        direction = ACTION_DIRECTIONS[int(action)]
        if direction is not Direction.NONE:
            self.game.queue_direction(direction)

        for _ in range(self.frame_skip):
            self.game.tick()
            for key, value in self.game.events.items():
                self._events[key] = self._events.get(key, 0.0) + value
            if self.game.status is not GameStatus.PLAYING:
                break

        for key, value in self._events.items():
            self._totals[key] = self._totals.get(key, 0.0) + value

        reward = self._compute_reward()

        terminated = self.game.status in (GameStatus.LEVEL_COMPLETE, GameStatus.GAME_OVER)
        self._step_count += 1
        truncated = self._step_count >= self.max_steps

        obs = self._get_obs()
        info = self._get_info()

        if self.render_mode == "human":
            self.render()

        return obs, reward, terminated, truncated, info

    # ----------------------------
    # Observation / reward / info
    # ----------------------------

    def _rel(self, origin: GridPos, cell: GridPos) -> List[float]:
        layout = self.game.level.layout
        return [
            clamp((cell[1] - origin[1]) / layout.width, -1, 1),
            clamp((cell[0] - origin[0]) / layout.height, -1, 1),
        ]

    def _get_obs(self) -> np.ndarray:
        level = self.game.level
        layout = level.layout
        me = level.player
        here = me.grid_pos

        obs_parts = [
            here[1] / max(1, layout.width - 1) * 2 - 1,
            here[0] / max(1, layout.height - 1) * 2 - 1,
            1.0 if me.power_up_active else -1.0,
            clamp(
                (me.power_up_expiry_ms - self.game.clock_ms) / self.game.power_up_duration_ms, 0, 1
            ) * 2 - 1,
        ]
        obs_parts += [1.0 if can_move(layout.grid, here, d) else -1.0 for d in MOVES]
        obs_parts += self._rel(here, layout.exit)
        obs_parts += self._rel(here, level.ally.grid_pos)

        enemies_sorted = sorted(level.enemies, key=lambda e: (manhattan(e.grid_pos, here), e.id))
        for i in range(self.k_enemies):
            if i < len(enemies_sorted):
                e = enemies_sorted[i]
                obs_parts += self._rel(here, e.grid_pos) + [1.0 if e.fleeing else -1.0]
            else:
                obs_parts += [0.0, 0.0, 0.0]

        cash_sorted = sorted(level.collectibles, key=lambda c: (manhattan(c, here), c))
        for i in range(self.m_cash):
            if i < len(cash_sorted):
                obs_parts += self._rel(here, cash_sorted[i])
            else:
                obs_parts += [0.0, 0.0]

        if level.power_ups:
            nearest = min(sorted(level.power_ups), key=lambda p: manhattan(p, here))
            obs_parts += self._rel(here, nearest)
        else:
            obs_parts += [0.0, 0.0]

        return np.array(obs_parts, dtype=np.float32)

    def _compute_reward(self) -> float:
        cfg = self.reward_config
        ev = self._events

        reward = 0.0
        reward += cfg["R_CASH"] * ev.get("player_cash", 0.0)
        reward += cfg["R_POWER_UP"] * ev.get("player_power_up", 0.0)
        reward += cfg["R_DEFEAT"] * ev.get("player_enemy_defeated", 0.0)
        reward += cfg["R_EXIT"] * ev.get("level_complete", 0.0)
        reward -= cfg["R_HIT"] * ev.get("player_hit", 0.0)
        reward -= cfg["R_TIME"]

        if self.game.status is GameStatus.GAME_OVER:
            reward -= cfg["R_GAME_OVER"]

        return float(reward)

    def _get_info(self) -> Dict[str, Any]:
        level = self.game.level
        return {
            "level": level.index,
            "status": self.game.status.value,
            "score": level.player.score,
            "ally_score": level.ally.score,
            "combined_score": self.game.combined_score,
            "cash_left": len(level.collectibles),
            "cash_collected": self._totals.get("player_cash", 0.0),
            "enemies_defeated": self._totals.get("player_enemy_defeated", 0.0),
            "hits_taken": self._totals.get("player_hit", 0.0),
            "level_complete": self.game.status is GameStatus.LEVEL_COMPLETE,
            "step": self._step_count,
        }

    # ----------------------------
    # Rendering
    # ----------------------------

    def render(self):
        if self.render_mode is None:
            return None

        if self.render_mode == "rgb_array":
            return self._render_rgb_array()

        if self._window is None:
            # Imported here so headless use never touches the display
            from .window import MazeWindow
            self._window = MazeWindow(self.game)
        self._window.on_draw()
        return None

    def _render_rgb_array(self) -> np.ndarray:
        snap = self.game.snapshot()
        tile = self.game.tile_size
        height, width = snap.grid.shape
        frame = np.empty((height * tile, width * tile, 3), dtype=np.uint8)
        frame[:] = COLORS["floor"]

        walls = np.kron(snap.grid, np.ones((tile, tile), dtype=np.uint8)).astype(bool)
        frame[walls] = COLORS["wall"]

        def square(x: float, y: float, half: int, color):
            x0, y0 = int(x) - half, int(y) - half
            frame[max(0, y0):y0 + 2 * half, max(0, x0):x0 + 2 * half] = color

        xr, xc = snap.exit
        frame[xr * tile:(xr + 1) * tile, xc * tile:(xc + 1) * tile] = COLORS["exit"]
        for r, c in snap.collectibles:
            square(c * tile + tile / 2, r * tile + tile / 2, tile // 10, COLORS["cash"])
        for r, c in snap.power_ups:
            square(c * tile + tile / 2, r * tile + tile / 2, tile // 5, COLORS["power_up"])
        for e in snap.enemies:
            color = COLORS["enemy_fleeing"] if e.fleeing else COLORS["enemy"]
            square(*e.pixel_pos, tile // 3, color)
        square(*snap.ally.pixel_pos, tile // 3, COLORS["ally"])
        square(*snap.player.pixel_pos, tile // 3, COLORS["player"])
        return frame

    def close(self):
        if self._window is not None:
            self._window.close()
            self._window = None


# ----------------------------
# Quick sanity test
# ----------------------------

def run_random_episode(render: bool = True, seed: int = 42):
    """Run a random episode for testing"""
    env = MazeChaseEnv(render_mode="human" if render else None)
    obs, info = env.reset(seed=seed)

    terminated = False
    truncated = False
    total = 0.0

    print("Running episode... Close the window to exit early.")

    import time
    while not (terminated or truncated):
        action = env.action_space.sample()
        obs, reward, terminated, truncated, info = env.step(action)
        total += reward

        if render and env._window:
            env._window.dispatch_events()
            env._window.on_draw()
            env._window.flip()
            time.sleep(0.03)

    print(f"Random episode return: {total:.2f} "
          f"(cash {info['cash_collected']:.0f}, hits {info['hits_taken']:.0f}, status {info['status']})")

    env.close()


if __name__ == "__main__":
    run_random_episode(render=True)
