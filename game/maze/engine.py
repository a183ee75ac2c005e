"""
MazeChaseGame - the "Money Grab" maze-chase simulation
------------------------------------------------------
- Fixed-timestep loop (16ms logical ticks) driven by any external clock
- Player agent steered by buffered keyboard input, ally agent by the AI
- Enemies step on a slower, level-scaled sub-clock
- Cash (+100), power-ups (+500, 10s), enemy contact penalty/respawn
- Level/session state machine: playing <-> paused, playing -> levelComplete
  -> next level, playing -> gameOver

All state lives on the instance and is mutated only inside tick(); the
host receives an immutable GameSnapshot after each tick and renders it.
Nothing here uses wall-clock timers, so the simulation is deterministic
for a given seed and input sequence.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Union

from .ai import choose_ally_direction, pick_ally_target, plan_enemy_move
from .controls import direction_for_key
from .entities import (
    Agent,
    AgentView,
    CollisionMode,
    Direction,
    Enemy,
    EnemyBehaviorMode,
    EnemyView,
    GameSnapshot,
    GameStatus,
    GridPos,
)
from .maze_gen import MazeLayout, generate_maze, place_collectibles, place_power_ups, reachable_cells
from .utils import (
    ALIGN_TOLERANCE,
    MOVE_SPEED,
    TILE_SIZE,
    can_move,
    grid_to_pixel,
    is_aligned,
    is_open,
    nearest_open_cell,
    nearest_open_cells,
    pixel_to_grid,
    step,
)

GameCompleteCallback = Callable[[int, int], None]


@dataclass
class Level:
    """Everything that is rebuilt when a level loads"""
    index: int
    layout: MazeLayout
    reachable: Set[GridPos]
    collectibles: Set[GridPos]
    power_ups: Set[GridPos]
    player: Agent
    ally: Agent
    enemies: List[Enemy] = field(default_factory=list)
    banked: bool = False  # agent scores already added to the session total

    @property
    def score(self) -> int:
        return self.player.score + self.ally.score


@dataclass
class _PendingLevel:
    epoch: int
    next_index: int
    remaining_ms: float


def _coerce(enum_cls, value):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ValueError(f"Unknown {enum_cls.__name__}: {value!r}") from None


class MazeChaseGame:
    """Two cooperating agents collect cash in a maze while enemies chase them"""

    def __init__(
        self,
        player_name: str = "Player",
        companion_name: str = "Companion",
        on_game_complete: Optional[GameCompleteCallback] = None,
        maze_factory: Callable[[int], MazeLayout] = generate_maze,
        tile_size: int = TILE_SIZE,
        move_speed: int = MOVE_SPEED,
        align_tolerance: float = ALIGN_TOLERANCE,
        tick_ms: float = 16.0,
        max_catchup_ticks: int = 5,
        cash_points: int = 100,
        power_up_points: int = 500,
        enemy_points: int = 500,
        hit_penalty: int = 200,
        power_up_duration_ms: float = 10_000.0,
        transition_delay_ms: float = 2_000.0,
        grab_ticks: int = 12,
        base_enemies: int = 4,
        max_extra_enemies: int = 4,
        enemy_mode: Union[EnemyBehaviorMode, str] = EnemyBehaviorMode.GREEDY,
        collision_mode: Union[CollisionMode, str] = CollisionMode.LENIENT,
        ally_noise: float = 0.05,
        seed: Optional[int] = None,
        verbose: int = 0,
    ):
        assert tick_ms > 0, "tick_ms must be positive"
        assert move_speed > 0 and tile_size % move_speed == 0, \
            "tile_size must be a multiple of move_speed so agents land on cell centers"
        assert 0 <= align_tolerance < move_speed / 2, \
            "align_tolerance must be below half a step or a cell would trigger twice"
        assert max_catchup_ticks >= 1

        self.player_name = player_name
        self.companion_name = companion_name
        self.on_game_complete = on_game_complete
        self.maze_factory = maze_factory

        # Movement
        self.tile_size = tile_size
        self.move_speed = move_speed
        self.align_tolerance = align_tolerance
        self.tick_ms = tick_ms
        self.max_catchup_ticks = max_catchup_ticks

        # Scoring / timers
        self.cash_points = cash_points
        self.power_up_points = power_up_points
        self.enemy_points = enemy_points
        self.hit_penalty = hit_penalty
        self.power_up_duration_ms = power_up_duration_ms
        self.transition_delay_ms = transition_delay_ms
        self.grab_ticks = grab_ticks

        # Opposition
        self.base_enemies = base_enemies
        self.max_extra_enemies = max_extra_enemies
        self.enemy_mode = _coerce(EnemyBehaviorMode, enemy_mode)
        self.collision_mode = _coerce(CollisionMode, collision_mode)
        self.ally_noise = ally_noise

        self.rng = random.Random(seed)
        self.verbose = verbose

        # Session state
        self.level: Level = None  # type: ignore
        self.status = GameStatus.PLAYING
        self.total_score = 0
        self.clock_ms = 0.0
        self.tick_count = 0
        self.events: Dict[str, float] = {}
        self._epoch = 0
        self._pending: Optional[_PendingLevel] = None
        self._enemy_clock_ms = 0.0
        self._last_update_ms: Optional[float] = None
        self._completion_reported = False

        self.reset_session()

    # ----------------------------
    # Session API
    # ----------------------------

    def reset_session(self) -> GameSnapshot:
        """Start over at level 0 with a zero team score"""
        self.total_score = 0
        self.clock_ms = 0.0
        self.tick_count = 0
        self._completion_reported = False
        self._last_update_ms = None
        return self.load_level(0)

    def load_level(self, index: int) -> GameSnapshot:
        """Build a fresh level; only the session total carries over"""
        self._epoch += 1
        self._pending = None
        self._enemy_clock_ms = 0.0
        self.events = {}
        self.level = self._build_level(index)
        self.status = GameStatus.PLAYING
        if self.verbose > 0:
            print(f"[MazeChaseGame] Level {index + 1} loaded "
                  f"({len(self.level.collectibles)} cash, {len(self.level.enemies)} enemies)")
        return self.snapshot()

    def queue_direction(self, direction: Direction) -> bool:
        """Buffer a player direction; it is applied on the next aligned tick"""
        if self.status is not GameStatus.PLAYING:
            return False
        self.level.player.queued_direction = direction
        return True

    def handle_key(self, key: str) -> bool:
        direction = direction_for_key(key)
        if direction is None:
            return False
        return self.queue_direction(direction)

    def toggle_pause(self) -> GameStatus:
        if self.status is GameStatus.PLAYING:
            self.status = GameStatus.PAUSED
        elif self.status is GameStatus.PAUSED:
            self.status = GameStatus.PLAYING
            # Resume without replaying the time spent paused
            self._last_update_ms = None
        if self.verbose > 0:
            print(f"[MazeChaseGame] {self.status.value}")
        return self.status

    def end_game(self) -> GameSnapshot:
        """Terminal transition; reports the result to the host once"""
        if self.status is not GameStatus.GAME_OVER:
            self.status = GameStatus.GAME_OVER
            self._pending = None
            if self.verbose > 0:
                print(f"[MazeChaseGame] Game over at level {self.levels_reached} "
                      f"with {self.combined_score}")
        if not self._completion_reported:
            self._completion_reported = True
            if self.on_game_complete is not None:
                self.on_game_complete(self.combined_score, self.levels_reached)
        return self.snapshot()

    @property
    def combined_score(self) -> int:
        if self.level.banked:
            return self.total_score
        return self.total_score + self.level.score

    @property
    def levels_reached(self) -> int:
        return self.level.index + 1

    @property
    def enemy_interval_ms(self) -> float:
        """Enemies speed up each level down to a floor"""
        return max(200 - self.level.index * 20, 80)

    # ----------------------------
    # Clock
    # ----------------------------

    def update(self, now_ms: float) -> int:
        """
        Advance the simulation to a host timestamp.

        Runs as many fixed ticks as the elapsed time covers (capped), so the
        outcome does not depend on how often the host calls in. Returns the
        number of ticks run.
        """
        if self._last_update_ms is None or self.status in (GameStatus.PAUSED, GameStatus.GAME_OVER):
            self._last_update_ms = now_ms
            return 0

        elapsed = now_ms - self._last_update_ms
        if self.status is GameStatus.LEVEL_COMPLETE:
            self._last_update_ms = now_ms
            self._advance_transition(elapsed)
            return 0

        if elapsed < self.tick_ms:
            return 0

        ticks = 0
        while (elapsed >= self.tick_ms and ticks < self.max_catchup_ticks
               and self.status is GameStatus.PLAYING):
            self.tick()
            elapsed -= self.tick_ms
            ticks += 1

        # Keep the sub-tick remainder; drop anything past the catch-up cap
        self._last_update_ms = now_ms - elapsed if elapsed < self.tick_ms else now_ms
        return ticks

    def _advance_transition(self, elapsed_ms: float):
        pending = self._pending
        if pending is None:
            return
        if pending.epoch != self._epoch:
            # Scheduled by a level the session has already left
            self._pending = None
            return
        pending.remaining_ms -= elapsed_ms
        if pending.remaining_ms <= 0:
            self.load_level(pending.next_index)

    # ----------------------------
    # Simulation step
    # ----------------------------

    def tick(self) -> GameSnapshot:
        """One fixed step: player -> ally -> enemies -> collisions -> expiry"""
        if self.status is not GameStatus.PLAYING:
            return self.snapshot()

        self.events = {}
        self.clock_ms += self.tick_ms
        self.tick_count += 1
        level = self.level
        before = {a.role: self._occupied_cell(a) for a in (level.player, level.ally)}

        # Player
        if self._advance_agent(level.player) and self._enter_cell(level.player):
            return self.snapshot()

        # Ally
        if self._is_aligned(level.ally):
            level.ally.queued_direction = self._ally_decision()
        if self._advance_agent(level.ally) and self._enter_cell(level.ally):
            return self.snapshot()

        # Power-ups that lapsed this tick no longer scare or defeat anyone
        for agent in (level.player, level.ally):
            agent.power_up_active = self.clock_ms < agent.power_up_expiry_ms

        # Enemies on their own cadence
        moved: Dict[str, GridPos] = {}
        self._enemy_clock_ms += self.tick_ms
        if self._enemy_clock_ms >= self.enemy_interval_ms:
            self._enemy_clock_ms -= self.enemy_interval_ms
            moved = self._move_enemies()

        # Collisions
        for agent in (level.player, level.ally):
            self._resolve_enemy_contact(agent, before[agent.role], moved)
            if self.status is GameStatus.GAME_OVER:
                return self.snapshot()
        self._resolve_agent_contact()

        # Timers
        for agent in (level.player, level.ally):
            if agent.grab_ticks > 0:
                agent.grab_ticks -= 1

        return self.snapshot()

    def _occupied_cell(self, agent: Agent) -> GridPos:
        """Cell whose center is nearest the agent, even mid-crossing"""
        return pixel_to_grid(agent.pixel_pos, self.tile_size)

    def _is_aligned(self, agent: Agent) -> bool:
        return is_aligned(agent.pixel_pos, self.tile_size, self.align_tolerance)

    def _advance_agent(self, agent: Agent) -> bool:
        """Move an agent one tick; True when it lands on a new cell center"""
        grid = self.level.layout.grid
        if self._is_aligned(agent):
            agent.grid_pos = pixel_to_grid(agent.pixel_pos, self.tile_size)
            agent.pixel_pos = grid_to_pixel(agent.grid_pos, self.tile_size)
            queued = agent.queued_direction
            if queued is not Direction.NONE and can_move(grid, agent.grid_pos, queued):
                agent.direction = queued
                agent.queued_direction = Direction.NONE
            if agent.direction is not Direction.NONE and not can_move(grid, agent.grid_pos, agent.direction):
                # Wall ahead: stay snapped on the center and go idle
                agent.direction = Direction.NONE

        if agent.direction is Direction.NONE:
            return False

        dr, dc = agent.direction.delta
        x, y = agent.pixel_pos
        agent.pixel_pos = (x + dc * self.move_speed, y + dr * self.move_speed)
        if not self._is_aligned(agent):
            return False

        agent.grid_pos = pixel_to_grid(agent.pixel_pos, self.tile_size)
        agent.recent_cells.append(agent.grid_pos)
        return True

    def _enter_cell(self, agent: Agent) -> bool:
        """Cell-entry effects; True when the level was completed"""
        level = self.level
        cell = agent.grid_pos

        if cell == level.layout.exit:
            self._complete_level(agent)
            return True

        if cell in level.collectibles:
            level.collectibles.discard(cell)
            agent.score += self.cash_points
            agent.grab_ticks = self.grab_ticks
            self._record(agent, "cash")

        if cell in level.power_ups:
            level.power_ups.discard(cell)
            agent.score += self.power_up_points
            agent.power_up_active = True
            agent.power_up_expiry_ms = self.clock_ms + self.power_up_duration_ms
            agent.grab_ticks = self.grab_ticks
            self._record(agent, "power_up")

        return False

    def _complete_level(self, agent: Agent):
        level = self.level
        self.total_score += level.score
        level.banked = True
        self.status = GameStatus.LEVEL_COMPLETE
        self._pending = _PendingLevel(
            epoch=self._epoch,
            next_index=level.index + 1,
            remaining_ms=self.transition_delay_ms,
        )
        self._record(agent, "exit")
        self.events["level_complete"] = 1.0
        if self.verbose > 0:
            print(f"[MazeChaseGame] Level {level.index + 1} complete by {agent.name}, "
                  f"team total {self.total_score}")

    def _ally_decision(self) -> Direction:
        level = self.level
        ally = level.ally
        target = pick_ally_target(ally.grid_pos, level.collectibles, level.power_ups, level.layout.exit)
        return choose_ally_direction(
            level.layout.grid,
            ally.grid_pos,
            target,
            [e.grid_pos for e in level.enemies],
            recent_cells=ally.recent_cells,
            rng=self.rng,
            noise_chance=self.ally_noise,
        )

    def _move_enemies(self) -> Dict[str, GridPos]:
        """Step every enemy; returns the cell each moved enemy came from"""
        level = self.level
        agents = {"player": level.player, "ally": level.ally}
        moved = {}
        for enemy in level.enemies:
            direction = plan_enemy_move(level.layout.grid, enemy, agents, self.enemy_mode)
            if direction is Direction.NONE:
                continue
            moved[enemy.id] = enemy.grid_pos
            enemy.direction = direction
            enemy.grid_pos = step(enemy.grid_pos, direction)
        return moved

    def _touches(self, agent: Agent, enemy: Enemy, agent_before: GridPos,
                 moved: Dict[str, GridPos]) -> bool:
        cell = self._occupied_cell(agent)
        if enemy.grid_pos == cell:
            return True
        # Head-on swap: both crossed the shared edge during this tick
        return moved.get(enemy.id) == cell and enemy.grid_pos == agent_before

    def _resolve_enemy_contact(self, agent: Agent, agent_before: GridPos,
                               moved: Dict[str, GridPos]):
        for enemy in self.level.enemies:
            if not self._touches(agent, enemy, agent_before, moved):
                continue
            if agent.power_up_active:
                agent.score += self.enemy_points
                self._respawn_enemy(enemy)
                self._record(agent, "enemy_defeated")
            elif self.collision_mode is CollisionMode.STRICT:
                self._record(agent, "hit")
                self.end_game()
                return
            else:
                self._hit(agent)
                return

    def _resolve_agent_contact(self):
        player, ally = self.level.player, self.level.ally
        if player.grid_pos != ally.grid_pos:
            return
        if not (self._is_aligned(player) or self._is_aligned(ally)):
            return
        if player.power_up_active and ally.power_up_active:
            for agent in (player, ally):
                agent.power_up_active = False
                agent.power_up_expiry_ms = self.clock_ms
            self.events["clash"] = self.events.get("clash", 0.0) + 1.0
        elif player.power_up_active:
            self._hit(ally)
        elif ally.power_up_active:
            self._hit(player)

    def _hit(self, agent: Agent):
        agent.score = max(0, agent.score - self.hit_penalty)
        self._respawn_agent(agent)
        self._record(agent, "hit")

    def _respawn_agent(self, agent: Agent):
        """Back to the start cell, or the nearest free cell if something sits on it"""
        level = self.level
        other = level.ally if agent is level.player else level.player
        blocked = {other.grid_pos, self._occupied_cell(other)}
        blocked.update(e.grid_pos for e in level.enemies)

        cell = agent.start
        if cell in blocked:
            cell = nearest_open_cell(level.layout.grid, agent.start,
                                     allowed=level.reachable, exclude=blocked) or agent.start

        agent.grid_pos = cell
        agent.pixel_pos = grid_to_pixel(cell, self.tile_size)
        agent.direction = Direction.NONE
        agent.queued_direction = Direction.NONE
        agent.recent_cells.clear()
        agent.recent_cells.append(cell)

    def _respawn_enemy(self, enemy: Enemy):
        level = self.level
        occupied = {level.player.grid_pos, level.ally.grid_pos}
        occupied.update(self._occupied_cell(a) for a in (level.player, level.ally))
        cell = nearest_open_cell(level.layout.grid, level.layout.center,
                                 allowed=level.reachable, exclude=occupied)
        if cell is not None:
            enemy.grid_pos = cell
        enemy.direction = Direction.NONE
        enemy.locked_target = None
        enemy.lock_misses = 0
        enemy.fleeing = False

    def _record(self, agent: Agent, kind: str, amount: float = 1.0):
        key = f"{agent.role}_{kind}"
        self.events[key] = self.events.get(key, 0.0) + amount

    # ----------------------------
    # Level construction
    # ----------------------------

    def _build_level(self, index: int) -> Level:
        layout = self.maze_factory(index)
        grid = layout.grid
        reachable = reachable_cells(layout)

        ally_start = layout.entrance
        for d in (Direction.DOWN, Direction.UP, Direction.RIGHT, Direction.LEFT):
            cell = step(layout.entrance, d)
            if is_open(grid, cell) and cell != layout.exit:
                ally_start = cell
                break

        player = self._spawn_agent("player", self.player_name, layout.entrance)
        ally = self._spawn_agent("ally", self.companion_name, ally_start)

        # Enemies start around the mirror image of the entrance
        er, ec = layout.entrance
        anchor = (layout.height - 1 - er, layout.width - 1 - ec)
        near_entrance = {
            c for c in reachable if abs(c[0] - er) <= 2 and abs(c[1] - ec) <= 2
        }
        spawns = nearest_open_cells(grid, anchor, allowed=reachable,
                                    exclude=near_entrance | {layout.exit})
        count = self.base_enemies + min(index, self.max_extra_enemies)
        enemies = [Enemy(id=f"enemy-{i}", grid_pos=cell) for i, cell in enumerate(spawns[:count])]

        return Level(
            index=index,
            layout=layout,
            reachable=reachable,
            collectibles=place_collectibles(layout, reachable),
            power_ups=place_power_ups(layout, reachable),
            player=player,
            ally=ally,
            enemies=enemies,
        )

    def _spawn_agent(self, role: str, name: str, cell: GridPos) -> Agent:
        agent = Agent(role=role, name=name, start=cell, grid_pos=cell,
                      pixel_pos=grid_to_pixel(cell, self.tile_size))
        agent.recent_cells.append(cell)
        return agent

    # ----------------------------
    # Snapshot
    # ----------------------------

    def _agent_view(self, agent: Agent) -> AgentView:
        return AgentView(
            role=agent.role,
            name=agent.name,
            grid_pos=agent.grid_pos,
            pixel_pos=agent.pixel_pos,
            direction=agent.direction,
            score=agent.score,
            power_up_active=agent.power_up_active,
            power_up_ms_left=max(0.0, agent.power_up_expiry_ms - self.clock_ms),
            is_grabbing=agent.is_grabbing,
        )

    def snapshot(self) -> GameSnapshot:
        level = self.level
        enemies = tuple(
            EnemyView(
                id=e.id,
                grid_pos=e.grid_pos,
                pixel_pos=grid_to_pixel(e.grid_pos, self.tile_size),
                direction=e.direction,
                fleeing=e.fleeing,
                is_locked=e.is_locked,
            )
            for e in level.enemies
        )
        return GameSnapshot(
            level_index=level.index,
            status=self.status,
            grid=level.layout.grid,
            entrance=level.layout.entrance,
            exit=level.layout.exit,
            collectibles=frozenset(level.collectibles),
            power_ups=frozenset(level.power_ups),
            player=self._agent_view(level.player),
            ally=self._agent_view(level.ally),
            enemies=enemies,
            level_score=level.score,
            total_score=self.total_score,
            combined_score=self.combined_score,
            tick=self.tick_count,
            clock_ms=self.clock_ms,
        )
