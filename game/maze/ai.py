"""
Pursuit/flee AI for the ally agent and the enemies

Both are greedy one-step lookaheads over Manhattan distance. The ally
grabs cash and power-ups while steering clear of enemies; enemies chase
the nearer agent and run away from one holding a power-up.
"""

from __future__ import annotations

import random
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Set

import numpy as np

from .entities import Agent, Direction, Enemy, EnemyBehaviorMode, GridPos
from .utils import manhattan, step, valid_directions

FLEE_RADIUS = 3  # ally flees when an enemy is this close
POWER_UP_SEEK_RADIUS = 5
DANGER_RADIUS = 3  # soft avoidance around enemies
DANGER_WEIGHT = 5
NOISE_SCALE = 2.0
LOCK_RADIUS = 2
LOCK_PATIENCE = 7  # out-of-range evaluations before a lock is released


def _best(options: Sequence[Direction], score: Callable[[Direction], float], maximize: bool) -> Direction:
    """First direction reaching the best score wins"""
    best_dir = options[0]
    best = score(best_dir)
    for d in options[1:]:
        s = score(d)
        if (s > best) if maximize else (s < best):
            best, best_dir = s, d
    return best_dir


def _nearest(cell: GridPos, targets: Iterable[GridPos]) -> Optional[GridPos]:
    ordered = sorted(targets)
    if not ordered:
        return None
    return min(ordered, key=lambda t: manhattan(cell, t))


def _min_distance(cell: GridPos, others: Sequence[GridPos]) -> float:
    if not others:
        return float("inf")
    return min(manhattan(cell, o) for o in others)


# ----------------------------
# Ally
# ----------------------------

def pick_ally_target(
    cell: GridPos,
    collectibles: Set[GridPos],
    power_ups: Set[GridPos],
    exit_cell: GridPos,
) -> GridPos:
    """Nearby power-up, else any power-up, else nearest cash, else the exit"""
    nearby = [p for p in power_ups if manhattan(cell, p) <= POWER_UP_SEEK_RADIUS]
    for pool in (nearby, power_ups, collectibles):
        target = _nearest(cell, pool)
        if target is not None:
            return target
    return exit_cell


def choose_ally_direction(
    grid: np.ndarray,
    cell: GridPos,
    target: GridPos,
    enemy_cells: Sequence[GridPos],
    recent_cells: Iterable[GridPos] = (),
    rng: Optional[random.Random] = None,
    noise_chance: float = 0.0,
) -> Direction:
    options = valid_directions(grid, cell)
    if not options:
        return Direction.NONE

    # Anti-loop memory, unless it leaves nowhere to go
    recent = set(recent_cells)
    fresh = [d for d in options if step(cell, d) not in recent]
    if fresh:
        options = fresh

    if any(manhattan(cell, e) <= FLEE_RADIUS for e in enemy_cells):
        return _best(options, lambda d: _min_distance(step(cell, d), enemy_cells), maximize=True)

    def score(d: Direction) -> float:
        nxt = step(cell, d)
        s = float(manhattan(nxt, target))
        danger = _min_distance(nxt, enemy_cells)
        if danger <= DANGER_RADIUS:
            s += (DANGER_RADIUS + 1 - danger) * DANGER_WEIGHT
        if rng is not None and rng.random() < noise_chance:
            s += rng.random() * NOISE_SCALE
        return s

    return _best(options, score, maximize=False)


# ----------------------------
# Enemies
# ----------------------------

def _update_lock(enemy: Enemy, distances: Mapping[str, int], nearest: str) -> str:
    if not enemy.is_locked and distances[nearest] <= LOCK_RADIUS:
        enemy.locked_target = nearest
        enemy.lock_misses = 0

    if not enemy.is_locked:
        return nearest

    role = enemy.locked_target
    if distances[role] > LOCK_RADIUS:
        enemy.lock_misses += 1
        if enemy.lock_misses >= LOCK_PATIENCE:
            enemy.locked_target = None
            enemy.lock_misses = 0
    else:
        enemy.lock_misses = 0
    return role


def plan_enemy_move(
    grid: np.ndarray,
    enemy: Enemy,
    agents: Mapping[str, Agent],
    mode: EnemyBehaviorMode = EnemyBehaviorMode.GREEDY,
) -> Direction:
    """Pick the enemy's next step; updates its lock/flee state in place"""
    distances = {role: manhattan(enemy.grid_pos, a.grid_pos) for role, a in agents.items()}
    nearest = min(distances, key=distances.get)

    role = nearest
    if mode is EnemyBehaviorMode.LOCK_ON:
        role = _update_lock(enemy, distances, nearest)

    target = agents[role]
    enemy.fleeing = target.power_up_active

    options: List[Direction] = valid_directions(grid, enemy.grid_pos)
    if not options:
        return Direction.NONE
    return _best(
        options,
        lambda d: manhattan(step(enemy.grid_pos, d), target.grid_pos),
        maximize=enemy.fleeing,
    )
