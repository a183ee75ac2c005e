import dataclasses
import random

import pytest

from conftest import POCKET, ROOM_ENTRANCE, park_ally, place, room_factory
from game.maze import CollisionMode, Direction, GameStatus, MazeChaseGame
from game.maze.entities import Enemy
from game.maze.utils import grid_to_pixel, manhattan, pixel_to_grid


# ----------------------------
# Movement
# ----------------------------

def test_player_collects_cash_after_one_cell(game):
    game.level.collectibles.add((1, 2))
    game.queue_direction(Direction.RIGHT)

    for _ in range(9):
        game.tick()
    assert game.level.player.score == 0

    game.tick()
    assert game.level.player.grid_pos == (1, 2)
    assert game.level.player.score == 100
    assert (1, 2) not in game.level.collectibles
    assert game.events == {"player_cash": 1.0}
    assert game.level.player.is_grabbing


def test_idle_agent_stays_on_its_center(game):
    start = game.level.player.pixel_pos
    for _ in range(20):
        game.tick()
    assert game.level.player.pixel_pos == start
    assert game.level.player.grid_pos == ROOM_ENTRANCE


def test_queued_direction_into_wall_is_kept_but_not_applied(game):
    game.queue_direction(Direction.UP)
    game.tick()
    player = game.level.player
    assert player.direction is Direction.NONE
    assert player.queued_direction is Direction.UP
    assert player.pixel_pos == grid_to_pixel(ROOM_ENTRANCE)


def test_agent_stops_on_center_when_blocked(game):
    game.queue_direction(Direction.DOWN)
    for _ in range(40):
        game.tick()
    player = game.level.player
    # Room floor is row 3; two cells down then idle
    assert player.grid_pos == (3, 1)
    assert player.pixel_pos == grid_to_pixel((3, 1))
    assert player.direction is Direction.NONE


def test_turn_is_buffered_until_the_next_center(game):
    game.queue_direction(Direction.RIGHT)
    for _ in range(5):
        game.tick()
    game.queue_direction(Direction.DOWN)
    for _ in range(4):
        game.tick()
    # Still travelling right between (1, 1) and (1, 2)
    assert game.level.player.direction is Direction.RIGHT
    game.tick()
    game.tick()
    player = game.level.player
    assert player.direction is Direction.DOWN
    assert pixel_to_grid(player.pixel_pos) in {(1, 2), (2, 2)}


# ----------------------------
# Collisions
# ----------------------------

def test_lenient_hit_penalises_and_respawns(game):
    player = game.level.player
    place(player, (2, 3))
    player.score = 300
    game.level.enemies.append(Enemy(id="enemy-0", grid_pos=(2, 3)))

    game.tick()

    assert game.status is GameStatus.PLAYING
    assert player.score == 100
    assert player.grid_pos == ROOM_ENTRANCE
    assert player.pixel_pos == grid_to_pixel(ROOM_ENTRANCE)
    assert game.events["player_hit"] == 1.0
    assert game.level.enemies[0].grid_pos == (2, 3)


def test_score_never_goes_negative(game):
    player = game.level.player
    place(player, (2, 3))
    player.score = 50
    game.level.enemies.append(Enemy(id="enemy-0", grid_pos=(2, 3)))
    game.tick()
    assert player.score == 0


def test_powered_agent_defeats_enemy(game):
    player = game.level.player
    place(player, (2, 3))
    player.power_up_active = True
    player.power_up_expiry_ms = 10_000.0
    game.level.enemies.append(Enemy(id="enemy-0", grid_pos=(2, 3)))

    game.tick()

    assert player.score == 500
    assert len(game.level.enemies) == 1
    # Respawned on the open cell nearest the map center
    assert game.level.enemies[0].grid_pos == (3, 3)
    assert game.events["player_enemy_defeated"] == 1.0
    assert player.power_up_active


def test_strict_mode_ends_game_and_reports_once(make_game):
    results = []
    game = make_game(collision_mode="strict",
                     on_game_complete=lambda score, level: results.append((score, level)))
    assert game.collision_mode is CollisionMode.STRICT
    game.level.collectibles.clear()
    game.level.power_ups.clear()
    player = game.level.player
    place(player, (2, 3))
    player.score = 700
    game.level.enemies.append(Enemy(id="enemy-0", grid_pos=(2, 3)))

    game.tick()

    assert game.status is GameStatus.GAME_OVER
    assert results == [(700, 1)]
    game.end_game()
    assert results == [(700, 1)]
    assert game.update(0) == 0
    assert game.update(1000) == 0


def test_power_clash_cancels_both_power_ups(game):
    player, ally = game.level.player, game.level.ally
    place(player, POCKET)
    for agent in (player, ally):
        agent.power_up_active = True
        agent.power_up_expiry_ms = 10_000.0

    game.tick()

    assert not player.power_up_active
    assert not ally.power_up_active
    assert game.events["clash"] == 1.0
    assert player.score == 0 and ally.score == 0


def test_powered_agent_knocks_out_unpowered_partner(game):
    player, ally = game.level.player, game.level.ally
    place(player, POCKET)
    player.power_up_active = True
    player.power_up_expiry_ms = 10_000.0
    ally.score = 100

    game.tick()

    assert ally.score == 0
    assert game.events["ally_hit"] == 1.0
    assert player.power_up_active


def test_power_up_expires(game):
    game.power_up_duration_ms = 160.0
    game.level.power_ups.add((1, 2))
    game.queue_direction(Direction.RIGHT)
    for _ in range(10):
        game.tick()
    player = game.level.player
    assert player.power_up_active
    assert player.score == 500
    for _ in range(10):
        game.tick()
    assert not player.power_up_active


# ----------------------------
# Enemies
# ----------------------------

def test_enemies_step_on_their_own_cadence(game):
    enemy = Enemy(id="enemy-0", grid_pos=(3, 5))
    game.level.enemies.append(enemy)
    assert game.enemy_interval_ms == 200

    for _ in range(12):
        game.tick()
    assert enemy.grid_pos == (3, 5)

    game.tick()
    assert enemy.grid_pos != (3, 5)


def test_enemy_interval_shrinks_to_a_floor(game):
    expected = {0: 200, 3: 140, 6: 80, 7: 80, 12: 80}
    for index, interval in expected.items():
        game.load_level(index)
        assert game.enemy_interval_ms == interval


def test_enemy_count_grows_with_level():
    game = MazeChaseGame(seed=1)
    for index, count in ((0, 4), (2, 6), (4, 8), (9, 8)):
        game.load_level(index)
        enemies = game.level.enemies
        assert len(enemies) == count
        assert len({e.grid_pos for e in enemies}) == count
        layout = game.level.layout
        er, ec = layout.entrance
        for e in enemies:
            assert e.grid_pos in game.level.reachable
            assert e.grid_pos != layout.exit
            assert max(abs(e.grid_pos[0] - er), abs(e.grid_pos[1] - ec)) > 2


# ----------------------------
# Levels and session
# ----------------------------

def test_level_completion_banks_score_and_advances():
    calls = []

    def factory(index):
        calls.append(index)
        return room_factory(index)

    game = MazeChaseGame(maze_factory=factory, base_enemies=0, max_extra_enemies=0,
                         ally_noise=0.0, seed=0)
    park_ally(game)
    game.level.collectibles.clear()
    game.level.power_ups.clear()
    game.level.player.score = 300
    game.level.ally.score = 200
    game.queue_direction(Direction.RIGHT)

    for _ in range(40):
        game.tick()

    assert game.status is GameStatus.LEVEL_COMPLETE
    assert game.events["player_exit"] == 1.0
    assert game.events["level_complete"] == 1.0
    assert game.total_score == 500
    assert game.combined_score == 500

    # Frozen while the transition runs
    game.tick()
    assert game.tick_count == 40
    assert game.queue_direction(Direction.LEFT) is False

    assert game.update(0) == 0
    assert game.update(1999) == 0
    assert game.level.index == 0
    game.update(2000)

    assert game.level.index == 1
    assert game.status is GameStatus.PLAYING
    assert calls == [0, 1]
    assert game.combined_score == 500
    assert game.level.player.score == 0
    assert game.level.player.grid_pos == ROOM_ENTRANCE


def test_reset_cancels_pending_transition(game):
    game.queue_direction(Direction.RIGHT)
    for _ in range(40):
        game.tick()
    assert game.status is GameStatus.LEVEL_COMPLETE

    game.reset_session()
    assert game.status is GameStatus.PLAYING
    assert game.total_score == 0

    game.update(0)
    game.update(5000)
    assert game.level.index == 0


def test_end_game_reports_combined_score_once(make_game):
    results = []
    game = make_game(on_game_complete=lambda *args: results.append(args))
    game.level.player.score = 400
    game.level.ally.score = 100

    snap = game.end_game()
    game.end_game()

    assert snap.status is GameStatus.GAME_OVER
    assert results == [(500, 1)]


def test_pause_freezes_the_simulation(game):
    game.update(0)
    assert game.toggle_pause() is GameStatus.PAUSED
    assert game.update(1000) == 0
    assert game.update(5000) == 0
    assert game.tick_count == 0
    assert game.queue_direction(Direction.RIGHT) is False
    assert game.handle_key("ArrowRight") is False

    assert game.toggle_pause() is GameStatus.PLAYING
    # No fast-forward over the paused time
    assert game.update(6000) == 0
    assert game.update(6016) == 1
    assert game.tick_count == 1


def test_update_runs_fixed_ticks_with_a_catchup_cap(game):
    assert game.update(0) == 0
    assert game.update(10) == 0
    assert game.update(16) == 1
    assert game.update(40) == 1
    assert game.update(48) == 1
    assert game.update(1000) == 5
    assert game.update(1016) == 1
    assert game.tick_count == 9


def test_handle_key_maps_arrows_and_wasd(game):
    assert game.handle_key("d") is True
    assert game.level.player.queued_direction is Direction.RIGHT
    assert game.handle_key("ArrowDown") is True
    assert game.level.player.queued_direction is Direction.DOWN
    assert game.handle_key("Enter") is False
    assert game.level.player.queued_direction is Direction.DOWN


def test_unknown_modes_are_rejected():
    with pytest.raises(ValueError):
        MazeChaseGame(enemy_mode="sneaky")
    with pytest.raises(ValueError):
        MazeChaseGame(collision_mode="brutal")


def test_snapshot_is_immutable(game):
    snap = game.snapshot()
    with pytest.raises(dataclasses.FrozenInstanceError):
        snap.tick = 5
    assert not snap.grid.flags.writeable
    assert isinstance(snap.collectibles, frozenset)


# ----------------------------
# Long runs on generated mazes
# ----------------------------

def _check_invariants(game):
    level = game.level
    grid = level.layout.grid
    for agent in (level.player, level.ally):
        assert grid[agent.grid_pos] == 0
        assert grid[pixel_to_grid(agent.pixel_pos)] == 0
        assert agent.score >= 0
        assert agent.power_up_active == (game.clock_ms < agent.power_up_expiry_ms)
    for enemy in level.enemies:
        assert grid[enemy.grid_pos] == 0
    assert game.combined_score >= 0


def test_random_play_never_enters_walls():
    game = MazeChaseGame(seed=7)
    rng = random.Random(7)
    directions = [Direction.UP, Direction.DOWN, Direction.LEFT, Direction.RIGHT]
    for i in range(1000):
        if i % 10 == 0:
            game.queue_direction(rng.choice(directions))
        game.tick()
        if game.status is not GameStatus.PLAYING:
            break
        _check_invariants(game)


def test_same_seed_same_game():
    def run(seed):
        game = MazeChaseGame(seed=seed)
        moves = [Direction.RIGHT, Direction.DOWN, Direction.RIGHT, Direction.UP]
        for i in range(300):
            if i % 25 == 0:
                game.queue_direction(moves[(i // 25) % len(moves)])
            game.tick()
        snap = game.snapshot()
        return (snap.player, snap.ally, snap.enemies, snap.collectibles, snap.status)

    assert run(3) == run(3)


def test_idle_agents_rest_on_cell_centers():
    game = MazeChaseGame(seed=2)
    for _ in range(300):
        game.tick()
        if game.status is not GameStatus.PLAYING:
            break
        for agent in (game.level.player, game.level.ally):
            if agent.direction is Direction.NONE:
                assert agent.pixel_pos == grid_to_pixel(agent.grid_pos)


# ----------------------------
# Contact edge cases
# ----------------------------

def test_knocked_out_partner_is_hit_once(game):
    player, ally = game.level.player, game.level.ally
    # Powered player camps on the ally's start cell
    place(player, ally.start)
    player.power_up_active = True
    player.power_up_expiry_ms = 10_000.0
    ally.score = 5000

    hits = 0.0
    for _ in range(30):
        game.tick()
        hits += game.events.get("ally_hit", 0.0)

    assert hits == 1.0
    assert ally.score == 4800
    assert ally.grid_pos != player.grid_pos


def test_respawn_avoids_an_enemy_on_the_start_cell(game):
    player = game.level.player
    place(player, (2, 3))
    game.level.enemies += [Enemy(id="enemy-0", grid_pos=(2, 3)),
                           Enemy(id="enemy-1", grid_pos=ROOM_ENTRANCE)]
    game.tick()
    assert game.events["player_hit"] == 1.0
    assert player.grid_pos not in {(2, 3), ROOM_ENTRANCE}
    assert player.grid_pos in game.level.reachable


def test_enemy_stepping_into_a_moving_agent_hits(game):
    player = game.level.player
    place(player, (2, 2))
    player.score = 1000
    game.level.enemies.append(Enemy(id="enemy-0", grid_pos=(2, 3)))
    game.queue_direction(Direction.RIGHT)
    # Enemy steps on the very first tick, while the player is leaving its center
    game._enemy_clock_ms = game.enemy_interval_ms - game.tick_ms

    game.tick()

    assert game.events["player_hit"] == 1.0
    assert player.score == 800
    assert player.grid_pos == ROOM_ENTRANCE


def test_head_on_swap_counts_as_contact(game):
    player = game.level.player
    place(player, (2, 2))
    player.score = 1000
    game.level.enemies.append(Enemy(id="enemy-0", grid_pos=(2, 3)))
    game.queue_direction(Direction.RIGHT)
    # Enemy steps on tick 5, the tick the player crosses into (2, 3)
    game._enemy_clock_ms = game.enemy_interval_ms - 5 * game.tick_ms

    hits = 0.0
    for _ in range(5):
        game.tick()
        hits += game.events.get("player_hit", 0.0)

    assert hits == 1.0
    assert player.score == 800
    assert player.grid_pos == ROOM_ENTRANCE


def test_enemy_runs_from_freshly_powered_agent(game):
    player = game.level.player
    place(player, (2, 1))
    game.level.power_ups.add((3, 1))
    enemy = Enemy(id="enemy-0", grid_pos=(3, 2))
    game.level.enemies.append(enemy)
    game.queue_direction(Direction.DOWN)

    for _ in range(12):
        game.tick()
    assert player.grid_pos == (3, 1)
    assert player.power_up_active
    assert enemy.grid_pos == (3, 2)

    game.tick()
    assert enemy.fleeing
    assert manhattan(enemy.grid_pos, player.grid_pos) == 2
    assert player.score == 500


def test_lapsed_power_up_does_not_defeat(game):
    player = game.level.player
    place(player, (2, 3))
    player.score = 300
    player.power_up_active = True
    player.power_up_expiry_ms = game.tick_ms
    game.level.enemies.append(Enemy(id="enemy-0", grid_pos=(2, 3)))

    game.tick()

    assert "player_enemy_defeated" not in game.events
    assert game.events["player_hit"] == 1.0
    assert player.score == 100
    assert not player.power_up_active


def test_recent_cells_hold_current_and_three_before(game):
    game.queue_direction(Direction.RIGHT)
    for _ in range(30):
        game.tick()
    assert list(game.level.player.recent_cells) == [(1, 1), (1, 2), (1, 3), (1, 4)]
