"""
Arcade front end for Money Grab

Renders GameSnapshots and feeds keyboard input into the engine. The window
only translates key symbols and forwards its frame clock; all rules live
in MazeChaseGame.

Play:
    python -m game.maze.window --player Alex --companion Sophia
"""

from __future__ import annotations

import argparse

import arcade

from .engine import MazeChaseGame
from .entities import GameStatus, GameSnapshot, PixelPos
from .env import COLORS

HUD_HEIGHT = 48

# Arcade key symbols -> the key names the engine understands
ARCADE_KEY_NAMES = {
    arcade.key.UP: "ArrowUp",
    arcade.key.DOWN: "ArrowDown",
    arcade.key.LEFT: "ArrowLeft",
    arcade.key.RIGHT: "ArrowRight",
    arcade.key.W: "w",
    arcade.key.S: "s",
    arcade.key.A: "a",
    arcade.key.D: "d",
}


class MazeWindow(arcade.Window):
    """Arcade window for rendering and playing the maze-chase game"""

    def __init__(self, game: MazeChaseGame, title: str = "Money Grab"):
        layout = game.level.layout
        self.maze_width = layout.width * game.tile_size
        self.maze_height = layout.height * game.tile_size
        super().__init__(self.maze_width, self.maze_height + HUD_HEIGHT, title)
        self.game = game
        self.background_color = COLORS["floor"]

        # Host clock fed into MazeChaseGame.update()
        self._clock_ms = 0.0

        self.HUD_C = (220, 220, 220)
        self._hud_left = arcade.Text("", 12, self.maze_height + 26, self.HUD_C, 14)
        self._hud_right = arcade.Text("", 12, self.maze_height + 6, self.HUD_C, 12)
        self._banner = arcade.Text(
            "", self.maze_width / 2, self.maze_height / 2, arcade.color.WHITE, 24,
            anchor_x="center", anchor_y="center",
        )

    def _to_screen(self, pixel: PixelPos):
        # Game y grows downwards, Arcade y grows upwards
        x, y = pixel
        return x, self.maze_height - y

    def on_draw(self):
        """Draw the current game state"""
        self.clear()
        snap = self.game.snapshot()
        tile = self.game.tile_size

        rows, cols = snap.grid.shape
        for r in range(rows):
            for c in range(cols):
                if snap.grid[r, c]:
                    self._draw_cell(r, c, COLORS["wall"])
        self._draw_cell(*snap.exit, COLORS["exit"])

        for r, c in snap.collectibles:
            x, y = self._to_screen(((c + 0.5) * tile, (r + 0.5) * tile))
            arcade.draw_circle_filled(x, y, tile * 0.12, COLORS["cash"])

        for r, c in snap.power_ups:
            x, y = self._to_screen(((c + 0.5) * tile, (r + 0.5) * tile))
            arcade.draw_circle_filled(x, y, tile * 0.3, COLORS["power_up"])

        for e in snap.enemies:
            x, y = self._to_screen(e.pixel_pos)
            color = COLORS["enemy_fleeing"] if e.fleeing else COLORS["enemy"]
            arcade.draw_circle_filled(x, y, tile * 0.45, color)
            if e.is_locked:
                arcade.draw_circle_outline(x, y, tile * 0.6, COLORS["power_up"], 2)

        for view, color in ((snap.ally, COLORS["ally"]), (snap.player, COLORS["player"])):
            x, y = self._to_screen(view.pixel_pos)
            radius = tile * (0.38 if view.is_grabbing else 0.45)
            arcade.draw_circle_filled(x, y, radius, color)
            if view.power_up_active:
                arcade.draw_circle_outline(x, y, tile * 0.55, COLORS["power_up"], 2)

        self._draw_hud(snap)

    def _draw_cell(self, row: int, col: int, color):
        tile = self.game.tile_size
        left = col * tile
        top = self.maze_height - row * tile
        arcade.draw_lrbt_rectangle_filled(left, left + tile, top - tile, top, color)

    def _draw_hud(self, snap: GameSnapshot):
        p, a = snap.player, snap.ally
        self._hud_left.text = (f"Level {snap.level_index + 1}   "
                               f"{p.name}: ${p.score}   {a.name}: ${a.score}   "
                               f"Team: ${snap.combined_score}")
        power = [f"{v.name} {v.power_up_ms_left / 1000:.0f}s"
                 for v in (p, a) if v.power_up_active]
        self._hud_right.text = (f"Cash left: {len(snap.collectibles)}   "
                                + ("POWER: " + ", ".join(power) if power else "")
                                + "   [P] pause  [R] restart  [Esc] quit")
        self._hud_left.draw()
        self._hud_right.draw()

        banner = {
            GameStatus.PAUSED: "Paused",
            GameStatus.LEVEL_COMPLETE: f"Level {snap.level_index + 1} complete!",
            GameStatus.GAME_OVER: f"Game over - team scored ${snap.combined_score}",
        }.get(snap.status)
        if banner:
            self._banner.text = banner
            self._banner.draw()

    def on_update(self, delta_time: float):
        self._clock_ms += delta_time * 1000.0
        self.game.update(self._clock_ms)

    def on_key_press(self, symbol: int, modifiers: int):
        if symbol in (arcade.key.P, arcade.key.SPACE):
            self.game.toggle_pause()
        elif symbol == arcade.key.R:
            self.game.reset_session()
        elif symbol == arcade.key.ESCAPE:
            self.game.end_game()
            self.close()
        elif symbol in ARCADE_KEY_NAMES:
            self.game.handle_key(ARCADE_KEY_NAMES[symbol])


def play(
    player_name: str = "Player",
    companion_name: str = "Companion",
    strict: bool = False,
    lock_on: bool = False,
    seed=None,
):
    """Open a window and play until it is closed"""

    def on_game_complete(final_score: int, level_reached: int):
        print(f"Final team score: {final_score} (reached level {level_reached})")

    game = MazeChaseGame(
        player_name=player_name,
        companion_name=companion_name,
        on_game_complete=on_game_complete,
        enemy_mode="lock_on" if lock_on else "greedy",
        collision_mode="strict" if strict else "lenient",
        seed=seed,
        verbose=1,
    )
    MazeWindow(game)
    arcade.run()
    game.end_game()


def main():
    parser = argparse.ArgumentParser(description="Play Money Grab with an AI companion")
    parser.add_argument("--player", type=str, default="Player", help="Your display name")
    parser.add_argument("--companion", type=str, default="Companion", help="Companion display name")
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Enemy contact without a power-up ends the game",
    )
    parser.add_argument(
        "--lock-on",
        action="store_true",
        help="Enemies commit to a target once they get close",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed")

    args = parser.parse_args()
    play(
        player_name=args.player,
        companion_name=args.companion,
        strict=args.strict,
        lock_on=args.lock_on,
        seed=args.seed,
    )


if __name__ == "__main__":
    main()
