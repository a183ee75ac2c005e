"""
Keyboard to direction mapping (arrow keys and WASD)
"""

from typing import Dict, Optional

from .entities import Direction

KEY_BINDINGS: Dict[str, Direction] = {
    "ArrowUp": Direction.UP,
    "ArrowDown": Direction.DOWN,
    "ArrowLeft": Direction.LEFT,
    "ArrowRight": Direction.RIGHT,
    "w": Direction.UP,
    "s": Direction.DOWN,
    "a": Direction.LEFT,
    "d": Direction.RIGHT,
}


def direction_for_key(key: str) -> Optional[Direction]:
    """Direction bound to a key name, or None for keys the game ignores"""
    if len(key) == 1:
        key = key.lower()
    return KEY_BINDINGS.get(key)
