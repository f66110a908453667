"""
Direction sources for 2048.
Translates key presses and swipe gestures into move directions.
"""

from typing import Optional

from game_2048 import DOWN, LEFT, RIGHT, UP

MIN_SWIPE_DISTANCE = 30

KEY_DIRECTIONS = {
    'ArrowLeft': LEFT,
    'ArrowRight': RIGHT,
    'ArrowUp': UP,
    'ArrowDown': DOWN,
    'a': LEFT,
    'd': RIGHT,
    'w': UP,
    's': DOWN,
}


def direction_from_key(key: str) -> Optional[str]:
    """Map a key name to a direction, or None for keys that do not move."""
    return KEY_DIRECTIONS.get(key)


def direction_from_swipe(dx: float, dy: float, min_distance: float = MIN_SWIPE_DISTANCE) -> Optional[str]:
    """
    Classify a swipe by its dominant axis.

    Screen coordinates are assumed: positive dx points right, positive dy
    points down. Equal displacements count as vertical.

    Args:
        dx: Horizontal displacement between touch start and end
        dy: Vertical displacement between touch start and end
        min_distance: Displacement that must be exceeded on the dominant axis

    Returns:
        Direction of the swipe, or None if it was too short
    """
    if abs(dx) > abs(dy):
        if dx > min_distance:
            return RIGHT
        if dx < -min_distance:
            return LEFT
    else:
        if dy > min_distance:
            return DOWN
        if dy < -min_distance:
            return UP
    return None
