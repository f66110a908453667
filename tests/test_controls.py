import pytest

from controls import MIN_SWIPE_DISTANCE, direction_from_key, direction_from_swipe


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("ArrowLeft", "left"),
        ("ArrowRight", "right"),
        ("ArrowUp", "up"),
        ("ArrowDown", "down"),
        ("a", "left"),
        ("d", "right"),
        ("w", "up"),
        ("s", "down"),
        ("Enter", None),
        ("q", None),
    ],
)
def test_direction_from_key(key, expected) -> None:
    assert direction_from_key(key) == expected


@pytest.mark.parametrize(
    ("dx", "dy", "expected"),
    [
        (80, 10, "right"),
        (-80, 10, "left"),
        (5, 60, "down"),
        (5, -60, "up"),
        (31, 0, "right"),
        (30, 0, None),
        (-30, 0, None),
        (0, 0, None),
        (50, 50, "down"),
        (-50, -50, "up"),
        (40, -35, "right"),
    ],
)
def test_direction_from_swipe(dx, dy, expected) -> None:
    assert direction_from_swipe(dx, dy) == expected


def test_swipe_threshold_applies_to_dominant_axis_only() -> None:
    # Long vertical drift does not rescue a short horizontal swipe.
    assert direction_from_swipe(25, 20) is None
    assert direction_from_swipe(25, 20, min_distance=10) == "right"


def test_default_threshold() -> None:
    assert MIN_SWIPE_DISTANCE == 30
