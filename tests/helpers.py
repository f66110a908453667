from typing import List


class FirstEmptyRandom:
    """Stand-in RNG: always picks the first empty cell and rolls a fixed number."""

    def __init__(self, roll: float = 0.5) -> None:
        self.roll = roll
        self.choices: List[list] = []

    def choice(self, seq):
        self.choices.append(list(seq))
        return seq[0]

    def random(self) -> float:
        return self.roll


def empty_rows(n: int, size: int = 4) -> List[List[int]]:
    return [[0] * size for _ in range(n)]


def grid_values(engine) -> List[int]:
    return [value for row in engine.state.grid for value in row]


# Full checkerboard rows; only the bottom row is left to play with.
LOCKED_ROWS = [
    [2, 4, 2, 4],
    [4, 2, 4, 2],
    [2, 4, 2, 4],
]
