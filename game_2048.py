"""
2048 Game Engine
Line compaction/merging, directional moves, scoring, win/loss detection
and single-step undo, all held by one GridEngine instance.
"""

import logging
import random
from dataclasses import dataclass, field, replace
from typing import FrozenSet, List, NamedTuple, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

LEFT = 'left'
RIGHT = 'right'
UP = 'up'
DOWN = 'down'
DIRECTIONS = (LEFT, RIGHT, UP, DOWN)


class InvalidArgument(ValueError):
    """Raised for an unknown direction, a bad board size or a malformed grid."""


class Position(NamedTuple):
    row: int
    col: int


class LineResult(NamedTuple):
    result: List[int]
    merged_indices: FrozenSet[int]
    gained: int


@dataclass(frozen=True)
class GameConfig:
    """Board size, winning tile and spawn odds for one engine."""

    size: int = 4
    win_value: int = 2048
    four_probability: float = 0.1

    def __post_init__(self) -> None:
        if isinstance(self.size, bool) or not isinstance(self.size, int) or self.size < 2:
            raise InvalidArgument(f"size must be an integer >= 2, got {self.size!r}")
        win = self.win_value
        if isinstance(win, bool) or not isinstance(win, int) or win < 4 or win & (win - 1):
            raise InvalidArgument(f"win_value must be a power of two >= 4, got {win!r}")
        odds = self.four_probability
        if isinstance(odds, bool) or not isinstance(odds, (int, float)) or not 0.0 <= odds <= 1.0:
            raise InvalidArgument(f"four_probability must be a number within [0, 1], got {odds!r}")


@dataclass(frozen=True)
class GameState:
    grid: Tuple[Tuple[int, ...], ...]
    score: int
    is_won: bool
    is_over: bool


@dataclass(frozen=True)
class MoveOutcome:
    changed: bool
    score_gained: int = 0
    merged_cells: FrozenSet[Position] = field(default_factory=frozenset)
    spawned_at: Optional[Position] = None


NO_CHANGE = MoveOutcome(changed=False)


def compact_and_merge(line: Sequence[int]) -> LineResult:
    """
    Slide a single line (row or column) towards index 0 and merge it.

    Each tile merges at most once: after a pair combines, the tile that
    follows is compared with the next one, never with the doubled value.

    Args:
        line: Cell values read in the direction of motion

    Returns:
        LineResult with the padded line, the output indices that hold a
        merged tile, and the score gained by those merges
    """
    # Remove zeros
    non_zero = [val for val in line if val != 0]

    merged = []
    merged_indices = set()
    gained = 0
    i = 0
    while i < len(non_zero):
        if i + 1 < len(non_zero) and non_zero[i] == non_zero[i + 1]:
            value = non_zero[i] * 2
            merged_indices.add(len(merged))
            merged.append(value)
            gained += value
            i += 2
        else:
            merged.append(non_zero[i])
            i += 1

    # Fill with zeros to restore the original length
    merged.extend([0] * (len(line) - len(merged)))
    return LineResult(merged, frozenset(merged_indices), gained)


def _line_positions(size: int, direction: str, index: int) -> List[Position]:
    """Grid coordinates of line `index`, ordered in the direction of motion."""
    if direction == LEFT:
        return [Position(index, c) for c in range(size)]
    if direction == RIGHT:
        return [Position(index, c) for c in reversed(range(size))]
    if direction == UP:
        return [Position(r, index) for r in range(size)]
    return [Position(r, index) for r in reversed(range(size))]


def can_move(grid: Sequence[Sequence[int]]) -> bool:
    """
    Check if any move is possible from the given grid.

    Args:
        grid: Square grid of cell values

    Returns:
        True if there is an empty cell or two equal neighbours
    """
    size = len(grid)
    for r in range(size):
        for c in range(size):
            if grid[r][c] == 0:
                return True
            if c + 1 < size and grid[r][c] == grid[r][c + 1]:
                return True
            if r + 1 < size and grid[r][c] == grid[r + 1][c]:
                return True
    return False


class GridEngine:
    """
    Owns the grid, the score, the terminal flags and the undo snapshot.

    State is only readable from outside, through the properties and the
    `state` snapshot. The engine is not thread-safe; callers serialise
    access to it.
    """

    def __init__(self, config: Optional[GameConfig] = None, rng: Optional[random.Random] = None):
        self._setup(config or GameConfig(), rng)
        self.reset()

    def _setup(
        self,
        config: GameConfig,
        rng: Optional[random.Random],
        grid: Optional[List[List[int]]] = None,
        score: int = 0,
    ) -> None:
        self._config = config
        self._rng = rng or random.Random()
        self._grid: List[List[int]] = grid if grid is not None else []
        self._score = score
        self._is_won = False
        self._is_over = False
        self._snapshot: Optional[Tuple[List[List[int]], int]] = None

    @classmethod
    def from_grid(
        cls,
        grid: Sequence[Sequence[int]],
        score: int = 0,
        config: Optional[GameConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> "GridEngine":
        """
        Build an engine around an existing grid instead of a fresh game.

        The board size comes from the grid; other settings come from config.
        Terminal state is evaluated straight away.
        """
        size = len(grid)
        if any(len(row) != size for row in grid):
            raise InvalidArgument("grid must be square")
        for row in grid:
            for value in row:
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    raise InvalidArgument(f"cell values must be non-negative integers, got {value!r}")
        if isinstance(score, bool) or not isinstance(score, int) or score < 0:
            raise InvalidArgument(f"score must be a non-negative integer, got {score!r}")

        engine = cls.__new__(cls)
        engine._setup(replace(config or GameConfig(), size=size), rng, [list(row) for row in grid], score)
        engine._check_game_state()
        return engine

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def size(self) -> int:
        return self._config.size

    @property
    def score(self) -> int:
        return self._score

    @property
    def is_won(self) -> bool:
        return self._is_won

    @property
    def is_over(self) -> bool:
        return self._is_over

    @property
    def state(self) -> GameState:
        return GameState(
            grid=tuple(tuple(row) for row in self._grid),
            score=self._score,
            is_won=self._is_won,
            is_over=self._is_over,
        )

    @property
    def can_undo(self) -> bool:
        return self._snapshot is not None

    def reset(self, size: Optional[int] = None) -> GameState:
        """
        Start a new game, optionally on a board of a different size.

        Args:
            size: New board size; keeps the current size when omitted

        Returns:
            State of the new game with two tiles placed
        """
        if size is not None:
            self._config = replace(self._config, size=size)
        self._grid = [[0] * self.size for _ in range(self.size)]
        self._score = 0
        self._is_won = False
        self._is_over = False
        self._snapshot = None
        self.spawn_random_tile()
        self.spawn_random_tile()
        logger.info("New %dx%d game started", self.size, self.size)
        return self.state

    def spawn_random_tile(self) -> Optional[Position]:
        """
        Add a random tile (2, or 4 with `four_probability`) to an empty cell.

        Returns:
            Position of the new tile, or None when the board is full
        """
        empty_positions = [
            Position(r, c)
            for r in range(self.size)
            for c in range(self.size)
            if self._grid[r][c] == 0
        ]
        if not empty_positions:
            return None
        pos = self._rng.choice(empty_positions)
        self._grid[pos.row][pos.col] = 4 if self._rng.random() < self._config.four_probability else 2
        return pos

    def move(self, direction: str) -> MoveOutcome:
        """
        Shift all tiles in the given direction.

        A move that changes nothing, or any move once the game is won or
        over, leaves the engine untouched and returns changed=False.

        Args:
            direction: One of 'left', 'right', 'up', 'down'

        Returns:
            MoveOutcome describing merges, score gained and the spawned tile
        """
        if direction not in DIRECTIONS:
            raise InvalidArgument(
                f"Invalid direction: {direction!r}. Must be 'left', 'right', 'up', or 'down'"
            )
        if self._is_won or self._is_over:
            return NO_CHANGE

        previous = ([row[:] for row in self._grid], self._score)
        new_grid = [row[:] for row in self._grid]
        merged_cells = set()
        gained = 0
        for index in range(self.size):
            positions = _line_positions(self.size, direction, index)
            line = [self._grid[p.row][p.col] for p in positions]
            result = compact_and_merge(line)
            for pos, value in zip(positions, result.result):
                new_grid[pos.row][pos.col] = value
            merged_cells.update(positions[i] for i in result.merged_indices)
            gained += result.gained

        if new_grid == self._grid:
            logger.debug("Move %s changed nothing", direction)
            return NO_CHANGE

        self._snapshot = previous
        self._grid = new_grid
        self._score += gained
        spawned_at = self.spawn_random_tile()
        self._check_game_state()
        logger.debug("Move %s gained %d, spawned at %s", direction, gained, spawned_at)
        return MoveOutcome(
            changed=True,
            score_gained=gained,
            merged_cells=frozenset(merged_cells),
            spawned_at=spawned_at,
        )

    def undo(self) -> Optional[GameState]:
        """
        Roll back the last changed move. There is no redo.

        Returns:
            Restored state, or None when there is nothing to undo
        """
        if self._snapshot is None:
            return None
        grid, score = self._snapshot
        self._snapshot = None
        self._grid = [row[:] for row in grid]
        self._score = score
        self._is_won = False
        self._is_over = False
        logger.info("Move undone, score back to %d", self._score)
        return self.state

    def _check_game_state(self) -> None:
        if not self._is_won and any(self._config.win_value in row for row in self._grid):
            self._is_won = True
            logger.info("Reached %d with score %d", self._config.win_value, self._score)
        elif not self._is_won and not can_move(self._grid):
            self._is_over = True
            logger.info("No moves left, final score %d", self._score)


def display(state: GameState) -> str:
    """
    Display a game state as a markdown table.

    Args:
        state: Game state to display
    """
    res = ''
    width = max(4, len(str(max(max(row) for row in state.grid))))
    # Rows
    for row in state.grid:
        res += "| " + " | ".join(f"{val if val else '':^{width}}" for val in row) + " |\n"

    res += f"\nScore: {state.score}"
    return res
