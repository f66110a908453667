"""
Best score persistence for 2048.
Keeps a single number in a small JSON file.
"""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_BEST_SCORE_FILE = 'best_score.json'


class BestScoreStore:
    """Best score read once at startup and written whenever it is beaten."""

    def __init__(self, path=DEFAULT_BEST_SCORE_FILE):
        self.path = Path(path)
        self.best = self._load()

    def _load(self) -> int:
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except FileNotFoundError:
            return 0
        except (OSError, ValueError) as e:
            logger.warning("Could not read best score from %s: %s", self.path, e)
            return 0

        value = data.get('best_score') if isinstance(data, dict) else None
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            logger.warning("Ignoring invalid best score in %s: %r", self.path, value)
            return 0
        return value

    def record(self, score: int) -> int:
        """
        Store the score if it beats the current best.

        Args:
            score: Current game score

        Returns:
            Best score after the update
        """
        if score > self.best:
            self.best = score
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w') as f:
                json.dump({'best_score': score}, f)
            logger.info("New best score %d", score)
        return self.best
