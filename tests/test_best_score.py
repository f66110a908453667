import json
from pathlib import Path

import pytest

from best_score import BestScoreStore


def test_missing_file_defaults_to_zero(tmp_path: Path) -> None:
    store = BestScoreStore(tmp_path / "best.json")
    assert store.best == 0
    assert not (tmp_path / "best.json").exists()


@pytest.mark.parametrize("content", ["not json", "[]", '{"best_score": "12"}', '{"best_score": -3}', "{}"])
def test_unparsable_file_defaults_to_zero(tmp_path: Path, content: str) -> None:
    path = tmp_path / "best.json"
    path.write_text(content)

    assert BestScoreStore(path).best == 0


def test_reads_stored_value_once(tmp_path: Path) -> None:
    path = tmp_path / "best.json"
    path.write_text(json.dumps({"best_score": 512}))

    store = BestScoreStore(path)
    path.write_text(json.dumps({"best_score": 4096}))

    assert store.best == 512


def test_record_writes_only_when_beaten(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "best.json"
    store = BestScoreStore(path)

    assert store.record(0) == 0
    assert not path.exists()

    assert store.record(120) == 120
    assert json.loads(path.read_text()) == {"best_score": 120}

    assert store.record(80) == 120
    assert json.loads(path.read_text()) == {"best_score": 120}

    assert BestScoreStore(path).best == 120
