import itertools
import json
from pathlib import Path
from types import SimpleNamespace

import pytest

from best_score import BestScoreStore
from game_2048 import GridEngine
from llm_plays_2048 import get_llm_move, get_move_tool_schema, play_game_with_llm
from tests.helpers import LOCKED_ROWS, FirstEmptyRandom, empty_rows


def fake_client(messages):
    """Chat client whose completions come from `messages` in order."""
    calls = []
    replies = iter(messages)

    def create(**params):
        calls.append(params)
        return SimpleNamespace(choices=[SimpleNamespace(message=next(replies))])

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return client, calls


def text_reply(content):
    return SimpleNamespace(content=content, tool_calls=None)


def tool_reply(direction, call_id="call_1", reasoning="thinking"):
    tool_call = SimpleNamespace(
        id=call_id,
        function=SimpleNamespace(name="make_move", arguments=json.dumps({"direction": direction})),
    )
    return SimpleNamespace(content=reasoning, tool_calls=[tool_call])


def test_text_mode_logs_invalid_and_valid_moves(tmp_path: Path) -> None:
    engine = GridEngine.from_grid(LOCKED_ROWS + [[0, 4, 2, 4]], rng=FirstEmptyRandom())
    client, calls = fake_client([
        text_reply("Right seems good.\nFINAL_RESPONSE: RIGHT"),
        text_reply("Then left.\nFINAL_RESPONSE: left"),
    ])
    log_file = tmp_path / "logs" / "game_log_fake.json"

    score = play_game_with_llm(client, engine, log_file=str(log_file), model="fake-model")

    assert score == 0
    log = json.loads(log_file.read_text())
    assert [entry.get("action") for entry in log[:3]] == ["INITIAL", "RIGHT", "LEFT"]
    assert log[0]["mode"] == "text_parsing"
    assert log[1]["invalid_move"] is True
    assert log[2]["spawned_at"] == [3, 3]
    assert log[2]["merged_cells"] == []
    assert log[2]["is_over"] is True
    assert log[-1] == {
        "final_score": 0,
        "best_score": 0,
        "game_end_reason": "no_moves_available",
        "total_moves": 1,
    }
    assert calls[0]["model"] == "fake-model"
    assert "tools" not in calls[0]
    assert any("(RIGHT) was invalid" in message["content"] for message in calls[1]["messages"])


def test_function_calling_mode_stops_on_win(tmp_path: Path) -> None:
    engine = GridEngine.from_grid([[1024, 1024, 0, 0]] + empty_rows(3), rng=FirstEmptyRandom())
    client, calls = fake_client([tool_reply("left")])
    store = BestScoreStore(tmp_path / "best.json")
    log_file = tmp_path / "game_log_fc.json"

    score = play_game_with_llm(
        client, engine, log_file=str(log_file), use_function_calling=True, best_score=store
    )

    assert score == 2048
    assert store.best == 2048
    log = json.loads(log_file.read_text())
    assert log[1]["merged_cells"] == [[0, 0]]
    assert log[1]["is_won"] is True
    assert log[1]["tool_call"]["arguments"] == {"direction": "left"}
    assert log[-1]["game_end_reason"] == "won"
    assert calls[0]["tools"] == [get_move_tool_schema()]


def test_stops_after_too_many_invalid_moves(tmp_path: Path) -> None:
    engine = GridEngine.from_grid([[2, 4, 0, 0]] + empty_rows(3), rng=FirstEmptyRandom())
    client, _ = fake_client(itertools.repeat(text_reply("FINAL_RESPONSE: LEFT")))
    log_file = tmp_path / "game_log_stuck.json"

    play_game_with_llm(client, engine, log_file=str(log_file), max_consecutive_invalid_moves=3)

    log = json.loads(log_file.read_text())
    assert log[-1]["game_end_reason"] == "too_many_invalid_moves_3"
    assert log[-1]["total_moves"] == 0
    assert sum(1 for entry in log if entry.get("invalid_move")) == 3


def test_max_moves_reached(tmp_path: Path) -> None:
    engine = GridEngine.from_grid(empty_rows(4), rng=FirstEmptyRandom())
    engine.spawn_random_tile()
    client, _ = fake_client(itertools.cycle([text_reply("FINAL_RESPONSE: RIGHT"), text_reply("FINAL_RESPONSE: LEFT")]))
    log_file = tmp_path / "game_log_cap.json"

    play_game_with_llm(client, engine, log_file=str(log_file), max_moves=2)

    log = json.loads(log_file.read_text())
    assert log[-1]["game_end_reason"] == "max_moves_reached"
    assert log[-1]["total_moves"] == 2


def test_unparsable_replies_end_game_with_error(tmp_path: Path) -> None:
    engine = GridEngine.from_grid([[2, 2, 0, 0]] + empty_rows(3), rng=FirstEmptyRandom())
    client, calls = fake_client(itertools.repeat(text_reply("I am not sure.")))
    log_file = tmp_path / "game_log_err.json"

    play_game_with_llm(client, engine, log_file=str(log_file))

    log = json.loads(log_file.read_text())
    assert log[-1]["game_end_reason"].startswith("error: Could not get valid move after 5 attempts")
    assert len(calls) == 5


def test_get_llm_move_retries_after_api_error() -> None:
    engine = GridEngine.from_grid([[2, 2, 0, 0]] + empty_rows(3))
    attempts = []

    def create(**params):
        attempts.append(params)
        if len(attempts) == 1:
            raise ConnectionError("boom")
        return SimpleNamespace(choices=[SimpleNamespace(message=text_reply("FINAL_RESPONSE: UP"))])

    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    messages = []

    direction, response = get_llm_move(client, engine, messages)

    assert direction == "up"
    assert response == "FINAL_RESPONSE: UP"
    assert len(attempts) == 2
    assert messages[0]["role"] == "user"
    assert "4×4 grid" in messages[0]["content"]
    assert messages[-1] == {"role": "assistant", "content": "FINAL_RESPONSE: UP"}


def test_get_llm_move_rejects_unknown_tool_direction() -> None:
    engine = GridEngine.from_grid([[2, 2, 0, 0]] + empty_rows(3))
    client, _ = fake_client([tool_reply("diagonal")] * 2)

    with pytest.raises(ValueError):
        get_llm_move(client, engine, [], max_retries=2, use_function_calling=True)
