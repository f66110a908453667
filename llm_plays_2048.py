"""
LLM-Powered 2048 Game Player
Uses an OpenAI-compatible chat model as the direction source for a GridEngine
and logs every attempted move.
"""

import argparse
import json
import logging
import os
import random
import re

from openai import OpenAI

from best_score import DEFAULT_BEST_SCORE_FILE, BestScoreStore
from game_2048 import DIRECTIONS, GameConfig, GridEngine, display

logger = logging.getLogger(__name__)

RULES = """You are playing the game of 2048. Here are the rules:

2048 is played on a plain {size}×{size} grid, with numbered tiles that slide in four directions: UP, DOWN, LEFT and RIGHT. The game begins with two tiles already in the grid, having a value of either 2 or 4, and another such tile appears in a random empty space after each turn. Tiles slide as far as possible in the chosen direction until they are stopped by either another tile or the edge of the grid. If two tiles of the same number collide while moving, they will merge into a tile with the total value of the two tiles that collided. The resulting tile cannot merge with another tile again in the same move.

If a move causes three consecutive tiles of the same value to slide together, only the two tiles farthest along the direction of motion will combine. If all spaces in a row or column are filled with tiles of the same value, a move parallel to that row/column will combine them pairwise. Every merge adds the value of the new tile to your score. You win when a {win_value} tile appears."""


def get_move_tool_schema():
    """Returns the tool schema for function calling mode."""
    return {
        "type": "function",
        "function": {
            "name": "make_move",
            "description": "Make a move in the 2048 game by shifting tiles in the specified direction",
            "parameters": {
                "type": "object",
                "properties": {
                    "direction": {
                        "type": "string",
                        "enum": list(DIRECTIONS),
                        "description": "Direction to shift tiles"
                    }
                },
                "required": ["direction"]
            }
        }
    }


def build_prompt(state, config, first_turn, use_function_calling):
    """Build the user message for one turn."""
    grid_display = display(state)

    if not first_turn:
        prompt = f"""Here is the current grid state:

{grid_display}"""
        if not use_function_calling:
            prompt += "\n\nWhere the values should be shifted next?"
        return prompt

    rules = RULES.format(size=config.size, win_value=config.win_value)
    if use_function_calling:
        return f"""{rules}

Analyze the current grid state and choose the best move using the make_move function.

Here is the current grid state:

{grid_display}"""

    return f"""{rules}

Your task is to select a direction of the shift. You may think for as long as you like, but then you need to say on a separate from your reasoning line:

FINAL_RESPONSE: <direction of the shift in uppercase>

Example of the response:

I think, I should shift everything to the right.

FINAL_RESPONSE: RIGHT

Here is the current grid state:

{grid_display}

Where the values should be shifted next?"""


def get_llm_move(client, engine, messages, model="gpt-4o-mini", max_retries=5, use_function_calling=False):
    """
    Get the next move from the LLM with retry logic.

    Args:
        client: OpenAI client instance
        engine: GridEngine holding the current game
        messages: List of conversation messages (modified in-place)
        model: OpenAI model to use
        max_retries: Maximum number of attempts to get a valid response
        use_function_calling: If True, use function calling mode; otherwise use text parsing mode

    Returns:
        Tuple of (direction, response_data)
        where response_data is either:
        - text string (text parsing mode)
        - dict with 'reasoning', 'tool_call' keys (function calling mode)
    """
    prompt = build_prompt(engine.state, engine.config, len(messages) == 0, use_function_calling)
    messages.append({"role": "user", "content": prompt})

    # Retry logic
    last_response = None
    for attempt in range(max_retries):
        try:
            api_params = {
                "model": model,
                "messages": messages,
                "temperature": 0.7
            }

            if use_function_calling:
                api_params["tools"] = [get_move_tool_schema()]
                api_params["tool_choice"] = "auto"

            response = client.chat.completions.create(**api_params)
            message = response.choices[0].message

            if use_function_calling:
                reasoning = message.content if message.content else ""

                if message.tool_calls:
                    tool_call = message.tool_calls[0]
                    args = json.loads(tool_call.function.arguments)
                    direction = str(args.get("direction", "")).lower()

                    if direction not in DIRECTIONS:
                        print(f"⚠️  Attempt {attempt + 1}/{max_retries}: Unknown direction {direction!r}. Retrying...")
                        last_response = reasoning
                        continue

                    messages.append({
                        "role": "assistant",
                        "content": reasoning,
                        "tool_calls": [{
                            "id": tool_call.id,
                            "type": "function",
                            "function": {
                                "name": tool_call.function.name,
                                "arguments": tool_call.function.arguments
                            }
                        }]
                    })

                    # The tool response is appended once the move has been applied
                    response_data = {
                        "reasoning": reasoning,
                        "tool_call": {
                            "id": tool_call.id,
                            "name": tool_call.function.name,
                            "arguments": args
                        }
                    }

                    return direction, response_data
                else:
                    print(f"⚠️  Attempt {attempt + 1}/{max_retries}: No tool call in response. Retrying...")
                    last_response = reasoning
            else:
                full_response = message.content or ""
                last_response = full_response

                match = re.search(r'FINAL_RESPONSE:\s*(UP|DOWN|LEFT|RIGHT)', full_response, re.IGNORECASE)

                if match:
                    direction = match.group(1).lower()
                    messages.append({"role": "assistant", "content": full_response})
                    return direction, full_response
                else:
                    print(f"⚠️  Attempt {attempt + 1}/{max_retries}: Could not parse direction from LLM response. Retrying...")

        except Exception as e:
            logger.debug("Chat completion failed", exc_info=True)
            print(f"⚠️  Attempt {attempt + 1}/{max_retries}: API error: {e}. Retrying...")
            last_response = str(e)

    raise ValueError(f"Could not get valid move after {max_retries} attempts. Last response: {last_response}")


def make_log_entry(engine, action, outcome=None):
    """Snapshot the engine after an attempted move."""
    entry = {
        "game_state": [list(row) for row in engine.state.grid],
        "action": action,
        "current_score": engine.score,
        "is_won": engine.is_won,
        "is_over": engine.is_over,
    }
    if outcome is not None:
        entry["merged_cells"] = sorted([list(pos) for pos in outcome.merged_cells])
        entry["spawned_at"] = list(outcome.spawned_at) if outcome.spawned_at else None
        if not outcome.changed:
            entry["invalid_move"] = True
    return entry


def write_log(log_file, game_log):
    directory = os.path.dirname(log_file)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(log_file, 'w') as f:
        json.dump(game_log, f, indent=2)


def play_game_with_llm(client, engine, log_file="game_log.json", model="gpt-4o-mini", max_moves=1000,
                       max_consecutive_invalid_moves=10, context_window_moves=5, use_function_calling=False,
                       best_score=None):
    """
    Play a full game of 2048 using LLM and log all moves.

    Args:
        client: OpenAI client instance
        engine: GridEngine to play on; its current game is continued
        log_file: Path to the JSON log file
        model: OpenAI model to use
        max_moves: Maximum number of moves to prevent infinite loops
        max_consecutive_invalid_moves: Maximum consecutive invalid moves before stopping
        context_window_moves: Number of valid moves to keep in conversation context
        use_function_calling: If True, use function calling mode; otherwise use text parsing mode
        best_score: Optional BestScoreStore updated after every accepted move

    Returns:
        Final score
    """
    game_log = []
    move_count = 0
    game_end_reason = "unknown"
    messages = []
    valid_move_history = []
    consecutive_invalid_moves = 0

    initial_entry = make_log_entry(engine, "INITIAL")
    initial_entry["mode"] = "function_calling" if use_function_calling else "text_parsing"
    game_log.append(initial_entry)

    while not (engine.is_won or engine.is_over) and move_count < max_moves:
        try:
            print(f"Move {move_count + 1}, score {engine.score}, model {model}")

            messages_before = len(messages)

            direction, llm_response = get_llm_move(client, engine, messages, model,
                                                   use_function_calling=use_function_calling)

            outcome = engine.move(direction)

            log_entry = make_log_entry(engine, direction.upper(), outcome)
            if use_function_calling:
                log_entry["llm_reasoning"] = llm_response.get("reasoning", "")
                log_entry["tool_call"] = llm_response.get("tool_call")
            else:
                log_entry["llm_reasoning"] = llm_response
            game_log.append(log_entry)

            if not outcome.changed:
                consecutive_invalid_moves += 1
                print(f"\n⚠️  Invalid move {direction.upper()}! State didn't change. Retrying... ({consecutive_invalid_moves}/{max_consecutive_invalid_moves})")

                if consecutive_invalid_moves >= max_consecutive_invalid_moves:
                    print(f"\n❌ Too many consecutive invalid moves ({max_consecutive_invalid_moves}). Game stopped.")
                    game_end_reason = f"too_many_invalid_moves_{max_consecutive_invalid_moves}"
                    break

                if use_function_calling:
                    messages.append({
                        "role": "tool",
                        "tool_call_id": llm_response["tool_call"]["id"],
                        "content": f"Error: Invalid move. The grid state did not change. No tiles could move or merge in the {direction.upper()} direction. Please choose a different direction."
                    })
                else:
                    feedback = f"That move ({direction.upper()}) was invalid - the grid state did not change. This means no tiles could move or merge in that direction. Please choose a different direction where tiles can actually move."
                    messages.append({"role": "user", "content": feedback})

                continue

            # Valid move
            consecutive_invalid_moves = 0
            move_count += 1
            if best_score is not None:
                best_score.record(engine.score)

            if use_function_calling:
                messages.append({
                    "role": "tool",
                    "tool_call_id": llm_response["tool_call"]["id"],
                    "content": f"Move successful. Gained {outcome.score_gained}. New score: {engine.score}"
                })

            # Keep only the last accepted exchanges in context
            exchange = tuple(messages[messages_before:])
            valid_move_history.append(exchange)
            if len(valid_move_history) > context_window_moves:
                valid_move_history = valid_move_history[-context_window_moves:]
            messages = [msg for past in valid_move_history for msg in past]

            write_log(log_file, game_log)

        except Exception as e:
            logger.exception("Game loop stopped")
            print(f"\n❌ Error occurred: {e}")
            game_end_reason = f"error: {str(e)}"
            break

    if game_end_reason == "unknown":
        if engine.is_won:
            game_end_reason = "won"
        elif engine.is_over:
            game_end_reason = "no_moves_available"
        elif move_count >= max_moves:
            game_end_reason = "max_moves_reached"

    print("\n" + "=" * 50)
    if game_end_reason == "won":
        print(f"You Win! Reached {engine.config.win_value}!")
    elif game_end_reason == "max_moves_reached":
        print("Maximum moves reached!")
    elif game_end_reason.startswith("too_many_invalid_moves"):
        print("Game stopped due to too many consecutive invalid moves!")
    elif game_end_reason.startswith("error:"):
        print("Game stopped due to error!")
    else:
        print("Game Over!")
    print("=" * 50)

    final_score = engine.score
    print(f"Final Score: {final_score}")
    print(f"Total Moves: {move_count}")
    print(f"Game End Reason: {game_end_reason}")
    print(f"Game log saved to: {log_file}")

    game_log.append({
        "final_score": final_score,
        "best_score": best_score.best if best_score is not None else final_score,
        "game_end_reason": game_end_reason,
        "total_moves": move_count
    })

    write_log(log_file, game_log)

    return final_score


def main(argv=None):
    parser = argparse.ArgumentParser(description='LLM plays 2048 game')
    parser.add_argument('--model_name', type=str, required=True, help='Name of the model')
    parser.add_argument('--base_url', type=str, required=True, help='Base URL')
    parser.add_argument('--api_key', type=str, required=True, help='API key')
    parser.add_argument('--context_window', type=int, default=5, help='Number of valid moves to keep in context (default: 5)')
    parser.add_argument('--use_function_calling', action='store_true', help='Use native function calling instead of text parsing')
    parser.add_argument('--size', type=int, default=4, help='Board size (default: 4)')
    parser.add_argument('--win_value', type=int, default=2048, help='Tile that wins the game (default: 2048)')
    parser.add_argument('--seed', type=int, default=42, help='Random seed for tile placement (default: 42)')
    parser.add_argument('--max_moves', type=int, default=10000, help='Maximum number of accepted moves')
    parser.add_argument('--best_score_file', type=str, default=DEFAULT_BEST_SCORE_FILE,
                        help='JSON file holding the best score')

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')

    # Prepare log file name with function calling marker
    model_short = args.model_name.split('/')[-1]
    fc_suffix = "_fc" if args.use_function_calling else ""
    log_file = f"game_logs/game_log_{model_short}{fc_suffix}.json"

    client = OpenAI(api_key=args.api_key, base_url=args.base_url)
    engine = GridEngine(GameConfig(size=args.size, win_value=args.win_value), rng=random.Random(args.seed))

    return play_game_with_llm(
        client,
        engine,
        log_file=log_file,
        model=args.model_name,
        max_moves=args.max_moves,
        context_window_moves=args.context_window,
        use_function_calling=args.use_function_calling,
        best_score=BestScoreStore(args.best_score_file),
    )


if __name__ == "__main__":
    main()
