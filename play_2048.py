"""
Play 2048 in the terminal.
Commands: w/a/s/d or arrow key names to move, u to undo, r to restart, q to quit.
"""

import argparse
import logging
import random

from best_score import DEFAULT_BEST_SCORE_FILE, BestScoreStore
from controls import direction_from_key
from game_2048 import GameConfig, GridEngine, display


def show(engine, best_score):
    print(display(engine.state))
    print(f"Best: {best_score.best}")


def play(engine, best_score):
    """
    Run the command loop until the player quits or input runs out.

    Args:
        engine: GridEngine holding the game
        best_score: BestScoreStore updated after every scoring move

    Returns:
        Final score
    """
    show(engine, best_score)

    while True:
        try:
            command = input("\nEnter move: ").strip()
        except EOFError:
            break

        if command.lower() == 'q':
            print("Thanks for playing!")
            break

        if command.lower() == 'u':
            if engine.undo() is None:
                print("Nothing to undo.")
            else:
                show(engine, best_score)
            continue

        if command.lower() == 'r':
            engine.reset()
            show(engine, best_score)
            continue

        direction = direction_from_key(command) or direction_from_key(command.lower())
        if direction is None:
            print("Invalid command! Use w/a/s/d to move, u to undo, r to restart or q to quit.")
            continue

        if engine.is_won or engine.is_over:
            print("The game has ended. Press u to undo or r to restart.")
            continue

        outcome = engine.move(direction)
        if not outcome.changed:
            print("Invalid move! Try another direction.")
            continue

        best_score.record(engine.score)
        show(engine, best_score)

        if engine.is_won:
            print("\nYou Win! Press u to undo or r to restart.")
        elif engine.is_over:
            print("\nGame Over! Press u to undo or r to restart.")

    print(f"Final Score: {engine.score}")
    return engine.score


def main(argv=None):
    parser = argparse.ArgumentParser(description='Play 2048 in the terminal')
    parser.add_argument('--size', type=int, default=4, help='Board size (default: 4)')
    parser.add_argument('--win_value', type=int, default=2048, help='Tile that wins the game (default: 2048)')
    parser.add_argument('--seed', type=int, default=None, help='Random seed for tile placement')
    parser.add_argument('--best_score_file', type=str, default=DEFAULT_BEST_SCORE_FILE,
                        help='JSON file holding the best score')
    parser.add_argument('--verbose', action='store_true', help='Log engine events')

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    print("Welcome to 2048!")
    print("Commands: w (up), s (down), a (left), d (right), u (undo), r (restart), q (quit)")

    engine = GridEngine(GameConfig(size=args.size, win_value=args.win_value), rng=random.Random(args.seed))
    return play(engine, BestScoreStore(args.best_score_file))


if __name__ == "__main__":
    main()
