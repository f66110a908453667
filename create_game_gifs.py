"""
Create animated GIFs showing game state evolution for 2048 game logs.
Draws each board state, outlines merged and newly spawned tiles, and
marks wins and losses.
"""

import io
import json
import os
from pathlib import Path

import matplotlib.patches as mpatches
import matplotlib.pyplot as plt
import numpy as np
from PIL import Image

from game_2048 import GameState, MoveOutcome


# Color scheme for tiles (similar to the original 2048 game)
TILE_COLORS = {
    0: '#CDC1B4',      # Empty
    2: '#EEE4DA',      # 2
    4: '#EDE0C8',      # 4
    8: '#F2B179',      # 8
    16: '#F59563',     # 16
    32: '#F67C5F',     # 32
    64: '#F65E3B',     # 64
    128: '#EDCF72',    # 128
    256: '#EDCC61',    # 256
    512: '#EDC850',    # 512
    1024: '#EDC53F',   # 1024
    2048: '#EDC22E',   # 2048
    4096: '#3C3A32',   # 4096+
}

# Text colors
TILE_TEXT_COLORS = {
    0: '#CDC1B4',
    2: '#776E65',
    4: '#776E65',
}
DEFAULT_TEXT_COLOR = '#F9F6F2'

GRID_COLOR = '#BBADA0'
MERGED_EDGE_COLOR = '#F9F6F2'
SPAWNED_EDGE_COLOR = '#8F7A66'
WIN_COLOR = '#10B981'
OVER_COLOR = '#EF4444'


def get_tile_color(value):
    """Get the color for a tile value."""
    return TILE_COLORS.get(value, TILE_COLORS[4096])


def get_text_color(value):
    """Get the text color for a tile value."""
    return TILE_TEXT_COLORS.get(value, DEFAULT_TEXT_COLOR)


def render_game_state(game_state, score, move_num, action, ax, merged_cells=(), spawned_at=None,
                      is_won=False, is_over=False):
    """
    Render a single board onto a matplotlib axis.

    Args:
        game_state: Square grid of tile values
        score: Score shown under the board
        move_num: Move number shown under the board
        action: Action that produced this board
        ax: Axis to draw on (cleared first)
        merged_cells: (row, col) pairs that merged this turn
        spawned_at: (row, col) of the tile spawned this turn, or None
        is_won: Overlay the win message
        is_over: Overlay the game over message
    """
    size = len(game_state)
    merged = {tuple(cell) for cell in merged_cells}
    spawned = tuple(spawned_at) if spawned_at is not None else None

    ax.clear()
    ax.set_xlim(0, size)
    ax.set_ylim(0, size)
    ax.set_aspect('equal')
    ax.axis('off')

    scale = 4 / size
    for i in range(size):
        for j in range(size):
            value = game_state[i][j]

            rect = mpatches.Rectangle((j, size - 1 - i), 1, 1,
                                      facecolor=get_tile_color(value),
                                      edgecolor=GRID_COLOR,
                                      linewidth=3)
            ax.add_patch(rect)

            if (i, j) in merged:
                ax.add_patch(mpatches.Rectangle((j + 0.06, size - 1 - i + 0.06), 0.88, 0.88,
                                                fill=False, edgecolor=MERGED_EDGE_COLOR, linewidth=4))
            elif (i, j) == spawned:
                ax.add_patch(mpatches.Rectangle((j + 0.06, size - 1 - i + 0.06), 0.88, 0.88,
                                                fill=False, edgecolor=SPAWNED_EDGE_COLOR,
                                                linewidth=3, linestyle='--'))

            if value != 0:
                fontsize = 40 if value < 100 else (32 if value < 1000 else 24)
                ax.text(j + 0.5, size - 1 - i + 0.5, str(value),
                        ha='center', va='center',
                        fontsize=fontsize * scale, fontweight='bold',
                        color=get_text_color(value))

    info_text = f"Move: {move_num} | Action: {action} | Score: {score}"
    ax.text(size / 2, -0.3 * size / 4, info_text, ha='center', va='top',
            fontsize=14, fontweight='bold', color='#776E65')

    if is_won or is_over:
        message, color = ("You Win!", WIN_COLOR) if is_won else ("Game Over!", OVER_COLOR)
        ax.add_patch(mpatches.Rectangle((0, 0), size, size, facecolor='#FAF8EF', alpha=0.6))
        ax.text(size / 2, size / 2, message, ha='center', va='center',
                fontsize=36, fontweight='bold', color=color)


def render_outcome(state: GameState, outcome: MoveOutcome, move_num, action, ax):
    """Render an engine state together with the outcome of the move that produced it."""
    render_game_state(state.grid, state.score, move_num, action, ax,
                      merged_cells=outcome.merged_cells, spawned_at=outcome.spawned_at,
                      is_won=state.is_won, is_over=state.is_over)


def load_game_states(log_file):
    """Load all game states from a log file."""
    with open(log_file, 'r') as f:
        data = json.load(f)

    states = []
    for i, entry in enumerate(data):
        if 'game_state' in entry:
            states.append({
                'state': entry['game_state'],
                'score': entry.get('current_score', 0),
                'action': entry.get('action', 'UNKNOWN'),
                'move_num': i,
                'merged_cells': entry.get('merged_cells') or [],
                'spawned_at': entry.get('spawned_at'),
                'is_won': entry.get('is_won', False),
                'is_over': entry.get('is_over', False),
            })
        elif 'final_score' in entry:
            # Skip final stats entry
            break

    return states


def get_model_name(filename):
    """Extract model name from log filename."""
    return filename.replace('game_log_', '').replace('.json', '')


def sample_states(states, max_frames):
    """Evenly sample at most max_frames states, keeping the first and the last."""
    if not max_frames or len(states) <= max_frames:
        return states
    indices = np.linspace(0, len(states) - 1, max_frames, dtype=int)
    return [states[i] for i in indices]


def render_frames(states):
    """Render states to PIL images."""
    frames = []
    fig, ax = plt.subplots(figsize=(6, 6.5))

    for state_info in states:
        render_game_state(
            state_info['state'],
            state_info['score'],
            state_info['move_num'],
            state_info['action'],
            ax,
            merged_cells=state_info.get('merged_cells', ()),
            spawned_at=state_info.get('spawned_at'),
            is_won=state_info.get('is_won', False),
            is_over=state_info.get('is_over', False),
        )

        # Convert matplotlib figure to PIL Image
        buf = io.BytesIO()
        fig.savefig(buf, format='png', bbox_inches='tight', dpi=100,
                    facecolor='#FAF8EF', edgecolor='none')
        buf.seek(0)
        frames.append(Image.open(buf).copy())
        buf.close()

    plt.close(fig)
    return frames


def save_gif(frames, output_file, fps):
    duration = int(1000 / fps)
    frames[0].save(
        output_file,
        save_all=True,
        append_images=frames[1:],
        duration=duration,
        loop=0
    )


def create_gif(log_file, output_dir='gifs', fps=2, max_frames=None):
    """
    Create an animated GIF from a game log.

    Returns:
        Path of the written GIF, or None if the log holds no states
    """
    log_file = Path(log_file)
    model_name = get_model_name(log_file.name)
    print(f"Creating GIF for {model_name}...")

    states = load_game_states(log_file)
    if not states:
        print(f"  No states found for {model_name}")
        return None

    frames = render_frames(sample_states(states, max_frames))

    os.makedirs(output_dir, exist_ok=True)
    output_file = os.path.join(output_dir, f'game_{model_name}.gif')
    save_gif(frames, output_file, fps)

    print(f"  ✓ Saved {output_file} ({len(frames)} frames)")
    return output_file


def create_all_gifs(log_dir='game_logs', output_dir='gifs', fps=2, max_frames=None):
    """Create GIFs for all game logs."""
    log_path = Path(log_dir)

    log_files = sorted(log_path.glob('game_log_*.json'))

    if not log_files:
        print(f"No game logs found in {log_dir}")
        return []

    print(f"Found {len(log_files)} game logs")
    print(f"Creating GIFs at {fps} FPS...")

    if max_frames:
        print(f"Limiting to {max_frames} frames per GIF")

    print()

    created = []
    for log_file in log_files:
        try:
            output_file = create_gif(log_file, output_dir, fps, max_frames)
        except (OSError, ValueError, KeyError) as e:
            print(f"  ✗ Error creating GIF for {get_model_name(log_file.name)}: {e}")
            continue
        if output_file:
            created.append(output_file)

    print(f"\nAll GIFs saved to {output_dir}/")
    return created


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description='Create animated GIFs of 2048 games')
    parser.add_argument('--log_dir', type=str, default='game_logs',
                        help='Directory containing game log JSON files')
    parser.add_argument('--output_dir', type=str, default='gifs',
                        help='Directory to save GIFs')
    parser.add_argument('--fps', type=int, default=2,
                        help='Frames per second for GIF animation')
    parser.add_argument('--max_frames', type=int, default=None,
                        help='Maximum number of frames per GIF (samples evenly if exceeded)')
    parser.add_argument('--model', type=str, default=None,
                        help='Create GIF for specific model only (e.g., "gpt-4o-mini")')
    parser.add_argument('--sample', action='store_true',
                        help='Create sample GIFs with limited frames (20 frames)')

    args = parser.parse_args()

    max_frames = 20 if args.sample else args.max_frames
    if args.model:
        log_file = Path(args.log_dir) / f'game_log_{args.model}.json'
        if log_file.exists():
            create_gif(log_file, args.output_dir, args.fps, max_frames)
        else:
            print(f"Log file not found: {log_file}")
    else:
        create_all_gifs(args.log_dir, args.output_dir, args.fps, max_frames)
