"""
Push Block Environment Simple Example

This script demonstrates basic usage of the Push Block environment.
It plays through the bundled levels with scripted moves, printing the board
after every move, either in-process or against a running server.

Usage:
    python examples/push_block_simple.py
    python examples/push_block_simple.py --url http://localhost:8000
"""

import argparse
import sys
import time
from pathlib import Path

# Add src directory to Python path
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from envs.push_block_env import PushBlockAction, PushBlockEnv, StepResult
from envs.push_block_env.server.push_block_environment import PushBlockEnvironment

# Known solutions for the bundled levels
SOLUTIONS = {
    "first_push": ["right"],
    "two_blocks": ["right", "right", "down"],
    "detour": ["down", "right", "up", "right", "right"],
    "return_trip": ["up", "right", "right", "down", "down", "up", "left"],
}

# Pause before the next stage, like a level-complete cut-in
TRANSITION_DELAY = 1.0


def print_board(observation):
    """Print a visual representation of the board."""
    # Reshape the flat board into 2D
    height, width = observation.board_shape
    board = []
    for i in range(height):
        row = observation.board[i * width:(i + 1) * width]
        board.append(row)

    # Symbol mapping for visualization
    symbols = {
        0: ' ',  # Outside the stage
        1: '·',  # Ground
        2: '.',  # Target
        3: '@',  # Player
        4: '□',  # Block
        5: '+',  # Player on target
        6: '▣',  # Block on target
    }

    print("─" * (width * 2))
    for row in board:
        print(' '.join(symbols[cell] for cell in row))
    print("─" * (width * 2))


class LocalEnv:
    """Adapts the in-process environment to the client's StepResult interface."""

    def __init__(self):
        self._env = PushBlockEnvironment()

    def reset(self, level=None):
        obs = self._env.reset(level=level)
        return StepResult(observation=obs, done=obs.done)

    def step(self, action):
        obs = self._env.step(action)
        return StepResult(observation=obs, done=obs.done)

    def close(self):
        pass


def play_level(env, result):
    obs = result.observation
    print(f"\n=== Level {obs.level_name}: {obs.blocks_total} blocks, {obs.moves_remaining} moves ===")
    print_board(obs)

    for direction in SOLUTIONS.get(obs.level_name, []):
        result = env.step(PushBlockAction(direction=direction))
        obs = result.observation
        note = f"pushed {obs.pushed_block}" if obs.pushed_block else ""
        if not obs.accepted:
            note = f"rejected ({obs.reject_reason})"
        print(f"{direction:>5}: moves left {obs.moves_remaining} {note}")
        if result.done:
            break

    print_board(obs)
    print(f"Result: {obs.status}")
    return result


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--url", help="Server URL; plays in-process when omitted")
    args = parser.parse_args()

    print("Push Block Environment Example")
    print("=" * 50)

    env = PushBlockEnv(base_url=args.url).sync() if args.url else LocalEnv()

    try:
        result = env.reset()
        for stage in range(1, len(SOLUTIONS) + 1):
            result = play_level(env, result)
            if result.observation.status != "won":
                break
            if stage == len(SOLUTIONS):
                print("\nAll levels cleared!")
                break
            time.sleep(TRANSITION_DELAY)
            result = env.reset()
    finally:
        env.close()
        print("✅ Done!")


if __name__ == "__main__":
    main()
