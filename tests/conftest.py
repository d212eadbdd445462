import os
import tempfile

import pytest

# The server module configures a file log handler at import time.
os.environ.setdefault("PUSH_BLOCK_LOG_DIR", tempfile.mkdtemp(prefix="push_block_logs_"))

from envs.push_block_env.server.levels import LevelCatalogue  # noqa: E402
from envs.push_block_env.server.push_block_environment import PushBlockEnvironment  # noqa: E402


SOLUTIONS = {
    "first_push": ["right"],
    "two_blocks": ["right", "right", "down"],
    "detour": ["down", "right", "up", "right", "right"],
    "return_trip": ["up", "right", "right", "down", "down", "up", "left"],
}


@pytest.fixture
def catalogue():
    return LevelCatalogue.default()


@pytest.fixture
def env(catalogue):
    return PushBlockEnvironment(catalogue)


@pytest.fixture
def solutions():
    return SOLUTIONS


def write_catalogue(directory, levels):
    """Write level texts plus a levels.json manifest; levels is [(name, text, budget)]."""
    import json

    entries = []
    for i, (name, text, budget) in enumerate(levels):
        filename = f"{i:02d}_{name}.txt"
        (directory / filename).write_text(text, encoding="utf-8")
        entries.append({"name": name, "file": filename, "move_budget": budget})
    (directory / "levels.json").write_text(json.dumps(entries), encoding="utf-8")
    return directory
