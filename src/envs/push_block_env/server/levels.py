# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Level catalogue and stage progression.

A catalogue directory holds one text file per stage plus a levels.json
manifest that fixes the play order and each stage's move budget:

    [
        {"name": "first_push", "file": "01_first_push.txt", "move_budget": 5},
        ...
    ]

Winning a stage advances to the next one; losing it replays the same stage.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Union

from ..models import EngineStatus
from .engine import PuzzleEngine
from .grid import LevelError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "levels.json"
BUNDLED_LEVELS_DIR = Path(__file__).resolve().parents[1] / "levels"


class UnknownLevel(KeyError):
    """No level of that name is in the catalogue."""

    def __init__(self, name: str):
        super().__init__(f"Unknown level: {name}")
        self.name = name

    def __str__(self) -> str:
        return self.args[0]


@dataclass(frozen=True)
class Level:
    """One stage: its level text and the move budget it is played with."""

    name: str
    text: str
    move_budget: int

    def build_engine(self) -> PuzzleEngine:
        return PuzzleEngine.from_text(self.text, self.move_budget)


class LevelCatalogue:
    """Ordered, name-addressable collection of levels."""

    def __init__(self, levels: Sequence[Level]):
        if not levels:
            raise ValueError("A level catalogue needs at least one level")
        self._levels: List[Level] = list(levels)
        self._index: Dict[str, int] = {}
        for i, level in enumerate(self._levels):
            if level.name in self._index:
                raise ValueError(f"Duplicate level name: {level.name}")
            self._index[level.name] = i

    @classmethod
    def from_directory(cls, path: Union[str, Path]) -> "LevelCatalogue":
        """
        Load every level listed in a directory's levels.json manifest.

        Each level is parsed and validated here, so a broken file fails
        the whole load instead of surfacing mid-game.

        Args:
            path: Directory containing levels.json and the level files

        Returns:
            LevelCatalogue in manifest order

        Raises:
            FileNotFoundError: if the manifest or a listed file is missing
            LevelError: if a level file does not parse or cannot be played
            ValueError: if the manifest itself is malformed
        """
        directory = Path(path)
        manifest_path = directory / MANIFEST_NAME
        with open(manifest_path, "r", encoding="utf-8") as fh:
            entries = json.load(fh)
        if not isinstance(entries, list):
            raise ValueError(f"{manifest_path} must hold a JSON list of levels")

        levels = []
        for entry in entries:
            try:
                name = entry["name"]
                level_file = directory / entry["file"]
                budget = int(entry["move_budget"])
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"Bad manifest entry in {manifest_path}: {entry!r}") from e

            level = Level(name=name, text=level_file.read_text(encoding="utf-8"), move_budget=budget)
            try:
                level.build_engine()
            except LevelError as e:
                raise type(e)(f"{level_file.name}: {e}") from e
            levels.append(level)

        logger.info(f"Loaded {len(levels)} levels from {directory}")
        return cls(levels)

    @classmethod
    def default(cls) -> "LevelCatalogue":
        """Levels shipped with the package."""
        return cls.from_directory(BUNDLED_LEVELS_DIR)

    @classmethod
    def from_texts(cls, texts: Dict[str, str], move_budget: int) -> "LevelCatalogue":
        """Build a catalogue from in-memory level texts sharing one budget."""
        levels = [Level(name=name, text=text, move_budget=move_budget) for name, text in texts.items()]
        for level in levels:
            level.build_engine()
        return cls(levels)

    @property
    def names(self) -> List[str]:
        return [level.name for level in self._levels]

    def index_of(self, name: str) -> int:
        try:
            return self._index[name]
        except KeyError:
            raise UnknownLevel(name) from None

    def get(self, name: str) -> Level:
        return self._levels[self.index_of(name)]

    def __getitem__(self, index: int) -> Level:
        return self._levels[index]

    def __len__(self) -> int:
        return len(self._levels)

    def __iter__(self) -> Iterator[Level]:
        return iter(self._levels)


class LevelProgression:
    """Tracks which stage comes next given how the last one ended."""

    def __init__(self, catalogue: LevelCatalogue, start: int = 0):
        self.catalogue = catalogue
        self.index = start
        self.campaign_complete = False

    @property
    def current(self) -> Level:
        return self.catalogue[self.index]

    def jump_to(self, name: str) -> Level:
        self.index = self.catalogue.index_of(name)
        self.campaign_complete = False
        return self.current

    def advance(self, status: Optional[EngineStatus]) -> Level:
        """
        Pick the stage to play after one that ended with the given status.

        A win moves on to the next stage (the last stage stays selected and
        marks the campaign complete); a loss or an unfinished stage replays
        the current one.
        """
        if status is EngineStatus.WON:
            if self.index + 1 < len(self.catalogue):
                self.index += 1
                logger.info(f"Advancing to level {self.current.name}")
            else:
                self.campaign_complete = True
                logger.info("Final level cleared, campaign complete")
        elif status is EngineStatus.LOST:
            logger.info(f"Retrying level {self.current.name}")
        return self.current
