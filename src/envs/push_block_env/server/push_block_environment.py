# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Push Block Environment Implementation.

Wraps the puzzle engine in an episodic environment: reset() loads a stage,
step() forwards one directional move, and stage progression follows the
outcome of the previous episode (next stage after a win, retry after a loss).
"""

import logging
import threading
from typing import Any, Optional
from uuid import uuid4

from openenv.core.env_server.interfaces import Environment
from openenv.core.env_server.types import EnvironmentMetadata

from ..models import (
    EngineStatus,
    MoveOutcome,
    PushBlockAction,
    PushBlockObservation,
    PushBlockResetRequest,
    PushBlockState,
)
from .engine import PuzzleEngine
from .levels import Level, LevelCatalogue, LevelProgression

logger = logging.getLogger(__name__)


class EpisodeNotStarted(RuntimeError):
    """step() was called before the first reset()."""


class PushBlockEnvironment(Environment):
    """
    Push Block puzzle environment.

    The goal is to push every block onto a target before the stage's move
    budget runs out. Moves into EMPTY cells, off the grid, or pushes into
    another block are rejected and cost nothing.

    One instance holds one game. reset() and step() take an internal lock,
    so requests served from several worker threads are applied one at a time.

    Example:
        >>> env = PushBlockEnvironment()
        >>> obs = env.reset()
        >>> print(f"Level: {obs.level_name}, moves: {obs.moves_remaining}")
        >>>
        >>> obs = env.step(PushBlockAction(direction="right"))
        >>> print(f"Blocks on target: {obs.blocks_on_target}/{obs.blocks_total}")
        >>> print(f"Status: {obs.status}")
    """

    def __init__(self, catalogue: Optional[LevelCatalogue] = None):
        """
        Initialize the Push Block environment.

        Args:
            catalogue: Levels to play, in order (default: the bundled levels)
        """
        super().__init__()
        self.catalogue = catalogue or LevelCatalogue.default()
        self._progression = LevelProgression(self.catalogue)
        self._state = PushBlockState(episode_id=None, step_count=0)
        self._engine: Optional[PuzzleEngine] = None
        self._level: Optional[Level] = None
        self._lock = threading.Lock()

        logger.info(f"PushBlockEnvironment initialized with {len(self.catalogue)} levels")

    @property
    def engine(self) -> Optional[PuzzleEngine]:
        return self._engine

    def reset(
        self,
        seed: Optional[int] = None,
        episode_id: Optional[str] = None,
        level: Optional[str] = None,
        **kwargs: Any,
    ) -> PushBlockObservation:
        """
        Start a new episode.

        Args:
            seed: Accepted for interface compatibility; levels are fixed
            episode_id: Identifier for the new episode (default: a fresh uuid)
            level: Name of the level to play. Without one, the level follows
                from how the previous episode ended.

        Returns:
            PushBlockObservation with the initial board state

        Raises:
            pydantic.ValidationError: if level is not a string
            UnknownLevel: if the level name is not in the catalogue
        """
        options = PushBlockResetRequest(level=level)

        with self._lock:
            if options.level is not None:
                self._level = self._progression.jump_to(options.level)
            elif self._engine is not None:
                self._level = self._progression.advance(self._engine.status)
            else:
                self._level = self._progression.current

            self._engine = self._level.build_engine()
            self._state = PushBlockState(
                episode_id=episode_id or str(uuid4()),
                step_count=0,
                level_name=self._level.name,
                level_index=self._progression.index,
                status=self._engine.status.value,
                campaign_complete=self._progression.campaign_complete,
            )
            logger.info(
                f"Environment reset. Episode {self._state.episode_id} on level "
                f"{self._level.name} with {self._engine.moves_remaining} moves"
            )
            return self._get_observation()

    def step(
        self,
        action: PushBlockAction,
        timeout_s: Optional[float] = None,
        **kwargs: Any,
    ) -> PushBlockObservation:
        """
        Execute a step in the environment by moving the player.

        Args:
            action: PushBlockAction containing the direction to move
            timeout_s: Unused; a move completes immediately

        Returns:
            PushBlockObservation with the updated board state

        Raises:
            EpisodeNotStarted: if called before reset()
        """
        with self._lock:
            if self._engine is None:
                raise EpisodeNotStarted("Call reset() before step()")

            outcome = self._engine.attempt_move(action.direction)
            self._state.step_count += 1
            self._state.status = outcome.status.value

            if outcome.completed:
                if outcome.status is EngineStatus.WON:
                    logger.info(f"Episode {self._state.episode_id} won on level {self._level.name}")
                else:
                    logger.warning(f"Episode {self._state.episode_id} lost on level {self._level.name}")
            logger.debug(
                f"Step {self._state.step_count}: Action={action.direction}, "
                f"Accepted={outcome.accepted}, Status={outcome.status.value}"
            )
            return self._get_observation(outcome)

    def _get_observation(self, outcome: Optional[MoveOutcome] = None) -> PushBlockObservation:
        """Create an observation from the current engine state."""
        engine = self._engine
        board = engine.grid.to_array()

        observation = PushBlockObservation(
            board=[int(cell) for cell in board.flatten()],
            board_shape=[engine.grid.rows, engine.grid.columns],
            level_name=self._level.name,
            blocks_total=engine.blocks_total,
            blocks_on_target=engine.blocks_on_target(),
            player_position=list(engine.player_position),
            moves_remaining=engine.moves_remaining,
            status=engine.status.value,
            facing=engine.facing.value,
            done=engine.is_terminal,
            metadata={
                "step": self._state.step_count,
                "level_index": self._progression.index,
                "campaign_complete": self._progression.campaign_complete,
            },
        )
        if outcome is not None:
            observation.accepted = outcome.accepted
            observation.reject_reason = outcome.reason.value if outcome.reason else None
            observation.pushed_block = outcome.pushed_block
            if outcome.block_position is not None:
                observation.block_position = list(outcome.block_position)
        return observation

    @property
    def state(self) -> PushBlockState:
        """
        Get the current environment state.

        Returns:
            Current PushBlockState with episode and level bookkeeping
        """
        with self._lock:
            return self._state.model_copy()

    def get_metadata(self) -> EnvironmentMetadata:
        return EnvironmentMetadata(
            name="push_block_env",
            description=(
                "Single-screen block-pushing puzzle: move every block onto a "
                "target before the move budget runs out"
            ),
            version="0.1.0",
        )
