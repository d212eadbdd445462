# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Puzzle state machine for the Push Block environment.

The engine owns the grid, the actor table and the move budget. Its single
transition, attempt_move(), either rejects a move without touching any state
or carries it out completely and re-evaluates win/loss.
"""

import logging
from typing import Dict, Union

from ..models import (
    ActorKind,
    CellType,
    Direction,
    EngineStatus,
    MoveOutcome,
    Position,
    RejectReason,
)
from .grid import Grid, MalformedLevel

logger = logging.getLogger(__name__)

PLAYER_ID = "player"


class PuzzleEngine:
    """
    Sokoban stage with a finite move budget.

    Every accepted move costs one move, whether it is a plain step or a push.
    The stage is won when every block rests on a target and lost when the
    budget runs out first; a move that does both counts as a win.

    Example:
        >>> engine = PuzzleEngine.from_text("3,4,2", moves_remaining=3)
        >>> outcome = engine.attempt_move(Direction.RIGHT)
        >>> outcome.status
        <EngineStatus.WON: 'won'>
    """

    def __init__(self, grid: Grid, moves_remaining: int):
        """
        Initialize the engine from a freshly loaded grid.

        Args:
            grid: Grid holding exactly one player
            moves_remaining: Move budget for the stage, must be positive

        Raises:
            MalformedLevel: if the grid does not hold exactly one player
            ValueError: if the move budget is not positive
        """
        if moves_remaining <= 0:
            raise ValueError(f"Move budget must be positive, got {moves_remaining}")

        players = list(grid.positions(CellType.PLAYER, CellType.PLAYER_ON_TARGET))
        if len(players) != 1:
            raise MalformedLevel(f"Level needs exactly one player, found {len(players)}")

        blocks = list(grid.positions(CellType.BLOCK, CellType.BLOCK_ON_TARGET))

        self._grid = grid
        self._player_pos = players[0]
        # Blocks keyed by position so a push resolves its block without a scan.
        self._blocks: Dict[Position, str] = {
            pos: f"block{number}" for number, pos in enumerate(blocks, start=1)
        }
        self._blocks_total = len(blocks)
        self._moves_remaining = moves_remaining
        self._status = EngineStatus.IN_PROGRESS
        self._facing = Direction.DOWN

        targets = grid.target_count()
        if targets < self._blocks_total:
            logger.warning(
                f"Level has {self._blocks_total} blocks but only {targets} targets; it cannot be won"
            )

    @classmethod
    def from_text(cls, text: str, moves_remaining: int) -> "PuzzleEngine":
        return cls(Grid.from_text(text), moves_remaining)

    @property
    def grid(self) -> Grid:
        return self._grid

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def is_terminal(self) -> bool:
        return self._status.is_terminal

    @property
    def moves_remaining(self) -> int:
        return self._moves_remaining

    @property
    def blocks_total(self) -> int:
        return self._blocks_total

    @property
    def facing(self) -> Direction:
        return self._facing

    @property
    def player_position(self) -> Position:
        return self._player_pos

    @property
    def actors(self) -> Dict[str, Position]:
        """Copy of the actor table: actor id to position."""
        table = {PLAYER_ID: self._player_pos}
        table.update({actor: pos for pos, actor in self._blocks.items()})
        return table

    def blocks_on_target(self) -> int:
        return self._grid.blocks_on_target()

    def attempt_move(self, direction: Union[Direction, str]) -> MoveOutcome:
        """
        Try to move the player one cell, pushing a block if one is in the way.

        Args:
            direction: Direction member or its name ("up", "right", "down", "left")

        Returns:
            MoveOutcome describing what moved and the resulting status. A
            rejected outcome means nothing changed and no budget was spent.
            A finished stage rejects every attempt, recognised direction or not.

        Raises:
            ValueError: if the stage is still running and the direction is unknown
        """
        if self.is_terminal:
            return self._rejected(RejectReason.ALREADY_TERMINAL)

        direction = Direction.parse(direction)

        next_player = self._player_pos.step(direction)
        if not self._grid.in_bounds(next_player):
            return self._rejected(RejectReason.OUT_OF_BOUNDS)

        pushed_block = None
        next_block = None
        if self._grid.is_block(next_player):
            next_block = next_player.step(direction)
            if not self._grid.in_bounds(next_block) or self._grid.is_block(next_block):
                return self._rejected(RejectReason.PUSH_BLOCKED)
            pushed_block = self._move_block(next_player, next_block)

        self._move_player(next_player)
        self._moves_remaining -= 1
        self._facing = direction
        self._check_completion()

        logger.debug(
            f"Moved {direction.value}: player={tuple(next_player)} pushed={pushed_block} "
            f"moves_remaining={self._moves_remaining} status={self._status.value}"
        )
        return MoveOutcome(
            accepted=True,
            status=self._status,
            facing=self._facing,
            moves_remaining=self._moves_remaining,
            player_position=next_player,
            pushed_block=pushed_block,
            block_position=next_block if pushed_block else None,
        )

    def _rejected(self, reason: RejectReason) -> MoveOutcome:
        return MoveOutcome(
            accepted=False,
            status=self._status,
            facing=self._facing,
            moves_remaining=self._moves_remaining,
            reason=reason,
        )

    def _move_block(self, src: Position, dst: Position) -> str:
        block = self._blocks.pop(src)
        self._grid.vacate(src)
        self._grid.occupy(dst, ActorKind.BLOCK)
        self._blocks[dst] = block
        return block

    def _move_player(self, dst: Position) -> None:
        self._grid.vacate(self._player_pos)
        self._grid.occupy(dst, ActorKind.PLAYER)
        self._player_pos = dst

    def _check_completion(self) -> None:
        # Win is checked before loss: a last-move solve still counts.
        # A stage without blocks has nothing to solve and can only run out of moves.
        if self._blocks_total and self._grid.count(CellType.BLOCK_ON_TARGET) == self._blocks_total:
            self._status = EngineStatus.WON
            logger.info(f"Stage won with {self._moves_remaining} moves to spare")
        elif self._moves_remaining <= 0:
            self._status = EngineStatus.LOST
            logger.info("Stage lost: move budget exhausted")
