# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Data models for the Push Block Environment.

Push Block is a single-screen Sokoban variant: the player pushes blocks onto
target cells under a finite move budget. Reaching zero moves before every
block rests on a target loses the stage.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union

from openenv.core.env_server.types import Action, Observation, State
from pydantic import BaseModel, Field, field_validator
from pydantic_core import PydanticCustomError


class CellType(IntEnum):
    """
    Cell codes used by the level encoding.

    The composite values (PLAYER_ON_TARGET, BLOCK_ON_TARGET) are derived from
    terrain plus occupant and are never stored directly.
    """

    EMPTY = 0
    GROUND = 1
    TARGET = 2
    PLAYER = 3
    BLOCK = 4
    PLAYER_ON_TARGET = 5
    BLOCK_ON_TARGET = 6


class ActorKind(IntEnum):
    """What can stand on a walkable cell. Zero is reserved for 'nobody'."""

    PLAYER = 1
    BLOCK = 2


class Position(NamedTuple):
    """Grid coordinate; x is the column and y the row."""

    x: int
    y: int

    def step(self, direction: "Direction") -> "Position":
        dx, dy = direction.delta
        return Position(self.x + dx, self.y + dy)


class Direction(Enum):
    UP = "up"
    RIGHT = "right"
    DOWN = "down"
    LEFT = "left"

    @property
    def delta(self) -> Tuple[int, int]:
        """Unit vector in (dx, dy); rows grow downwards."""
        return _DELTAS[self]

    @classmethod
    def parse(cls, value: Union["Direction", str]) -> "Direction":
        """
        Accept a Direction or its name in any case.

        Raises:
            ValueError: if the value names no direction
        """
        if isinstance(value, Direction):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown direction {value!r}; expected one of "
                f"{[d.value for d in cls]}"
            ) from None


_DELTAS = {
    Direction.UP: (0, -1),
    Direction.RIGHT: (1, 0),
    Direction.DOWN: (0, 1),
    Direction.LEFT: (-1, 0),
}


class EngineStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    WON = "won"
    LOST = "lost"

    @property
    def is_terminal(self) -> bool:
        return self is not EngineStatus.IN_PROGRESS


class RejectReason(str, Enum):
    OUT_OF_BOUNDS = "out_of_bounds"
    PUSH_BLOCKED = "push_blocked"
    ALREADY_TERMINAL = "already_terminal"


@dataclass(frozen=True)
class MoveOutcome:
    """
    Result of one move attempt, carrying what a renderer needs to redraw.

    Attributes:
        accepted: Whether the move was carried out
        status: Engine status after the attempt
        facing: Direction the player sprite should face
        moves_remaining: Budget left after the attempt
        reason: Why the move was rejected (None when accepted)
        player_position: New player position, set when the player moved
        pushed_block: Identity of the pushed block, if any
        block_position: New position of the pushed block, if any
    """

    accepted: bool
    status: EngineStatus
    facing: Direction
    moves_remaining: int
    reason: Optional[RejectReason] = None
    player_position: Optional[Position] = None
    pushed_block: Optional[str] = None
    block_position: Optional[Position] = None

    @property
    def rejected(self) -> bool:
        return not self.accepted

    @property
    def completed(self) -> bool:
        """True when this move ended the stage (won or lost)."""
        return self.accepted and self.status.is_terminal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accepted": self.accepted,
            "status": self.status.value,
            "facing": self.facing.value,
            "moves_remaining": self.moves_remaining,
            "reason": self.reason.value if self.reason else None,
            "player_position": list(self.player_position) if self.player_position else None,
            "pushed_block": self.pushed_block,
            "block_position": list(self.block_position) if self.block_position else None,
        }


class PushBlockAction(Action):
    """
    Action for the Push Block environment.

    Attributes:
        direction: The direction to move ("up", "right", "down", "left")
    """

    direction: str

    @field_validator("direction")
    @classmethod
    def _known_direction(cls, value: str) -> str:
        try:
            return Direction.parse(value).value
        except ValueError as e:
            raise PydanticCustomError("unknown_direction", str(e)) from None


class PushBlockObservation(Observation):
    """
    Observation from the Push Block environment.

    Attributes:
        board: Flattened row-major board, one CellType code per cell:
                0 = empty (outside the stage)
                1 = ground
                2 = target
                3 = player
                4 = block
                5 = player on target
                6 = block on target
        board_shape: Shape of the board (rows, columns)
        level_name: Name of the stage being played
        blocks_total: Number of blocks captured when the level was loaded
        blocks_on_target: Number of blocks currently resting on a target
        player_position: (x, y) position of the player
        moves_remaining: Moves left before the stage is lost
        status: "in_progress", "won" or "lost"
        facing: Direction the player faces after the last accepted move
        accepted: Whether the last move attempt was carried out
        reject_reason: Why the last attempt was rejected, if it was
        pushed_block: Identity of the block pushed by the last move, if any
        block_position: (x, y) of that block after the push
    """

    board: List[int]
    board_shape: List[int]
    level_name: str
    blocks_total: int
    blocks_on_target: int
    player_position: List[int]
    moves_remaining: int
    status: str = EngineStatus.IN_PROGRESS.value
    facing: str = Direction.DOWN.value
    accepted: bool = True
    reject_reason: Optional[str] = None
    pushed_block: Optional[str] = None
    block_position: Optional[List[int]] = None


class PushBlockState(State):
    """Episode bookkeeping exposed by the environment's /state endpoint."""

    level_name: Optional[str] = None
    level_index: int = 0
    status: str = EngineStatus.IN_PROGRESS.value
    campaign_complete: bool = False


class PushBlockResetRequest(BaseModel):
    """Options accepted by reset() on top of the standard seed/episode_id."""

    level: Optional[str] = Field(
        default=None, description="Name of the level to jump to; omit to follow progression"
    )


class LevelSummary(BaseModel):
    name: str
    move_budget: int


class LevelListResponse(BaseModel):
    """Response body of GET /levels, in play order."""

    levels: List[LevelSummary]
