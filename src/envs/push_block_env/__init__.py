# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

"""Push Block Environment - Sokoban with a move budget."""

from openenv.core.client_types import StepResult

from .client import PushBlockEnv
from .models import (
    CellType,
    Direction,
    EngineStatus,
    MoveOutcome,
    Position,
    PushBlockAction,
    PushBlockObservation,
    PushBlockState,
    RejectReason,
)

__all__ = [
    "CellType",
    "Direction",
    "EngineStatus",
    "MoveOutcome",
    "Position",
    "PushBlockAction",
    "PushBlockObservation",
    "PushBlockState",
    "PushBlockEnv",
    "RejectReason",
    "StepResult",
]
