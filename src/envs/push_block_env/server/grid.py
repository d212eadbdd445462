# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
#
# This source code is licensed under the BSD-style license found in the
# LICENSE file in the root directory of this source tree.

"""
Stage grid for the Push Block environment.

The grid is held as two layers, static structure and movable state:

    terrain:   EMPTY / GROUND / TARGET, fixed once the level is loaded
    occupants: 0 = nobody, otherwise an ActorKind code

A CellType such as BLOCK_ON_TARGET is derived from both layers on read, so
an actor leaving a cell always uncovers the terrain underneath it.
"""

import logging
import re
from typing import Iterator, List

import numpy as np

from ..models import ActorKind, CellType, Position

logger = logging.getLogger(__name__)

NO_OCCUPANT = 0

_TERRAIN_OF = {
    CellType.EMPTY: CellType.EMPTY,
    CellType.GROUND: CellType.GROUND,
    CellType.TARGET: CellType.TARGET,
    CellType.PLAYER: CellType.GROUND,
    CellType.BLOCK: CellType.GROUND,
    CellType.PLAYER_ON_TARGET: CellType.TARGET,
    CellType.BLOCK_ON_TARGET: CellType.TARGET,
}

_OCCUPANT_OF = {
    CellType.PLAYER: ActorKind.PLAYER,
    CellType.PLAYER_ON_TARGET: ActorKind.PLAYER,
    CellType.BLOCK: ActorKind.BLOCK,
    CellType.BLOCK_ON_TARGET: ActorKind.BLOCK,
}

_LINE_SPLIT = re.compile(r"[\r\n]+")


class LevelError(ValueError):
    """Base class for errors raised while loading a level."""


class MalformedLevel(LevelError):
    """The level text is empty, ragged, or holds something that is not a number."""


class InvalidCellCode(LevelError):
    """A cell code falls outside the CellType enumeration."""


def parse_level(text: str) -> np.ndarray:
    """
    Parse level text into a (rows, columns) matrix of cell codes.

    Args:
        text: One row per line, cells separated by commas. Blank lines are skipped.

    Returns:
        Integer numpy array of CellType codes

    Raises:
        MalformedLevel: if the text is empty, rows differ in length, or a cell
            is not an integer
        InvalidCellCode: if a code is outside 0..6
    """
    lines = [line for line in _LINE_SPLIT.split(text or "") if line.strip()]
    if not lines:
        raise MalformedLevel("Level text is empty")

    columns = len(lines[0].split(","))
    rows: List[List[int]] = []
    for y, line in enumerate(lines):
        cells = line.split(",")
        if len(cells) != columns:
            raise MalformedLevel(
                f"Row {y} has {len(cells)} cells, expected {columns} (from row 0)"
            )
        row = []
        for x, raw in enumerate(cells):
            try:
                code = int(raw.strip())
            except ValueError:
                raise MalformedLevel(f"Cell ({x}, {y}) is not an integer: {raw!r}") from None
            if code < CellType.EMPTY or code > CellType.BLOCK_ON_TARGET:
                raise InvalidCellCode(f"Cell ({x}, {y}) has unknown code {code}")
            row.append(code)
        rows.append(row)

    return np.array(rows, dtype=np.int8)


class Grid:
    """
    Rectangular stage of cells with fixed dimensions.

    Cells typed EMPTY are part of the array but lie outside the playable
    stage: they are never walkable and never change type.
    """

    def __init__(self, cells: np.ndarray):
        cells = np.asarray(cells)
        if cells.ndim != 2 or cells.size == 0:
            raise MalformedLevel(f"Grid needs a non-empty 2D matrix, got shape {cells.shape}")
        unknown = (cells < CellType.EMPTY) | (cells > CellType.BLOCK_ON_TARGET)
        if np.any(unknown):
            y, x = np.argwhere(unknown)[0]
            raise InvalidCellCode(f"Cell ({x}, {y}) has unknown code {cells[y, x]}")

        self._terrain = np.zeros(cells.shape, dtype=np.int8)
        self._occupants = np.full(cells.shape, NO_OCCUPANT, dtype=np.int8)
        for code, terrain in _TERRAIN_OF.items():
            mask = cells == code
            self._terrain[mask] = terrain
            if code in _OCCUPANT_OF:
                self._occupants[mask] = _OCCUPANT_OF[code]

    @classmethod
    def from_text(cls, text: str) -> "Grid":
        return cls(parse_level(text))

    @property
    def rows(self) -> int:
        return self._terrain.shape[0]

    @property
    def columns(self) -> int:
        return self._terrain.shape[1]

    def _inside(self, pos: Position) -> bool:
        return 0 <= pos[0] < self.columns and 0 <= pos[1] < self.rows

    def in_bounds(self, pos: Position) -> bool:
        """True if the position is inside the rectangle and not an EMPTY cell."""
        if not self._inside(pos):
            return False
        return bool(self._terrain[pos[1], pos[0]] != CellType.EMPTY)

    def is_block(self, pos: Position) -> bool:
        if not self._inside(pos):
            return False
        return bool(self._occupants[pos[1], pos[0]] == ActorKind.BLOCK)

    def cell_at(self, pos: Position) -> CellType:
        """Derived cell type; positions outside the rectangle read as EMPTY."""
        if not self._inside(pos):
            return CellType.EMPTY
        x, y = pos
        terrain = self._terrain[y, x]
        occupant = self._occupants[y, x]
        if occupant == ActorKind.PLAYER:
            return CellType.PLAYER_ON_TARGET if terrain == CellType.TARGET else CellType.PLAYER
        if occupant == ActorKind.BLOCK:
            return CellType.BLOCK_ON_TARGET if terrain == CellType.TARGET else CellType.BLOCK
        return CellType(int(terrain))

    def vacate(self, pos: Position) -> None:
        """Remove whatever actor stands on the cell, uncovering its terrain."""
        if self._inside(pos):
            self._occupants[pos[1], pos[0]] = NO_OCCUPANT

    def occupy(self, pos: Position, actor_kind: ActorKind) -> None:
        """Place an actor on a free GROUND or TARGET cell; no-op otherwise."""
        if not self.in_bounds(pos):
            return
        x, y = pos
        if self._occupants[y, x] != NO_OCCUPANT:
            logger.debug(f"Ignoring occupy of taken cell {tuple(pos)}")
            return
        self._occupants[y, x] = actor_kind

    def count(self, cell_type: CellType) -> int:
        return int(np.count_nonzero(self.to_array() == cell_type))

    def target_count(self) -> int:
        return int(np.count_nonzero(self._terrain == CellType.TARGET))

    def blocks_on_target(self) -> int:
        return int(np.count_nonzero(
            (self._terrain == CellType.TARGET) & (self._occupants == ActorKind.BLOCK)
        ))

    def positions(self, *cell_types: CellType) -> Iterator[Position]:
        """Yield positions holding any of the given types, in row-major order."""
        ys, xs = np.nonzero(np.isin(self.to_array(), [int(t) for t in cell_types]))
        for y, x in zip(ys, xs):
            yield Position(int(x), int(y))

    def to_array(self) -> np.ndarray:
        """Snapshot of derived CellType codes, shaped (rows, columns)."""
        on_target = self._terrain == CellType.TARGET
        return np.select(
            [
                self._occupants == ActorKind.PLAYER,
                self._occupants == ActorKind.BLOCK,
            ],
            [
                np.where(on_target, CellType.PLAYER_ON_TARGET, CellType.PLAYER),
                np.where(on_target, CellType.BLOCK_ON_TARGET, CellType.BLOCK),
            ],
            default=self._terrain,
        ).astype(np.int8)

    def to_text(self) -> str:
        """Encode the current cells in the level text format."""
        return "\n".join(",".join(str(int(c)) for c in row) for row in self.to_array())

    def __repr__(self) -> str:
        return f"Grid(rows={self.rows}, columns={self.columns})"
