from __future__ import annotations

from typing import Dict, List, NamedTuple, Optional, Tuple

from services.errors import GridCollisionError


class GridPosition(NamedTuple):
    column: int
    row: int


class LaneGrid:
    """Sparse (column, row) table for the nodes of one lane.

    Rows and columns can be opened in the middle of the grid; every node
    already placed past the insertion point shifts by one, so earlier
    placements are never lost.
    """

    def __init__(self) -> None:
        self._positions: Dict[str, GridPosition] = {}
        self._cells: Dict[GridPosition, str] = {}

    def __len__(self) -> int:
        return len(self._positions)

    def place(self, node_id: str, position: Tuple[int, int]) -> GridPosition:
        pos = GridPosition(int(position[0]), int(position[1]))
        if pos.column < 0 or pos.row < 0:
            raise GridCollisionError(f"Negative grid position {tuple(pos)} for {node_id}")
        if node_id in self._positions:
            raise GridCollisionError(f"Node {node_id} is already placed at {tuple(self._positions[node_id])}")
        occupant = self._cells.get(pos)
        if occupant is not None:
            raise GridCollisionError(
                f"Cell {tuple(pos)} is taken by {occupant}, cannot place {node_id}"
            )
        self._positions[node_id] = pos
        self._cells[pos] = node_id
        return pos

    def position_of(self, node_id: str) -> Optional[GridPosition]:
        return self._positions.get(node_id)

    def is_placed(self, node_id: str) -> bool:
        return node_id in self._positions

    def occupant(self, position: Tuple[int, int]) -> Optional[str]:
        return self._cells.get(GridPosition(position[0], position[1]))

    def placed_nodes(self) -> List[str]:
        # dicts keep insertion order, which is the placement order
        return list(self._positions)

    def insert_row_after(self, row: int) -> None:
        self._shift(lambda pos: pos.row > row, drow=1)

    def insert_row_before(self, row: int) -> None:
        self._shift(lambda pos: pos.row >= row, drow=1)

    def insert_column_before(self, column: int) -> None:
        self._shift(lambda pos: pos.column >= column, dcol=1)

    def compact(self) -> None:
        """Drop empty rows and columns, keeping the relative order of the rest."""
        if not self._positions:
            return
        columns = sorted({pos.column for pos in self._positions.values()})
        rows = sorted({pos.row for pos in self._positions.values()})
        column_map = {old: new for new, old in enumerate(columns)}
        row_map = {old: new for new, old in enumerate(rows)}
        self._rebuild(
            {
                node_id: GridPosition(column_map[pos.column], row_map[pos.row])
                for node_id, pos in self._positions.items()
            }
        )

    def bounding_size(self) -> Tuple[int, int]:
        if not self._positions:
            return (0, 0)
        max_col = max(pos.column for pos in self._positions.values())
        max_row = max(pos.row for pos in self._positions.values())
        return (max_col + 1, max_row + 1)

    def _shift(self, predicate, dcol: int = 0, drow: int = 0) -> None:
        self._rebuild(
            {
                node_id: (
                    GridPosition(pos.column + dcol, pos.row + drow)
                    if predicate(pos)
                    else pos
                )
                for node_id, pos in self._positions.items()
            }
        )

    def _rebuild(self, positions: Dict[str, GridPosition]) -> None:
        self._positions = positions
        self._cells = {pos: node_id for node_id, pos in positions.items()}
