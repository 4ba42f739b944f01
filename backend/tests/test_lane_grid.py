import pytest

from services.errors import GridCollisionError
from services.layout.grid import GridPosition, LaneGrid


def _grid(**placements):
    grid = LaneGrid()
    for node_id, pos in placements.items():
        grid.place(node_id, pos)
    return grid


def _positions(grid: LaneGrid):
    return {node_id: tuple(grid.position_of(node_id)) for node_id in grid.placed_nodes()}


def test_place_and_lookup():
    grid = _grid(a=(0, 0), b=(1, 0))
    assert grid.position_of("a") == GridPosition(0, 0)
    assert grid.position_of("b").column == 1
    assert grid.position_of("missing") is None
    assert grid.occupant((1, 0)) == "b"
    assert grid.occupant((5, 5)) is None


def test_placed_nodes_keep_insertion_order():
    grid = _grid(c=(2, 0), a=(0, 0), b=(1, 3))
    assert grid.placed_nodes() == ["c", "a", "b"]


def test_place_into_occupied_cell_fails():
    grid = _grid(a=(0, 0))
    with pytest.raises(GridCollisionError):
        grid.place("b", (0, 0))


def test_place_same_node_twice_fails():
    grid = _grid(a=(0, 0))
    with pytest.raises(GridCollisionError):
        grid.place("a", (1, 0))


def test_insert_row_after_keeps_the_row_itself():
    grid = _grid(a=(0, 0), b=(0, 1), c=(1, 2))
    grid.insert_row_after(1)
    assert _positions(grid) == {"a": (0, 0), "b": (0, 1), "c": (1, 3)}
    assert grid.occupant((0, 2)) is None


def test_insert_row_before_moves_the_row_itself():
    grid = _grid(a=(0, 0), b=(0, 1), c=(1, 2))
    grid.insert_row_before(1)
    assert _positions(grid) == {"a": (0, 0), "b": (0, 2), "c": (1, 3)}
    assert grid.occupant((0, 1)) is None


def test_insert_row_before_zero_shifts_everything():
    grid = _grid(a=(0, 0), b=(1, 0))
    grid.insert_row_before(0)
    assert _positions(grid) == {"a": (0, 1), "b": (1, 1)}


def test_insert_column_before():
    grid = _grid(a=(0, 0), b=(1, 0), c=(2, 1))
    grid.insert_column_before(1)
    assert _positions(grid) == {"a": (0, 0), "b": (2, 0), "c": (3, 1)}
    grid.place("d", (1, 0))
    assert grid.occupant((1, 0)) == "d"


def test_compact_removes_empty_rows_and_columns():
    grid = _grid(a=(0, 0), b=(2, 0), c=(2, 3), d=(5, 3))
    grid.compact()
    assert _positions(grid) == {"a": (0, 0), "b": (1, 0), "c": (1, 1), "d": (2, 1)}


def test_compact_is_idempotent():
    grid = _grid(a=(1, 1), b=(4, 1), c=(4, 6))
    grid.compact()
    once = _positions(grid)
    grid.compact()
    assert _positions(grid) == once


def test_compact_keeps_cells_unique():
    grid = _grid(a=(0, 0), b=(0, 2), c=(3, 0), d=(3, 2))
    grid.compact()
    cells = list(_positions(grid).values())
    assert len(cells) == len(set(cells))


def test_bounding_size():
    assert LaneGrid().bounding_size() == (0, 0)
    grid = _grid(a=(0, 0), b=(3, 1))
    assert grid.bounding_size() == (4, 2)
