"""Rank discovery: assign every node a (column, row) cell in its lane grid.

Follows the left-to-right placement of Kitzmann et al. (2009), "A simple
algorithm for automatic layout of BPMN processes": a breadth-first walk
from the first start event places each successor one column to the right,
branches fan out into freshly opened rows, and every further start event
is walked forward until it joins the already placed graph.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional

from services.blueprint_model import (
    KIND_GATEWAY,
    GraphModel,
    ProcessNode,
    start_nodes,
)
from services.errors import UnsupportedTopologyError
from services.layout.grid import GridPosition, LaneGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RankResult:
    positions: Dict[str, GridPosition]
    depths: Dict[Any, int]


def child_order(node: ProcessNode, model: GraphModel) -> List[str]:
    """Successors of ``node`` in the order they claim rows.

    Branch targets that are not gateways come first, sorted by branch key;
    the remaining targets follow in mapping order.
    """
    if node.next is None:
        return []
    if not isinstance(node.next, dict):
        return [node.next]

    children: List[str] = []
    for key in sorted(node.next, key=str):
        target = node.next[key]
        if model.node(target).kind != KIND_GATEWAY and target not in children:
            children.append(target)
    for target in node.next.values():
        if target not in children:
            children.append(target)
    return children


def _place_free(grid: LaneGrid, node_id: str, column: int, row: int) -> GridPosition:
    # A cell computed from another lane's rank may already be taken here.
    if grid.occupant((column, row)) is not None:
        grid.insert_row_before(row)
    return grid.place(node_id, (column, row))


def _place_from_queue(
    model: GraphModel, grids: Dict[Any, LaneGrid], first_start: ProcessNode
) -> None:
    grids[first_start.lane_id].place(first_start.id, (0, 0))
    fifo: Deque[ProcessNode] = deque([first_start])

    while fifo:
        current = fifo.popleft()
        for index, child_id in enumerate(child_order(current, model)):
            child = model.node(child_id)
            grid = grids[child.lane_id]
            if grid.is_placed(child_id):
                continue
            if index > 0:
                grid.insert_row_after(index - 1)
            parent_pos = grids[current.lane_id].position_of(current.id)
            _place_free(grid, child_id, parent_pos.column + 1, parent_pos.row + index)
            fifo.append(child)


def _walk_to_placed(
    model: GraphModel, grids: Dict[Any, LaneGrid], start: ProcessNode
) -> tuple[List[ProcessNode], Optional[ProcessNode]]:
    stack: List[ProcessNode] = []
    current: Optional[ProcessNode] = start
    while current is not None and not grids[current.lane_id].is_placed(current.id):
        if current.is_branching:
            raise UnsupportedTopologyError(
                f"Start node {start.id} reaches flow node {current.id} before joining "
                "the laid out graph; multiple starts combined with flow nodes are not supported."
            )
        if current in stack:
            raise UnsupportedTopologyError(
                f"Start node {start.id} leads into a cycle that never joins the laid out graph."
            )
        stack.append(current)
        current = model.node(current.next) if current.next is not None else None
    return stack, current


def _place_chain(
    grids: Dict[Any, LaneGrid], stack: List[ProcessNode], column: int, row: int
) -> None:
    """Pop ``stack`` onto ``row``, walking leftwards from ``column``."""
    while stack:
        node = stack.pop()
        grid = grids[node.lane_id]
        if column < 0:
            grid.insert_column_before(0)
            column = 0
        _place_free(grid, node.id, column, row)
        column -= 1


def _place_secondary_start(
    model: GraphModel, grids: Dict[Any, LaneGrid], start: ProcessNode
) -> None:
    stack, anchor = _walk_to_placed(model, grids, start)
    if not stack:
        return

    if anchor is None:
        # chain ends without joining the placed graph: new bottom row, left to right
        grid = grids[start.lane_id]
        row = grid.bounding_size()[1]
        logger.info("Start node %s forms an independent chain on row %d", start.id, row)
        for column, node in enumerate(stack):
            _place_free(grids[node.lane_id], node.id, column, row)
        return

    anchor_grid = grids[anchor.lane_id]
    anchor_pos = anchor_grid.position_of(anchor.id)
    if anchor_pos.row == 0:
        anchor_grid.insert_row_before(0)
        row = 0
    else:
        anchor_grid.insert_row_after(anchor_pos.row)
        row = anchor_pos.row + 1
    _place_chain(grids, stack, anchor_pos.column, row)


def discover_node_ranks(model: GraphModel) -> RankResult:
    """Place every reachable node of ``model`` in its lane grid.

    Raises UnsupportedTopologyError when a secondary start chain meets a
    flow node before it reaches an already placed node.
    """
    grids: Dict[Any, LaneGrid] = {lane.id: LaneGrid() for lane in model.lanes}

    starts = start_nodes(model)
    if starts:
        _place_from_queue(model, grids, starts[0])
        for start in starts[1:]:
            if not grids[start.lane_id].is_placed(start.id):
                _place_secondary_start(model, grids, start)
    else:
        logger.warning("Blueprint has no start node; nothing can be ranked")

    positions: Dict[str, GridPosition] = {}
    depths: Dict[Any, int] = {}
    for lane in model.lanes:
        grid = grids[lane.id]
        grid.compact()
        max_row = 0
        for node_id in grid.placed_nodes():
            pos = grid.position_of(node_id)
            positions[node_id] = pos
            max_row = max(max_row, pos.row)
        depths[lane.id] = max_row + 1

    unplaced = [node.id for node in model.nodes if node.id not in positions]
    if unplaced:
        logger.warning("Nodes not reachable from any start: %s", ", ".join(map(str, unplaced)))
    return RankResult(positions=positions, depths=depths)
