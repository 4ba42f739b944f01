from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from services.blueprint_model import (
    KIND_FINISH,
    KIND_GATEWAY,
    KIND_START,
    GraphModel,
    ProcessNode,
    ordered_lane_ids,
)
from services.layout.grid import GridPosition
from services.layout.ranks import RankResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiagramDimensions:
    node_width: float = 100
    node_height: float = 80
    x_margin: float = 15
    y_margin: float = 40
    padding: float = 50
    event_size: float = 36  # start / finish circle
    gateway_size: float = 50  # diamond
    lane_header: float = 30

    @property
    def x_spacing(self) -> float:
        return self.node_width + 2 * self.x_margin

    @property
    def y_spacing(self) -> float:
        return self.node_height + 2 * self.y_margin


DEFAULT_DIMENSIONS = DiagramDimensions()


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class Bounds:
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


@dataclass(frozen=True)
class Unresolved:
    """Geometry that could not be computed for one element."""

    reason: str


BoundsResult = Union[Bounds, Unresolved]
RouteResult = Union[List[Point], Unresolved]


@dataclass(frozen=True)
class DiagramGeometry:
    node_bounds: Dict[str, BoundsResult]
    lane_bounds: Dict[Any, Bounds]
    participant_bounds: Bounds
    routes: Dict[str, RouteResult] = field(default_factory=dict)

    def waypoints(self, flow_id: str) -> List[Point]:
        route = self.routes.get(flow_id)
        return route if isinstance(route, list) else []


def node_bounds(
    node: ProcessNode,
    position: GridPosition,
    lane_offset: float,
    dims: DiagramDimensions = DEFAULT_DIMENSIONS,
) -> Bounds:
    cell_x = dims.padding + dims.x_spacing * position.column
    cell_y = dims.padding + dims.y_spacing * position.row + lane_offset

    if node.kind == KIND_START:
        # right-aligned in the cell, close to its successor
        return Bounds(
            x=cell_x + dims.node_width - dims.event_size,
            y=cell_y + (dims.node_height - dims.event_size) / 2,
            width=dims.event_size,
            height=dims.event_size,
        )
    if node.kind == KIND_FINISH:
        return Bounds(
            x=cell_x,
            y=cell_y + (dims.node_height - dims.event_size) / 2,
            width=dims.event_size,
            height=dims.event_size,
        )
    if node.kind == KIND_GATEWAY:
        return Bounds(
            x=cell_x + (dims.node_width - dims.gateway_size) / 2,
            y=cell_y + (dims.node_height - dims.gateway_size) / 2,
            width=dims.gateway_size,
            height=dims.gateway_size,
        )
    return Bounds(x=cell_x, y=cell_y, width=dims.node_width, height=dims.node_height)


def generate_waypoints(
    source: Bounds, target: Bounds, dims: DiagramDimensions = DEFAULT_DIMENSIONS
) -> List[Point]:
    """Orthogonal connector from ``source`` to ``target``.

    Cases are checked in order: target to the right, target below,
    target above (loop back), same cell row and column.
    """
    if source.x < target.x:
        step_x = source.right + dims.x_margin / 1.5
        return [
            Point(source.right, source.center_y),
            Point(step_x, source.center_y),
            Point(step_x, target.center_y),
            Point(target.x, target.center_y),
        ]
    if source.y < target.y:
        step_y = source.bottom + dims.y_margin / 1.5
        return [
            Point(source.center_x, source.bottom),
            Point(source.center_x, step_y),
            Point(target.center_x, step_y),
            Point(target.center_x, target.y),
        ]
    if source.y > target.y:
        step_y = source.bottom + dims.y_margin / 2
        return [
            Point(source.center_x, source.bottom),
            Point(source.center_x, step_y),
            Point(target.center_x, step_y),
            Point(target.center_x, target.bottom),
        ]
    return [
        Point(source.right, source.center_y),
        Point(target.x, target.center_y),
    ]


def lane_offsets(
    model: GraphModel, ranks: RankResult, dims: DiagramDimensions = DEFAULT_DIMENSIONS
) -> Dict[Any, float]:
    """Top offset of every lane, stacking lanes by ascending numeric id."""
    offsets: Dict[Any, float] = {}
    running = 0.0
    for lane_id in ordered_lane_ids(model.lanes):
        offsets[lane_id] = running
        running += ranks.depths.get(lane_id, 1) * dims.y_spacing
    return offsets


def build_geometry(
    model: GraphModel,
    ranks: RankResult,
    dims: DiagramDimensions = DEFAULT_DIMENSIONS,
) -> DiagramGeometry:
    offsets = lane_offsets(model, ranks, dims)

    bounds_by_node: Dict[str, BoundsResult] = {}
    for node in model.nodes:
        position = ranks.positions.get(node.id)
        if position is None:
            logger.warning("Error in node %s: no rank, shape rendered without bounds", node.id)
            bounds_by_node[node.id] = Unresolved(f"node {node.id} has no rank")
            continue
        bounds_by_node[node.id] = node_bounds(node, position, offsets[node.lane_id], dims)

    routes: Dict[str, RouteResult] = {}
    for flow in model.transitions:
        source = bounds_by_node.get(flow.source)
        target = bounds_by_node.get(flow.target)
        if not isinstance(source, Bounds) or not isinstance(target, Bounds):
            logger.warning(
                "Error parsing edge %s: unresolved endpoint, edge rendered without waypoints",
                flow.id,
            )
            routes[flow.id] = Unresolved(f"edge {flow.id} has an unresolved endpoint")
            continue
        routes[flow.id] = generate_waypoints(source, target, dims)

    max_columns = 1 + max((pos.column for pos in ranks.positions.values()), default=0)
    total_width = max_columns * dims.x_spacing

    lane_bounds: Dict[Any, Bounds] = {}
    total_height = 0.0
    for lane_id, offset in offsets.items():
        height = ranks.depths.get(lane_id, 1) * dims.y_spacing
        lane_bounds[lane_id] = Bounds(
            x=dims.padding + dims.lane_header,
            y=dims.padding - dims.y_margin + offset,
            width=total_width - dims.lane_header,
            height=height,
        )
        total_height += height

    participant = Bounds(
        x=dims.padding,
        y=dims.padding - dims.y_margin,
        width=total_width,
        height=total_height,
    )
    return DiagramGeometry(
        node_bounds=bounds_by_node,
        lane_bounds=lane_bounds,
        participant_bounds=participant,
        routes=routes,
    )
