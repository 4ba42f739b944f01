from services.layout.geometry import (
    DEFAULT_DIMENSIONS,
    Bounds,
    DiagramDimensions,
    DiagramGeometry,
    Point,
    Unresolved,
    build_geometry,
    generate_waypoints,
)
from services.layout.grid import GridPosition, LaneGrid
from services.layout.ranks import RankResult, discover_node_ranks

__all__ = [
    "DEFAULT_DIMENSIONS",
    "Bounds",
    "DiagramDimensions",
    "DiagramGeometry",
    "GridPosition",
    "LaneGrid",
    "Point",
    "RankResult",
    "Unresolved",
    "build_geometry",
    "discover_node_ranks",
    "generate_waypoints",
]
