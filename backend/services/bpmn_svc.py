# bpmn_svc.py
# Blueprint -> BPMN 2.0 XML s automatickým layoutom (lanes, ranky, waypointy).

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from core.settings import ConverterSettings, get_settings
from services import bpmn_model as bpmn
from services.blueprint_model import (
    KIND_FINISH,
    KIND_GATEWAY,
    KIND_START,
    KIND_TASK,
    GraphModel,
    ProcessNode,
    build_graph_model,
    ordered_lane_ids,
    std_di_id,
    std_lane_id,
    std_node_id,
    std_node_label,
)
from services.layout import (
    DEFAULT_DIMENSIONS,
    Bounds,
    DiagramDimensions,
    DiagramGeometry,
    RankResult,
    build_geometry,
    discover_node_ranks,
)

logger = logging.getLogger(__name__)

PROCESS_ID = "Global_Process"
LANE_SET_ID = "Global_LaneSet"
PARTICIPANT_ID = "Global_Actor"
COLLABORATION_ID = "Global_Colab"
DIAGRAM_ID = "Global_Diagram"
PLANE_ID = "Global_Plane"
DEFINITIONS_ID = "Global_Definitions"

TASK_TAG_BY_KIND = {
    "systemtask": "serviceTask",
    "usertask": "userTask",
    "scripttask": "scriptTask",
    "subprocess": "subProcess",
    KIND_TASK: "task",
}


@dataclass(frozen=True)
class ConversionResult:
    """Everything one conversion produced; nothing here is shared between calls."""

    model: GraphModel
    ranks: RankResult
    geometry: DiagramGeometry
    definitions: bpmn.Definitions


# -------------------------------
# Semantic part
# -------------------------------
def _flow_refs(flows) -> tuple:
    return tuple(flow.id for flow in flows)


def parse_node(node: ProcessNode, model: GraphModel) -> bpmn.FlowNode:
    element_id = std_node_id(node.id)
    name = std_node_label(node.id, node.name)
    incoming = _flow_refs(model.incoming.get(node.id, []))
    outgoing = _flow_refs(model.outgoing.get(node.id, []))

    if node.kind == KIND_START:
        return bpmn.StartEvent(id=element_id, name=name, outgoing=outgoing)
    if node.kind == KIND_FINISH:
        return bpmn.EndEvent(id=element_id, name=name, incoming=incoming)
    if node.kind == KIND_GATEWAY:
        return bpmn.ExclusiveGateway(
            id=element_id, name=name, incoming=incoming, outgoing=outgoing
        )
    return bpmn.Task(
        id=element_id,
        name=name,
        incoming=incoming,
        outgoing=outgoing,
        tag=TASK_TAG_BY_KIND.get(node.kind, "task"),
    )


def build_sequence_flows(model: GraphModel) -> List[bpmn.SequenceFlow]:
    return [
        bpmn.SequenceFlow(
            id=flow.id,
            source_ref=std_node_id(flow.source),
            target_ref=std_node_id(flow.target),
        )
        for flow in model.transitions
    ]


def build_lane_set(model: GraphModel) -> bpmn.LaneSet:
    lanes = tuple(
        bpmn.Lane(
            id=std_lane_id(lane.id),
            name=lane.name,
            flow_node_refs=tuple(std_node_id(node.id) for node in model.lane_members(lane.id)),
        )
        for lane in model.lanes
    )
    return bpmn.LaneSet(id=LANE_SET_ID, lanes=lanes)


def build_process(model: GraphModel) -> bpmn.Process:
    nodes = [parse_node(node, model) for node in model.nodes]
    flows = build_sequence_flows(model)
    return bpmn.Process(
        id=PROCESS_ID,
        lane_sets=(build_lane_set(model),),
        flow_elements=tuple(nodes) + tuple(flows),
        is_executable=True,
    )


def build_collaboration(name: Optional[str]) -> bpmn.Collaboration:
    participant = bpmn.Participant(id=PARTICIPANT_ID, process_ref=PROCESS_ID, name=name or None)
    return bpmn.Collaboration(id=COLLABORATION_ID, participants=(participant,))


# -------------------------------
# Diagram interchange part
# -------------------------------
def build_diagram(model: GraphModel, geometry: DiagramGeometry) -> bpmn.Diagram:
    elements: List[Any] = []

    for node in model.nodes:
        element_id = std_node_id(node.id)
        bounds = geometry.node_bounds.get(node.id)
        elements.append(
            bpmn.Shape(
                id=std_di_id(element_id),
                bpmn_element=element_id,
                bounds=bounds if isinstance(bounds, Bounds) else None,
            )
        )

    for flow in model.transitions:
        elements.append(
            bpmn.Edge(
                id=std_di_id(flow.id),
                bpmn_element=flow.id,
                waypoints=tuple(geometry.waypoints(flow.id)),
            )
        )

    for lane_id in ordered_lane_ids(model.lanes):
        element_id = std_lane_id(lane_id)
        elements.append(
            bpmn.Shape(
                id=std_di_id(element_id),
                bpmn_element=element_id,
                bounds=geometry.lane_bounds[lane_id],
            )
        )

    elements.append(
        bpmn.Shape(
            id=std_di_id(PARTICIPANT_ID),
            bpmn_element=PARTICIPANT_ID,
            bounds=geometry.participant_bounds,
        )
    )

    plane = bpmn.Plane(id=PLANE_ID, bpmn_element=COLLABORATION_ID, elements=tuple(elements))
    return bpmn.Diagram(id=DIAGRAM_ID, plane=plane)


class BlueprintConverter:
    """Converts one blueprint per ``build`` call; keeps no per-call state."""

    def __init__(
        self,
        settings: ConverterSettings | None = None,
        dimensions: DiagramDimensions = DEFAULT_DIMENSIONS,
    ) -> None:
        self.settings = settings or get_settings().converter
        self.dimensions = dimensions

    def build(self, blueprint: Mapping[str, Any], name: str | None = None) -> ConversionResult:
        model = build_graph_model(blueprint)
        ranks = discover_node_ranks(model)
        geometry = build_geometry(model, ranks, self.dimensions)

        participant_name = name if name is not None else self.settings.participant_name
        definitions = bpmn.Definitions(
            id=DEFINITIONS_ID,
            root_elements=(build_process(model), build_collaboration(participant_name)),
            diagrams=(build_diagram(model, geometry),),
        )
        logger.info(
            "Blueprint laid out: %d nodes in %d lanes, %d transitions",
            len(model.nodes),
            len(model.lanes),
            len(model.transitions),
        )
        return ConversionResult(
            model=model, ranks=ranks, geometry=geometry, definitions=definitions
        )

    async def to_xml(self, result: ConversionResult, pretty: bool | None = None) -> str:
        fmt = self.settings.pretty if pretty is None else pretty
        return bpmn.serialize(result.definitions, pretty=fmt)


def layout_summary(result: ConversionResult) -> Dict[str, Any]:
    """JSON friendly view of ranks and geometry."""

    def _bounds(value) -> Dict[str, float] | None:
        if not isinstance(value, Bounds):
            return None
        return {"x": value.x, "y": value.y, "width": value.width, "height": value.height}

    geometry = result.geometry
    return {
        "positions": {
            str(node_id): [pos.column, pos.row]
            for node_id, pos in result.ranks.positions.items()
        },
        "depths": {str(lane_id): depth for lane_id, depth in result.ranks.depths.items()},
        "nodes": {
            str(node_id): _bounds(bounds) for node_id, bounds in geometry.node_bounds.items()
        },
        "lanes": {
            str(lane_id): _bounds(bounds) for lane_id, bounds in geometry.lane_bounds.items()
        },
        "participant": _bounds(geometry.participant_bounds),
        "edges": {
            flow_id: [[point.x, point.y] for point in geometry.waypoints(flow_id)]
            for flow_id in geometry.routes
        },
    }


# -------------------------------
# Public hook
# -------------------------------
def generate_bpmn_from_blueprint(
    blueprint: Mapping[str, Any], name: str | None = None, pretty: bool = False
) -> str:
    converter = BlueprintConverter()
    result = converter.build(blueprint, name=name)
    return asyncio.run(converter.to_xml(result, pretty=pretty))
