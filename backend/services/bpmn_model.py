# bpmn_model.py
# BPMN 2.0 element model (one frozen dataclass per element kind) and its XML writer.

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple, Union

from services.errors import SerializationError
from services.layout.geometry import Bounds, Point

# -------------------------------
# Namespaces a helpers
# -------------------------------
NS = {
    "bpmn": "http://www.omg.org/spec/BPMN/20100524/MODEL",
    "bpmndi": "http://www.omg.org/spec/BPMN/20100524/DI",
    "dc": "http://www.omg.org/spec/DD/20100524/DC",
    "di": "http://www.omg.org/spec/DD/20100524/DI",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
}
for _prefix, _uri in NS.items():
    ET.register_namespace(_prefix, _uri)

TARGET_NS = "http://bpmn.io/schema/bpmn"

TASK_TAGS = {"task", "serviceTask", "userTask", "scriptTask", "subProcess"}


def T(ns: str, local: str) -> str:
    return f"{{{NS[ns]}}}{local}"


def _fmt(value: float) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


# -------------------------------
# Semantic elements
# -------------------------------
@dataclass(frozen=True)
class StartEvent:
    id: str
    name: str
    outgoing: Tuple[str, ...] = ()


@dataclass(frozen=True)
class EndEvent:
    id: str
    name: str
    incoming: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ExclusiveGateway:
    id: str
    name: str
    incoming: Tuple[str, ...] = ()
    outgoing: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Task:
    id: str
    name: str
    incoming: Tuple[str, ...] = ()
    outgoing: Tuple[str, ...] = ()
    tag: str = "task"

    def __post_init__(self) -> None:
        if self.tag not in TASK_TAGS:
            raise ValueError(f"Unknown task element: {self.tag}")


@dataclass(frozen=True)
class SequenceFlow:
    id: str
    source_ref: str
    target_ref: str


FlowNode = Union[StartEvent, EndEvent, ExclusiveGateway, Task]
FlowElement = Union[StartEvent, EndEvent, ExclusiveGateway, Task, SequenceFlow]


@dataclass(frozen=True)
class Lane:
    id: str
    name: str
    flow_node_refs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LaneSet:
    id: str
    lanes: Tuple[Lane, ...] = ()


@dataclass(frozen=True)
class Process:
    id: str
    lane_sets: Tuple[LaneSet, ...] = ()
    flow_elements: Tuple[FlowElement, ...] = ()
    is_executable: bool = True


@dataclass(frozen=True)
class Participant:
    id: str
    process_ref: str
    name: Optional[str] = None


@dataclass(frozen=True)
class Collaboration:
    id: str
    participants: Tuple[Participant, ...] = ()


# -------------------------------
# Diagram interchange
# -------------------------------
@dataclass(frozen=True)
class Shape:
    id: str
    bpmn_element: str
    bounds: Optional[Bounds] = None


@dataclass(frozen=True)
class Edge:
    id: str
    bpmn_element: str
    waypoints: Tuple[Point, ...] = ()


@dataclass(frozen=True)
class Plane:
    id: str
    bpmn_element: str
    elements: Tuple[Union[Shape, Edge], ...] = ()


@dataclass(frozen=True)
class Diagram:
    id: str
    plane: Plane


@dataclass(frozen=True)
class Definitions:
    id: str
    root_elements: Tuple[Union[Process, Collaboration], ...] = ()
    diagrams: Tuple[Diagram, ...] = ()
    target_namespace: str = TARGET_NS


BpmnElement = Union[
    StartEvent,
    EndEvent,
    ExclusiveGateway,
    Task,
    SequenceFlow,
    Lane,
    LaneSet,
    Process,
    Participant,
    Collaboration,
    Shape,
    Edge,
    Plane,
    Diagram,
    Definitions,
    Bounds,
    Point,
]


# -------------------------------
# Writers (one per element kind)
# -------------------------------
def _refs(parent: ET.Element, local: str, refs: Tuple[str, ...]) -> None:
    for ref in refs:
        ET.SubElement(parent, T("bpmn", local)).text = ref


def _write_start_event(el: StartEvent, parent: ET.Element) -> ET.Element:
    node = ET.SubElement(parent, T("bpmn", "startEvent"), {"id": el.id, "name": el.name})
    _refs(node, "outgoing", el.outgoing)
    return node


def _write_end_event(el: EndEvent, parent: ET.Element) -> ET.Element:
    node = ET.SubElement(parent, T("bpmn", "endEvent"), {"id": el.id, "name": el.name})
    _refs(node, "incoming", el.incoming)
    return node


def _write_gateway(el: ExclusiveGateway, parent: ET.Element) -> ET.Element:
    node = ET.SubElement(
        parent, T("bpmn", "exclusiveGateway"), {"id": el.id, "name": el.name}
    )
    _refs(node, "incoming", el.incoming)
    _refs(node, "outgoing", el.outgoing)
    return node


def _write_task(el: Task, parent: ET.Element) -> ET.Element:
    node = ET.SubElement(parent, T("bpmn", el.tag), {"id": el.id, "name": el.name})
    _refs(node, "incoming", el.incoming)
    _refs(node, "outgoing", el.outgoing)
    return node


def _write_sequence_flow(el: SequenceFlow, parent: ET.Element) -> ET.Element:
    return ET.SubElement(
        parent,
        T("bpmn", "sequenceFlow"),
        {"id": el.id, "sourceRef": el.source_ref, "targetRef": el.target_ref},
    )


def _write_lane(el: Lane, parent: ET.Element) -> ET.Element:
    attrs = {"id": el.id}
    if el.name:
        attrs["name"] = el.name
    node = ET.SubElement(parent, T("bpmn", "lane"), attrs)
    _refs(node, "flowNodeRef", el.flow_node_refs)
    return node


def _write_lane_set(el: LaneSet, parent: ET.Element) -> ET.Element:
    node = ET.SubElement(parent, T("bpmn", "laneSet"), {"id": el.id})
    for lane in el.lanes:
        write_element(lane, node)
    return node


def _write_process(el: Process, parent: ET.Element) -> ET.Element:
    node = ET.SubElement(
        parent,
        T("bpmn", "process"),
        {"id": el.id, "isExecutable": "true" if el.is_executable else "false"},
    )
    for lane_set in el.lane_sets:
        write_element(lane_set, node)
    for flow_element in el.flow_elements:
        write_element(flow_element, node)
    return node


def _write_participant(el: Participant, parent: ET.Element) -> ET.Element:
    attrs = {"id": el.id}
    if el.name:
        attrs["name"] = el.name
    attrs["processRef"] = el.process_ref
    return ET.SubElement(parent, T("bpmn", "participant"), attrs)


def _write_collaboration(el: Collaboration, parent: ET.Element) -> ET.Element:
    node = ET.SubElement(parent, T("bpmn", "collaboration"), {"id": el.id})
    for participant in el.participants:
        write_element(participant, node)
    return node


def _write_bounds(el: Bounds, parent: ET.Element) -> ET.Element:
    return ET.SubElement(
        parent,
        T("dc", "Bounds"),
        {
            "x": _fmt(el.x),
            "y": _fmt(el.y),
            "width": _fmt(el.width),
            "height": _fmt(el.height),
        },
    )


def _write_point(el: Point, parent: ET.Element) -> ET.Element:
    return ET.SubElement(parent, T("di", "waypoint"), {"x": _fmt(el.x), "y": _fmt(el.y)})


def _write_shape(el: Shape, parent: ET.Element) -> ET.Element:
    node = ET.SubElement(
        parent, T("bpmndi", "BPMNShape"), {"id": el.id, "bpmnElement": el.bpmn_element}
    )
    if el.bounds is not None:
        write_element(el.bounds, node)
    return node


def _write_edge(el: Edge, parent: ET.Element) -> ET.Element:
    node = ET.SubElement(
        parent, T("bpmndi", "BPMNEdge"), {"id": el.id, "bpmnElement": el.bpmn_element}
    )
    for point in el.waypoints:
        write_element(point, node)
    return node


def _write_plane(el: Plane, parent: ET.Element) -> ET.Element:
    node = ET.SubElement(
        parent, T("bpmndi", "BPMNPlane"), {"id": el.id, "bpmnElement": el.bpmn_element}
    )
    for child in el.elements:
        write_element(child, node)
    return node


def _write_diagram(el: Diagram, parent: ET.Element) -> ET.Element:
    node = ET.SubElement(parent, T("bpmndi", "BPMNDiagram"), {"id": el.id})
    write_element(el.plane, node)
    return node


_WRITERS: Dict[type, Callable[..., ET.Element]] = {
    StartEvent: _write_start_event,
    EndEvent: _write_end_event,
    ExclusiveGateway: _write_gateway,
    Task: _write_task,
    SequenceFlow: _write_sequence_flow,
    Lane: _write_lane,
    LaneSet: _write_lane_set,
    Process: _write_process,
    Participant: _write_participant,
    Collaboration: _write_collaboration,
    Bounds: _write_bounds,
    Point: _write_point,
    Shape: _write_shape,
    Edge: _write_edge,
    Plane: _write_plane,
    Diagram: _write_diagram,
}


def write_element(element: BpmnElement, parent: ET.Element) -> ET.Element:
    writer = _WRITERS.get(type(element))
    if writer is None:
        raise SerializationError(f"Unsupported BPMN element: {type(element).__name__}")
    return writer(element, parent)


def definitions_to_etree(defs: Definitions) -> ET.Element:
    root = ET.Element(
        T("bpmn", "definitions"),
        {"id": defs.id, "targetNamespace": defs.target_namespace},
    )
    for element in defs.root_elements:
        write_element(element, root)
    for diagram in defs.diagrams:
        write_element(diagram, root)
    return root


# -------------------------------
# Reference check
# -------------------------------
def _collect_ids(defs: Definitions) -> Tuple[Set[str], Set[str], Set[str], Set[str]]:
    flow_nodes: Set[str] = set()
    flows: Set[str] = set()
    processes: Set[str] = set()
    semantic: Set[str] = set()
    for root in defs.root_elements:
        semantic.add(root.id)
        if isinstance(root, Process):
            processes.add(root.id)
            for lane_set in root.lane_sets:
                semantic.update(lane.id for lane in lane_set.lanes)
            for element in root.flow_elements:
                if isinstance(element, SequenceFlow):
                    flows.add(element.id)
                else:
                    flow_nodes.add(element.id)
        else:
            semantic.update(participant.id for participant in root.participants)
    semantic.update(flow_nodes)
    semantic.update(flows)
    return flow_nodes, flows, processes, semantic


def find_dangling_references(defs: Definitions) -> List[str]:
    flow_nodes, flows, processes, semantic = _collect_ids(defs)
    problems: List[str] = []

    for root in defs.root_elements:
        if isinstance(root, Process):
            for lane_set in root.lane_sets:
                for lane in lane_set.lanes:
                    for ref in lane.flow_node_refs:
                        if ref not in flow_nodes:
                            problems.append(f"{lane.id}.flowNodeRef -> {ref}")
            for element in root.flow_elements:
                if isinstance(element, SequenceFlow):
                    for ref in (element.source_ref, element.target_ref):
                        if ref not in flow_nodes:
                            problems.append(f"{element.id} -> {ref}")
                    continue
                refs = getattr(element, "incoming", ()) + getattr(element, "outgoing", ())
                for ref in refs:
                    if ref not in flows:
                        problems.append(f"{element.id} -> {ref}")
        else:
            for participant in root.participants:
                if participant.process_ref not in processes:
                    problems.append(f"{participant.id}.processRef -> {participant.process_ref}")

    for diagram in defs.diagrams:
        plane = diagram.plane
        if plane.bpmn_element not in semantic:
            problems.append(f"{plane.id} -> {plane.bpmn_element}")
        for child in plane.elements:
            if child.bpmn_element not in semantic:
                problems.append(f"{child.id} -> {child.bpmn_element}")
    return problems


# -------------------------------
# Output
# -------------------------------
def _indent(elem, level: int = 0):
    i = "\n" + level * "  "
    if len(elem):
        if not elem.text or not elem.text.strip():
            elem.text = i + "  "
        for e in elem:
            _indent(e, level + 1)
        if not e.tail or not e.tail.strip():
            e.tail = i
    if level and (not elem.tail or not elem.tail.strip()):
        elem.tail = i


def serialize(defs: Definitions, pretty: bool = False) -> str:
    problems = find_dangling_references(defs)
    if problems:
        shown = ", ".join(problems[:5])
        more = f" (+{len(problems) - 5} more)" if len(problems) > 5 else ""
        raise SerializationError(f"Unresolved references: {shown}{more}")

    root = definitions_to_etree(defs)
    if pretty:
        _indent(root)
    xml_bytes = ET.tostring(root, encoding="utf-8", xml_declaration=True)
    return xml_bytes.decode("utf-8")
