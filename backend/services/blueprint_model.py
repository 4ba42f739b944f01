from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple, Union

from services.errors import BlueprintError

logger = logging.getLogger(__name__)

# -------------------------------
# Node kinds
# -------------------------------
KIND_START = "start"
KIND_FINISH = "finish"
KIND_GATEWAY = "flow"
KIND_SYSTEM_TASK = "systemtask"
KIND_USER_TASK = "usertask"
KIND_SCRIPT_TASK = "scripttask"
KIND_SUBPROCESS = "subprocess"
KIND_TASK = "task"

KNOWN_KINDS = {
    KIND_START,
    KIND_FINISH,
    KIND_GATEWAY,
    KIND_SYSTEM_TASK,
    KIND_USER_TASK,
    KIND_SCRIPT_TASK,
    KIND_SUBPROCESS,
}

NextRef = Union[None, str, Dict[str, str]]


def normalize_kind(raw_type: Any) -> str:
    value = str(raw_type or "").strip().lower()
    return value if value in KNOWN_KINDS else KIND_TASK


# -------------------------------
# Identifier scheme
# -------------------------------
def std_lane_id(lane_id: Any) -> str:
    return f"Lane_{lane_id}"


def std_node_id(node_id: Any) -> str:
    return f"Node_{node_id}"


def std_flow_id(source_id: Any, target_id: Any) -> str:
    return f"Flow_{source_id}_{target_id}"


def std_di_id(element_id: str) -> str:
    return f"{element_id}_di"


def std_node_label(node_id: Any, name: Any) -> str:
    return f"{node_id}\n{name if name is not None else ''}"


@dataclass(frozen=True)
class ProcessNode:
    id: str
    kind: str
    name: str
    lane_id: Any
    next: NextRef = None

    @property
    def is_branching(self) -> bool:
        return isinstance(self.next, dict)


@dataclass(frozen=True)
class Lane:
    id: Any
    name: str


@dataclass(frozen=True)
class Transition:
    id: str
    source: str
    target: str


@dataclass(frozen=True)
class GraphModel:
    nodes: List[ProcessNode]
    lanes: List[Lane]
    transitions: List[Transition]
    incoming: Dict[str, List[Transition]] = field(default_factory=dict)
    outgoing: Dict[str, List[Transition]] = field(default_factory=dict)
    node_index: Dict[str, ProcessNode] = field(default_factory=dict)

    def node(self, node_id: str) -> ProcessNode:
        return self.node_index[node_id]

    def lane_members(self, lane_id: Any) -> List[ProcessNode]:
        return [node for node in self.nodes if node.lane_id == lane_id]


def validate_blueprint(blueprint: Any) -> bool:
    if not isinstance(blueprint, Mapping):
        return False
    return bool(blueprint.get("nodes")) and bool(blueprint.get("lanes"))


def _parse_next(raw_node: Mapping[str, Any], kind: str) -> NextRef:
    node_id = raw_node.get("id")
    raw_next = raw_node.get("next")
    if kind == KIND_FINISH:
        if raw_next not in (None, "", {}):
            logger.warning("Finish node %s declares next=%r, ignoring it", node_id, raw_next)
        return None
    if raw_next is None:
        if kind == KIND_GATEWAY:
            return None
        raise BlueprintError(f"Node {node_id} ({kind}) has no 'next' node.")
    if isinstance(raw_next, Mapping):
        if kind != KIND_GATEWAY:
            raise BlueprintError(
                f"Node {node_id} ({kind}) has branching 'next'; only flow nodes may branch."
            )
        return {str(key): value for key, value in raw_next.items()}
    return raw_next


def _parse_node(raw_node: Any) -> ProcessNode:
    if not isinstance(raw_node, Mapping):
        raise BlueprintError(f"Node {raw_node!r} must be an object.")
    for key in ("id", "type", "lane_id"):
        if raw_node.get(key) is None:
            raise BlueprintError(f"Node {raw_node.get('id', '?')} is missing key: {key}")
    kind = normalize_kind(raw_node["type"])
    return ProcessNode(
        id=raw_node["id"],
        kind=kind,
        name=raw_node.get("name") or "",
        lane_id=raw_node["lane_id"],
        next=_parse_next(raw_node, kind),
    )


def _parse_lane(raw_lane: Any) -> Lane:
    if not isinstance(raw_lane, Mapping) or raw_lane.get("id") is None:
        raise BlueprintError(f"Lane {raw_lane!r} must be an object with an 'id'.")
    return Lane(id=raw_lane["id"], name=raw_lane.get("name") or "")


def node_targets(node: ProcessNode) -> List[str]:
    """Distinct successor ids of a node, in declaration order."""
    if node.next is None:
        return []
    if isinstance(node.next, dict):
        targets: List[str] = []
        for target in node.next.values():
            if target not in targets:
                targets.append(target)
        return targets
    return [node.next]


def build_transitions(nodes: List[ProcessNode]) -> Tuple[List[Transition], Dict[str, List[Transition]]]:
    transitions: List[Transition] = []
    incoming: Dict[str, List[Transition]] = {}
    for node in nodes:
        for target in node_targets(node):
            flow = Transition(id=std_flow_id(node.id, target), source=node.id, target=target)
            transitions.append(flow)
            incoming.setdefault(target, []).append(flow)
    return transitions, incoming


def build_graph_model(blueprint: Mapping[str, Any]) -> GraphModel:
    """Resolve blueprint nodes, lanes and transitions.

    Raises BlueprintError before any layout work when the blueprint lacks
    nodes or lanes, or when it references undeclared lanes or nodes.
    """
    if not validate_blueprint(blueprint):
        raise BlueprintError("Invalid spec: no nodes or no lanes.")

    lanes = [_parse_lane(raw) for raw in blueprint["lanes"]]
    lane_ids = [lane.id for lane in lanes]
    if len(set(lane_ids)) != len(lane_ids):
        raise BlueprintError("Lane ids must be unique.")

    nodes: List[ProcessNode] = []
    node_index: Dict[str, ProcessNode] = {}
    for raw in blueprint["nodes"]:
        node = _parse_node(raw)
        if node.id in node_index:
            raise BlueprintError(f"Duplicate node id: {node.id}")
        if node.lane_id not in lane_ids:
            raise BlueprintError(f"Node {node.id} references unknown lane {node.lane_id!r}.")
        nodes.append(node)
        node_index[node.id] = node

    for node in nodes:
        for target in node_targets(node):
            if target not in node_index:
                raise BlueprintError(f"Node {node.id} points to unknown node {target!r}.")

    transitions, incoming = build_transitions(nodes)
    outgoing: Dict[str, List[Transition]] = {}
    for flow in transitions:
        outgoing.setdefault(flow.source, []).append(flow)

    logger.debug(
        "Graph model: %d nodes, %d lanes, %d transitions",
        len(nodes),
        len(lanes),
        len(transitions),
    )
    return GraphModel(
        nodes=nodes,
        lanes=lanes,
        transitions=transitions,
        incoming=incoming,
        outgoing=outgoing,
        node_index=node_index,
    )


def lane_sort_key(lane_id: Any) -> Tuple[int, float, str]:
    """Ascending numeric order; non-numeric ids follow in string order."""
    try:
        return (0, float(lane_id), "")
    except (TypeError, ValueError):
        return (1, 0.0, str(lane_id))


def ordered_lane_ids(lanes: List[Lane]) -> List[Any]:
    return sorted((lane.id for lane in lanes), key=lane_sort_key)


def start_nodes(model: GraphModel) -> List[ProcessNode]:
    return [node for node in model.nodes if node.kind == KIND_START]
