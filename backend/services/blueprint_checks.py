from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping, Set

Severity = Literal["error", "warning"]


def _norm_type(value: Any) -> str:
    if not value:
        return ""
    return str(value).strip().lower()


@dataclass(frozen=True)
class Issue:
    code: str
    message: str
    severity: Severity
    node_id: str | None = None


def _successors(node: Mapping[str, Any]) -> List[Any]:
    nxt = node.get("next")
    # the converter drops a finish node's next
    if nxt is None or _norm_type(node.get("type")) == "finish":
        return []
    if isinstance(nxt, Mapping):
        return list(nxt.values())
    return [nxt]


def _reachable(node_by_id: Dict[Any, Mapping[str, Any]], start_ids: List[Any]) -> Set[Any]:
    seen: Set[Any] = set(start_ids)
    queue = deque(start_ids)
    while queue:
        node = node_by_id.get(queue.popleft())
        if node is None:
            continue
        for target in _successors(node):
            if target in node_by_id and target not in seen:
                seen.add(target)
                queue.append(target)
    return seen


def check_blueprint(blueprint: Mapping[str, Any]) -> List[Issue]:
    """Run modelling checks on a blueprint and return the issues found.

    These never stop a conversion on their own; they explain in advance
    what the layout will do with the blueprint (unplaced nodes, chains
    the engine rejects).
    """
    issues: List[Issue] = []

    nodes = [node for node in blueprint.get("nodes") or [] if isinstance(node, Mapping)]
    lanes = [lane for lane in blueprint.get("lanes") or [] if isinstance(lane, Mapping)]
    node_by_id = {node.get("id"): node for node in nodes if node.get("id") is not None}

    start_ids = [n.get("id") for n in nodes if _norm_type(n.get("type")) == "start"]

    # Hard rule: at least one start and one finish
    if not start_ids:
        issues.append(
            Issue(
                code="missing_start_event",
                message="Blueprint has no start node; nothing can be laid out.",
                severity="error",
            )
        )
    if not any(_norm_type(n.get("type")) == "finish" for n in nodes):
        issues.append(
            Issue(
                code="missing_end_event",
                message="Blueprint has no finish node.",
                severity="error",
            )
        )

    # Soft rule: empty lanes
    lane_usage: Dict[Any, int] = {}
    for node in nodes:
        lane_id = node.get("lane_id")
        lane_usage[lane_id] = lane_usage.get(lane_id, 0) + 1
    for lane in lanes:
        lane_id = lane.get("id")
        if lane_usage.get(lane_id, 0) == 0:
            name = lane.get("name") or lane_id
            issues.append(
                Issue(
                    code="empty_lane",
                    message=f"Lane '{name}' has no assigned nodes.",
                    severity="warning",
                )
            )

    # Soft rule: flow nodes with fewer than two distinct branches
    for node_id, node in node_by_id.items():
        if _norm_type(node.get("type")) != "flow":
            continue
        if len(set(_successors(node))) < 2:
            issues.append(
                Issue(
                    code="single_branch_gateway",
                    message=f"Flow node '{node_id}' has fewer than two distinct branches.",
                    severity="warning",
                    node_id=node_id,
                )
            )

    # Soft rule: nodes the breadth-first walk or a start chain never reaches
    reachable = _reachable(node_by_id, start_ids)
    for node_id in node_by_id:
        if node_id not in reachable:
            issues.append(
                Issue(
                    code="unreachable_node",
                    message=f"Node '{node_id}' is not reachable from any start; it will have no bounds.",
                    severity="warning",
                    node_id=node_id,
                )
            )

    # Secondary starts hitting a flow node before the main graph are rejected by the layout
    if len(start_ids) > 1:
        placed = _reachable(node_by_id, start_ids[:1])
        for start_id in start_ids[1:]:
            current = node_by_id.get(start_id)
            walked: Set[Any] = set()
            while current is not None and current.get("id") not in placed:
                if isinstance(current.get("next"), Mapping):
                    issues.append(
                        Issue(
                            code="secondary_start_into_gateway",
                            message=(
                                f"Start '{start_id}' reaches flow node '{current.get('id')}' "
                                "before joining the main path; conversion will fail."
                            ),
                            severity="warning",
                            node_id=start_id,
                        )
                    )
                    break
                if current.get("id") in walked:
                    break
                walked.add(current.get("id"))
                current = node_by_id.get(current.get("next"))
            # chains placed so far count as joined for the next start
            placed |= walked

    return issues
