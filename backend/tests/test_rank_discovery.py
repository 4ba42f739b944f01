import pytest

from services.blueprint_model import build_graph_model
from services.errors import UnsupportedTopologyError
from services.layout.ranks import child_order, discover_node_ranks


def _node(node_id, node_type, nxt=None, lane=1, name=None):
    node = {"id": node_id, "type": node_type, "name": name or node_id, "lane_id": lane}
    if nxt is not None:
        node["next"] = nxt
    return node


def _ranks(nodes, lanes=None):
    blueprint = {"nodes": nodes, "lanes": lanes or [{"id": 1, "name": "Main"}]}
    model = build_graph_model(blueprint)
    return discover_node_ranks(model)


def _pos(result):
    return {node_id: tuple(pos) for node_id, pos in result.positions.items()}


def test_linear_chain():
    result = _ranks(
        [
            _node("start", "start", "task"),
            _node("task", "SystemTask", "end"),
            _node("end", "finish"),
        ]
    )
    assert _pos(result) == {"start": (0, 0), "task": (1, 0), "end": (2, 0)}
    assert result.depths == {1: 1}


def test_gateway_branches_fan_out_by_key():
    result = _ranks(
        [
            _node("start", "start", "gw"),
            _node("gw", "flow", {"a": "X", "b": "Y"}),
            _node("X", "usertask", "end"),
            _node("Y", "usertask", "end"),
            _node("end", "finish"),
        ]
    )
    pos = _pos(result)
    assert pos["gw"] == (1, 0)
    assert pos["X"] == (2, 0)
    assert pos["Y"] == (2, 1)
    assert pos["end"] == (3, 0)
    assert result.depths == {1: 2}


def test_branch_keys_are_sorted_not_declared_order():
    result = _ranks(
        [
            _node("start", "start", "gw"),
            _node("gw", "flow", {"b": "X", "a": "Y"}),
            _node("X", "usertask", "end"),
            _node("Y", "usertask", "end"),
            _node("end", "finish"),
        ]
    )
    pos = _pos(result)
    assert pos["Y"] == (2, 0)
    assert pos["X"] == (2, 1)



def test_integer_like_branch_keys_compare_as_strings():
    model = build_graph_model(
        {
            "lanes": [{"id": 1}],
            "nodes": [
                _node("start", "start", "gw"),
                _node("gw", "flow", {"9": "Y", "10": "X"}),
                _node("X", "task", "end"),
                _node("Y", "task", "end"),
                _node("end", "finish"),
            ],
        }
    )
    assert child_order(model.node("gw"), model) == ["X", "Y"]

def test_gateway_targets_come_after_plain_targets():
    model = build_graph_model(
        {
            "lanes": [{"id": 1}],
            "nodes": [
                _node("start", "start", "gw"),
                _node("gw", "flow", {"a": "gw2", "b": "T", "c": "T"}),
                _node("gw2", "flow", {"x": "end"}),
                _node("T", "task", "end"),
                _node("end", "finish"),
            ],
        }
    )
    assert child_order(model.node("gw"), model) == ["T", "gw2"]
    assert child_order(model.node("start"), model) == ["gw"]
    assert child_order(model.node("end"), model) == []


def test_queue_is_first_in_first_out():
    # A is dequeued before B, so the shared finish lands on A's row.
    result = _ranks(
        [
            _node("start", "start", "gw"),
            _node("gw", "flow", {"a": "A", "b": "B"}),
            _node("A", "task", "end"),
            _node("B", "task", "end"),
            _node("end", "finish"),
        ]
    )
    assert _pos(result)["end"] == (3, 0)


def test_nested_gateway_rows_are_opened_and_compacted():
    result = _ranks(
        [
            _node("start", "start", "g1"),
            _node("g1", "flow", {"a": "A", "b": "g2"}),
            _node("g2", "flow", {"x": "C", "y": "D"}),
            _node("A", "task", "end"),
            _node("C", "task", "end"),
            _node("D", "task", "end"),
            _node("end", "finish"),
        ]
    )
    assert _pos(result) == {
        "start": (0, 0),
        "g1": (1, 0),
        "A": (2, 0),
        "g2": (2, 1),
        "end": (3, 0),
        "C": (3, 1),
        "D": (3, 2),
    }
    assert result.depths == {1: 3}


def test_secondary_start_joins_on_first_row():
    result = _ranks(
        [
            _node("s1", "start", "T1"),
            _node("T1", "task", "T2"),
            _node("T2", "task", "end"),
            _node("end", "finish"),
            _node("s2", "start", "U"),
            _node("U", "task", "T2"),
        ]
    )
    assert _pos(result) == {
        "s1": (0, 1),
        "T1": (1, 1),
        "T2": (2, 1),
        "end": (3, 1),
        "U": (2, 0),
        "s2": (1, 0),
    }
    assert result.depths == {1: 2}


def test_secondary_start_opens_column_when_running_out_of_room():
    result = _ranks(
        [
            _node("s1", "start", "T"),
            _node("T", "task", "end"),
            _node("end", "finish"),
            _node("s2", "start", "A"),
            _node("A", "task", "B"),
            _node("B", "task", "T"),
        ]
    )
    assert _pos(result) == {
        "s1": (1, 1),
        "T": (2, 1),
        "end": (3, 1),
        "B": (2, 0),
        "A": (1, 0),
        "s2": (0, 0),
    }


def test_secondary_start_below_non_zero_row():
    result = _ranks(
        [
            _node("s1", "start", "gw"),
            _node("gw", "flow", {"a": "X", "b": "Y"}),
            _node("X", "task", "end"),
            _node("Y", "task", "end"),
            _node("end", "finish"),
            _node("s2", "start", "Y"),
        ]
    )
    pos = _pos(result)
    assert pos["Y"] == (2, 1)
    assert pos["s2"] == (2, 2)
    assert result.depths == {1: 3}


def test_secondary_start_hitting_flow_node_fails():
    with pytest.raises(UnsupportedTopologyError):
        _ranks(
            [
                _node("s1", "start", "T"),
                _node("T", "task", "end"),
                _node("end", "finish"),
                _node("s2", "start", "gw"),
                _node("gw", "flow", {"a": "T", "b": "end"}),
            ]
        )



def test_secondary_start_looping_without_joining_fails():
    with pytest.raises(UnsupportedTopologyError, match="cycle"):
        _ranks(
            [
                _node("s1", "start", "T"),
                _node("T", "task", "end"),
                _node("end", "finish"),
                _node("s2", "start", "A"),
                _node("A", "task", "B"),
                _node("B", "task", "A"),
            ]
        )

def test_independent_secondary_chain_gets_its_own_row():
    result = _ranks(
        [
            _node("s1", "start", "T"),
            _node("T", "task", "end"),
            _node("end", "finish"),
            _node("s2", "start", "U"),
            _node("U", "task", "end2"),
            _node("end2", "finish"),
        ]
    )
    pos = _pos(result)
    assert pos["s2"] == (0, 1)
    assert pos["U"] == (1, 1)
    assert pos["end2"] == (2, 1)


def test_unreachable_node_has_no_rank():
    result = _ranks(
        [
            _node("start", "start", "end"),
            _node("orphan", "task", "end"),
            _node("end", "finish"),
        ]
    )
    assert "orphan" not in result.positions
    assert set(result.positions) == {"start", "end"}


def test_cross_lane_ranks_are_compacted_per_lane():
    result = _ranks(
        [
            _node("start", "start", "T", lane=1),
            _node("T", "task", "end", lane=2),
            _node("end", "finish", lane=1),
        ],
        lanes=[{"id": 1, "name": "A"}, {"id": 2, "name": "B"}],
    )
    # each lane grid is compacted on its own
    assert _pos(result) == {"start": (0, 0), "end": (1, 0), "T": (0, 0)}
    assert result.depths == {1: 1, 2: 1}


def test_every_node_placed_exactly_once_and_cells_unique():
    nodes = [
        _node("start", "start", "g1", lane=1),
        _node("g1", "flow", {"ok": "A", "ko": "B", "retry": "g2"}, lane=1),
        _node("A", "usertask", "end", lane=2),
        _node("B", "scripttask", "end", lane=1),
        _node("g2", "flow", {"x": "C", "y": "D"}, lane=2),
        _node("C", "task", "end", lane=2),
        _node("D", "subprocess", "end", lane=1),
        _node("end", "finish", lane=1),
    ]
    lanes = [{"id": 1}, {"id": 2}]
    result = _ranks(nodes, lanes)
    assert sorted(result.positions) == sorted(n["id"] for n in nodes)
    for lane_id in (1, 2):
        cells = [tuple(result.positions[n["id"]]) for n in nodes if n["lane_id"] == lane_id]
        assert len(cells) == len(set(cells))


def test_no_start_places_nothing():
    result = _ranks([_node("T", "task", "end"), _node("end", "finish")])
    assert result.positions == {}
    assert result.depths == {1: 1}


def test_taken_cross_lane_cell_opens_a_row_instead_of_overwriting():
    # H sits on row 1 of lane 1; its branches land in lane 2, where the
    # sibling row insertion pushes U into the cell V is computed for
    result = _ranks(
        [
            _node("s", "start", "g", lane=1),
            _node("g", "flow", {"a": "T", "b": "H"}, lane=1),
            _node("T", "task", "end", lane=1),
            _node("H", "flow", {"a": "U", "b": "V"}, lane=1),
            _node("U", "task", "end", lane=2),
            _node("V", "task", "end", lane=2),
            _node("end", "finish", lane=1),
        ],
        lanes=[{"id": 1}, {"id": 2}],
    )
    assert _pos(result) == {
        "s": (0, 0),
        "g": (1, 0),
        "T": (2, 0),
        "H": (2, 1),
        "end": (3, 0),
        "V": (0, 0),
        "U": (0, 1),
    }
    assert result.depths == {1: 2, 2: 2}
