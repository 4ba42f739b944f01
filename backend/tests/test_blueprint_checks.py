from services.blueprint_checks import check_blueprint


def test_checks_detect_missing_start_and_finish():
    blueprint = {
        "lanes": [{"id": 1, "name": "Main"}],
        "nodes": [
            {"id": "t", "type": "task", "name": "T", "lane_id": 1, "next": "u"},
            {"id": "u", "type": "task", "name": "U", "lane_id": 1, "next": "t"},
        ],
    }
    codes = {issue.code for issue in check_blueprint(blueprint) if issue.severity == "error"}
    assert codes == {"missing_start_event", "missing_end_event"}


def test_checks_emit_soft_warnings():
    blueprint = {
        "lanes": [{"id": 1, "name": "Main"}, {"id": 2, "name": "Unused"}],
        "nodes": [
            {"id": "s", "type": "start", "name": "S", "lane_id": 1, "next": "g"},
            {"id": "g", "type": "flow", "name": "G", "lane_id": 1, "next": {"a": "e", "b": "e"}},
            {"id": "orphan", "type": "task", "name": "O", "lane_id": 1, "next": "e"},
            {"id": "e", "type": "finish", "name": "E", "lane_id": 1},
        ],
    }
    issues = check_blueprint(blueprint)
    codes = {issue.code for issue in issues if issue.severity == "warning"}
    assert codes == {"empty_lane", "single_branch_gateway", "unreachable_node"}
    unreachable = [i for i in issues if i.code == "unreachable_node"]
    assert [i.node_id for i in unreachable] == ["orphan"]


def test_checks_flag_secondary_start_into_gateway():
    blueprint = {
        "lanes": [{"id": 1}],
        "nodes": [
            {"id": "s1", "type": "start", "lane_id": 1, "next": "t"},
            {"id": "t", "type": "task", "lane_id": 1, "next": "e"},
            {"id": "e", "type": "finish", "lane_id": 1},
            {"id": "s2", "type": "start", "lane_id": 1, "next": "x"},
            {"id": "x", "type": "task", "lane_id": 1, "next": "g"},
            {"id": "g", "type": "flow", "lane_id": 1, "next": {"a": "t", "b": "e"}},
        ],
    }
    issues = [i for i in check_blueprint(blueprint) if i.code == "secondary_start_into_gateway"]
    assert len(issues) == 1
    assert issues[0].node_id == "s2"


def test_clean_blueprint_has_no_issues():
    blueprint = {
        "lanes": [{"id": 1, "name": "Main"}],
        "nodes": [
            {"id": "s", "type": "start", "name": "S", "lane_id": 1, "next": "g"},
            {"id": "g", "type": "flow", "name": "G", "lane_id": 1, "next": {"a": "t", "b": "e"}},
            {"id": "t", "type": "task", "name": "T", "lane_id": 1, "next": "e"},
            {"id": "e", "type": "finish", "name": "E", "lane_id": 1},
            {"id": "s2", "type": "start", "name": "S2", "lane_id": 1, "next": "t"},
        ],
    }
    assert check_blueprint(blueprint) == []


def test_nodes_behind_a_finish_next_are_unreachable():
    blueprint = {
        "lanes": [{"id": 1}],
        "nodes": [
            {"id": "s", "type": "start", "lane_id": 1, "next": "e"},
            {"id": "e", "type": "finish", "lane_id": 1, "next": "x"},
            {"id": "x", "type": "task", "lane_id": 1, "next": "e2"},
            {"id": "e2", "type": "finish", "lane_id": 1},
        ],
    }
    unreachable = [i.node_id for i in check_blueprint(blueprint) if i.code == "unreachable_node"]
    assert unreachable == ["x", "e2"]
