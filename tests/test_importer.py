"""JSON → GraphDocument 가져오기 테스트"""

import json

from dialogue_tree.core.compiler import (
    auto_layout,
    compile_document,
    document_to_dict,
    document_to_json,
    extract_title,
    import_document,
)
from dialogue_tree.core.compiler.layout import COLUMN_X, ROW_SPACING, START_ANCHOR
from dialogue_tree.core.graph import ChoiceNode, GraphDocument, NodeType, Position
from dialogue_tree.core.script import script_from_dict, script_to_dict, script_to_json


def _connectivity(document: GraphDocument) -> set[tuple[str, str, str]]:
    """(출발 노드, 선택지 id 또는 'output', 도착 노드) 집합. 포트 이름에 무관."""
    result = set()
    for node in document.nodes:
        if isinstance(node, ChoiceNode):
            for choice in node.choices:
                edge = document.outgoing_edge(node.node_id, choice.port_name)
                if edge:
                    result.add((node.node_id, choice.choice_id, edge.to_node_id))
        else:
            edge = document.outgoing_edge(node.node_id, "output")
            if edge:
                result.add((node.node_id, "output", edge.to_node_id))
    return result


def _payloads(document: GraphDocument) -> dict:
    """좌표와 포트 이름을 뺀 노드 내용"""
    result = {}
    for node in document_to_dict(document)["nodes"]:
        node = dict(node)
        node.pop("position")
        for choice in node.get("choices", []):
            choice.pop("portName")
        result[node["id"]] = node
    return result


class TestHeuristic:
    def test_runtime_marker_selects_runtime(self, loop_script_data):
        doc = import_document(json.dumps(loop_script_data))
        assert [n.node_id for n in doc.nodes] == ["n1", "n2", "n3", "n4"]
        assert doc.outgoing_edge("n1", "output").to_node_id == "n2"
        assert doc.outgoing_edge("n3", "choice_1").to_node_id == "n2"

    def test_authoring_format_keeps_positions(self, loop_document):
        loop_document.move_node("node_004", Position(777, 55))
        doc = import_document(document_to_json(loop_document))
        assert doc.get_node("node_004").position == Position(777, 55)
        assert _connectivity(doc) == _connectivity(loop_document)

    def test_accepts_dict_input(self, loop_script_data):
        assert import_document(loop_script_data).node_count == 4

    def test_runtime_shape_without_marker_parsed_as_authoring(self, loop_script_data):
        data = dict(loop_script_data)
        del data["startNodeId"]
        # 저작 파싱이 노드를 얻으면 그대로 채택 (nextNodeId는 엣지가 되지 않음)
        doc = import_document(data)
        assert doc.node_count == 4
        assert doc.edges == []

    def test_garbage_yields_empty_document(self):
        for raw in ["", "not json", "[1, 2]", '{"startNodeId": "x", "nodes": 5}']:
            doc = import_document(raw)
            assert isinstance(doc, GraphDocument)
            assert doc.node_count == 0
            assert doc.edges == []

    def test_runtime_with_duplicate_ids_yields_empty_document(self):
        raw = {
            "startNodeId": "a",
            "nodes": [{"id": "a", "type": "start"}, {"id": "a", "type": "end"}],
        }
        assert import_document(raw).node_count == 0

    def test_authoring_without_nodes_and_no_runtime_shape(self):
        assert import_document('{"edges": []}').node_count == 0


class TestRoundTrip:
    def test_import_of_compiled_preserves_structure(self, loop_document):
        script = compile_document(loop_document)
        restored = import_document(script_to_json(script))

        assert [n.node_id for n in restored.nodes] == [
            n.node_id for n in loop_document.nodes
        ]
        assert _payloads(restored) == _payloads(loop_document)
        assert _connectivity(restored) == _connectivity(loop_document)

    def test_roundtrip_after_choice_removal(self, loop_document):
        # 남은 선택지는 choice_1 포트, 재가져오기 후에는 choice_0 포트
        loop_document.remove_choice("node_003", "node_003_choice_0")
        loop_document.add_edge("node_003", "choice_1", "node_004")
        restored = import_document(script_to_json(compile_document(loop_document)))
        assert _connectivity(restored) == _connectivity(loop_document)

    def test_recompile_is_identical(self, loop_script_data):
        restored = import_document(loop_script_data)
        script = compile_document(restored, title=extract_title(loop_script_data))
        assert script_to_dict(script) == loop_script_data


class TestLayout:
    def test_layout_column_and_rows(self, loop_script_data):
        script = script_from_dict(loop_script_data)
        positions = auto_layout(script.nodes)
        assert positions["n1"] == START_ANCHOR
        assert positions["n2"] == Position(COLUMN_X, ROW_SPACING)
        assert positions["n4"] == Position(COLUMN_X, 3 * ROW_SPACING)

    def test_custom_spacing(self, loop_script_data):
        doc = import_document(loop_script_data, column_x=40, row_spacing=10)
        assert doc.get_node("n3").position == Position(40, 20)

    def test_layout_is_deterministic(self, loop_script_data):
        first = document_to_json(import_document(loop_script_data))
        second = document_to_json(import_document(loop_script_data))
        assert first == second


def test_extract_title(loop_script_data):
    assert extract_title(loop_script_data).get("en") == "Greeting"
    assert extract_title({"nodes": []}) is None
    assert extract_title("garbage") is None


def test_imported_choice_ports_are_sequential(loop_script_data):
    doc = import_document(loop_script_data)
    node = doc.get_node("n3")
    assert node.node_type == NodeType.CHOICE
    assert node.output_ports() == ["choice_0", "choice_1"]
