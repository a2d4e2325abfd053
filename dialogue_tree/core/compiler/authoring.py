"""저작 포맷 ↔ GraphDocument 변환

런타임 스키마와 같은 노드/선택지 모양에 노드별 position,
선택지별 portName, 명시적 edges 목록이 추가된 형태.
"""

from __future__ import annotations

import json
from typing import Any

from dialogue_tree.core.errors import GraphEditError, GraphParseError
from dialogue_tree.core.graph.document import GraphDocument
from dialogue_tree.core.graph.models import (
    INPUT_PORT,
    Choice,
    ChoiceNode,
    DialogueNode,
    Edge,
    EndNode,
    LocalizedText,
    Node,
    NodeType,
    Position,
    StartNode,
    choice_port_name,
)
from dialogue_tree.core.script.codec import parse_bool


def document_to_dict(document: GraphDocument) -> dict[str, Any]:
    return {
        "nodes": [_node_to_dict(node) for node in document.nodes],
        "edges": [
            {
                "fromNodeId": edge.from_node_id,
                "fromPortName": edge.from_port_name,
                "toNodeId": edge.to_node_id,
                "toPortName": edge.to_port_name,
            }
            for edge in document.edges
        ],
    }


def document_to_json(document: GraphDocument, indent: int = 2) -> str:
    return json.dumps(document_to_dict(document), ensure_ascii=False, indent=indent)


def _node_to_dict(node: Node) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": node.node_id,
        "type": node.node_type.value,
        "position": {"x": node.position.x, "y": node.position.y},
    }
    if isinstance(node, DialogueNode):
        data["speaker"] = node.speaker.to_dict()
        data["text"] = node.text.to_dict()
    elif isinstance(node, ChoiceNode):
        data["text"] = node.prompt.to_dict()
        data["choices"] = [
            {
                "id": choice.choice_id,
                "text": choice.text.to_dict(),
                "isCorrect": choice.is_correct,
                "portName": choice.port_name,
            }
            for choice in node.choices
        ]
    elif not isinstance(node, (StartNode, EndNode)):
        raise TypeError(f"Unhandled node: {node!r}")
    return data


def document_from_dict(data: Any) -> GraphDocument:
    """저작 포맷 파싱. 구조가 맞지 않으면 GraphParseError."""
    if not isinstance(data, dict):
        raise GraphParseError("Authoring document must be a JSON object")

    raw_nodes = data.get("nodes", [])
    raw_edges = data.get("edges", [])
    if not isinstance(raw_nodes, list) or not isinstance(raw_edges, list):
        raise GraphParseError("Authoring document 'nodes'/'edges' must be lists")

    nodes = [_node_from_dict(raw, index) for index, raw in enumerate(raw_nodes)]
    edges = [_edge_from_dict(raw, index) for index, raw in enumerate(raw_edges)]

    try:
        return GraphDocument(nodes=nodes, edges=edges)
    except GraphEditError as e:
        raise GraphParseError(str(e)) from e


def document_from_json(raw: str) -> GraphDocument:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise GraphParseError(f"Authoring document is not valid JSON: {e}") from e
    return document_from_dict(data)


def _node_from_dict(raw: Any, index: int) -> Node:
    if not isinstance(raw, dict):
        raise GraphParseError(f"Node #{index} is not an object")

    node_id = raw.get("id")
    if not isinstance(node_id, str) or not node_id:
        raise GraphParseError(f"Node #{index} has no id")

    try:
        node_type = NodeType(raw.get("type"))
    except ValueError as e:
        raise GraphParseError(
            f"Node '{node_id}' has unknown type '{raw.get('type')}'"
        ) from e

    position = _position_from_dict(raw.get("position"))

    if node_type == NodeType.START:
        return StartNode(node_id=node_id, position=position)
    if node_type == NodeType.DIALOGUE:
        return DialogueNode(
            node_id=node_id,
            position=position,
            speaker=LocalizedText.from_dict(raw.get("speaker")),
            text=LocalizedText.from_dict(raw.get("text")),
        )
    if node_type == NodeType.CHOICE:
        raw_choices = raw.get("choices", [])
        if not isinstance(raw_choices, list):
            raise GraphParseError(f"Node '{node_id}' choices is not a list")
        return ChoiceNode(
            node_id=node_id,
            position=position,
            prompt=LocalizedText.from_dict(raw.get("text")),
            choices=[
                _choice_from_dict(c, i, node_id) for i, c in enumerate(raw_choices)
            ],
        )
    return EndNode(node_id=node_id, position=position)


def _choice_from_dict(raw: Any, index: int, node_id: str) -> Choice:
    if not isinstance(raw, dict):
        raise GraphParseError(f"Choice #{index} of node '{node_id}' is not an object")
    choice_id = raw.get("id") or f"{node_id}_choice_{index}"
    port_name = raw.get("portName") or choice_port_name(index)
    return Choice(
        choice_id=str(choice_id),
        port_name=str(port_name),
        text=LocalizedText.from_dict(raw.get("text")),
        is_correct=parse_bool(raw.get("isCorrect")),
    )


def _edge_from_dict(raw: Any, index: int) -> Edge:
    if not isinstance(raw, dict):
        raise GraphParseError(f"Edge #{index} is not an object")
    from_node_id = raw.get("fromNodeId")
    from_port = raw.get("fromPortName")
    to_node_id = raw.get("toNodeId")
    if not all(isinstance(v, str) and v for v in (from_node_id, from_port, to_node_id)):
        raise GraphParseError(f"Edge #{index} is missing endpoints")
    return Edge(
        from_node_id=from_node_id,
        from_port_name=from_port,
        to_node_id=to_node_id,
        to_port_name=raw.get("toPortName") or INPUT_PORT,
    )


def _position_from_dict(raw: Any) -> Position:
    if not isinstance(raw, dict):
        return Position()
    try:
        return Position(x=float(raw.get("x", 0.0)), y=float(raw.get("y", 0.0)))
    except (TypeError, ValueError):
        return Position()
