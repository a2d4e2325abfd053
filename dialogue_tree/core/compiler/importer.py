"""JSON → GraphDocument 가져오기 (best-effort)

판별 순서:
1. 최상위에 startNodeId 키가 있으면 런타임 스키마
2. 아니면 저작 포맷으로 파싱
3. 저작 파싱이 실패하거나 노드가 0개면 런타임 스키마로 재시도
4. 런타임 가져오기도 실패하면 빈 문서 (부분/손상 문서는 반환하지 않음)

런타임 → 저작 복원은 손실이 있다: 좌표는 auto_layout으로 새로 만든다.
"""

from __future__ import annotations

import json
from typing import Any, Optional, Union

from dialogue_tree.core.errors import GraphEditError, GraphParseError
from dialogue_tree.core.compiler.authoring import document_from_dict
from dialogue_tree.core.compiler.layout import COLUMN_X, ROW_SPACING, auto_layout
from dialogue_tree.core.graph.document import GraphDocument
from dialogue_tree.core.graph.models import (
    OUTPUT_PORT,
    Choice,
    ChoiceNode,
    DialogueNode,
    Edge,
    EndNode,
    LocalizedText,
    Node,
    NodeType,
    StartNode,
    choice_port_name,
)
from dialogue_tree.core.logging import get_logger
from dialogue_tree.core.script.codec import RUNTIME_MARKER_KEY, script_from_dict
from dialogue_tree.core.script.models import CompiledNode, RuntimeScript

logger = get_logger(__name__)


def import_document(
    raw: Union[str, dict[str, Any]],
    column_x: float = COLUMN_X,
    row_spacing: float = ROW_SPACING,
) -> GraphDocument:
    """저작/런타임 어느 쪽 JSON이든 GraphDocument로 가져온다. 예외 없음."""
    data = _load(raw)
    if data is None:
        return GraphDocument()

    if RUNTIME_MARKER_KEY in data:
        return _import_runtime(data, column_x, row_spacing)

    try:
        document = document_from_dict(data)
        if document.node_count > 0:
            return document
        logger.info("Authoring parse produced no nodes; trying runtime format")
    except GraphParseError as e:
        logger.info("Authoring parse failed (%s); trying runtime format", e)

    return _import_runtime(data, column_x, row_spacing)


def extract_title(raw: Union[str, dict[str, Any]]) -> Optional[LocalizedText]:
    """런타임 JSON의 title 필드. 없으면 None."""
    data = _load(raw)
    if data is None or not isinstance(data.get("title"), dict):
        return None
    return LocalizedText.from_dict(data["title"])


def document_from_script(
    script: RuntimeScript,
    column_x: float = COLUMN_X,
    row_spacing: float = ROW_SPACING,
) -> GraphDocument:
    """런타임 스크립트 → 저작 문서. next 참조마다 엣지 1개를 합성한다.

    Raises:
        GraphEditError: 노드 id가 중복될 때
    """
    positions = auto_layout(script.nodes, column_x, row_spacing)
    nodes: list[Node] = []
    edges: list[Edge] = []

    for compiled in script.nodes:
        node = _node_from_compiled(compiled)
        node.position = positions[compiled.node_id]
        nodes.append(node)

        if compiled.node_type in (NodeType.START, NodeType.DIALOGUE):
            if compiled.next_node_id:
                edges.append(
                    Edge(
                        from_node_id=compiled.node_id,
                        from_port_name=OUTPUT_PORT,
                        to_node_id=compiled.next_node_id,
                    )
                )
        elif isinstance(node, ChoiceNode):
            for choice, compiled_choice in zip(node.choices, compiled.choices):
                if compiled_choice.next_node_id:
                    edges.append(
                        Edge(
                            from_node_id=compiled.node_id,
                            from_port_name=choice.port_name,
                            to_node_id=compiled_choice.next_node_id,
                        )
                    )

    return GraphDocument(nodes=nodes, edges=edges)


def _node_from_compiled(compiled: CompiledNode) -> Node:
    if compiled.node_type == NodeType.START:
        return StartNode(node_id=compiled.node_id)
    if compiled.node_type == NodeType.DIALOGUE:
        return DialogueNode(
            node_id=compiled.node_id,
            speaker=compiled.speaker or LocalizedText(),
            text=compiled.text or LocalizedText(),
        )
    if compiled.node_type == NodeType.CHOICE:
        return ChoiceNode(
            node_id=compiled.node_id,
            prompt=compiled.text or LocalizedText(),
            choices=[
                Choice(
                    choice_id=c.choice_id,
                    port_name=choice_port_name(index),
                    text=c.text,
                    is_correct=c.is_correct,
                )
                for index, c in enumerate(compiled.choices)
            ],
        )
    if compiled.node_type == NodeType.END:
        return EndNode(node_id=compiled.node_id)
    raise TypeError(f"Unhandled node type: {compiled.node_type!r}")


def _import_runtime(
    data: dict[str, Any], column_x: float, row_spacing: float
) -> GraphDocument:
    try:
        script = script_from_dict(data)
        document = document_from_script(script, column_x, row_spacing)
    except (GraphParseError, GraphEditError) as e:
        logger.warning("Runtime import failed, returning empty document: %s", e)
        return GraphDocument()

    logger.info(
        "Imported runtime script: %d nodes, %d edges",
        document.node_count,
        len(document.edges),
    )
    return document


def _load(raw: Union[str, dict[str, Any]]) -> Optional[dict[str, Any]]:
    if isinstance(raw, dict):
        return raw
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning("Import input is not valid JSON: %s", e)
        return None
    if not isinstance(data, dict):
        logger.warning("Import input is not a JSON object")
        return None
    return data
