"""런타임 JSON 스키마 ↔ RuntimeScript 변환

출력은 결정적이다: 노드는 스크립트 순서, 키는 고정 삽입 순서, 타임스탬프 없음.
입력 파싱은 관대하게 한다 (누락 필드 → 기본값). 구조 자체가 깨졌으면 GraphParseError.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from dialogue_tree.core.errors import GraphParseError
from dialogue_tree.core.graph.models import LocalizedText, NodeType
from dialogue_tree.core.graph.validation import (
    GraphViolation,
    ViolationKind,
)
from dialogue_tree.core.script.models import (
    CompiledChoice,
    CompiledNode,
    RuntimeScript,
)

# 런타임 스키마에만 존재하는 최상위 키
RUNTIME_MARKER_KEY = "startNodeId"


# === 직렬화 ===


def script_to_dict(script: RuntimeScript) -> dict[str, Any]:
    return {
        "title": script.title.to_dict(),
        "startNodeId": script.start_node_id,
        "nodes": [_node_to_dict(node) for node in script.nodes],
    }


def script_to_json(script: RuntimeScript, indent: Optional[int] = 2) -> str:
    return json.dumps(script_to_dict(script), ensure_ascii=False, indent=indent)


def _node_to_dict(node: CompiledNode) -> dict[str, Any]:
    data: dict[str, Any] = {"id": node.node_id, "type": node.node_type.value}

    if node.node_type == NodeType.START:
        if node.next_node_id:
            data["nextNodeId"] = node.next_node_id
    elif node.node_type == NodeType.DIALOGUE:
        data["speaker"] = (node.speaker or LocalizedText()).to_dict()
        data["text"] = (node.text or LocalizedText()).to_dict()
        if node.next_node_id:
            data["nextNodeId"] = node.next_node_id
    elif node.node_type == NodeType.CHOICE:
        data["text"] = (node.text or LocalizedText()).to_dict()
        data["choices"] = [
            {
                "id": choice.choice_id,
                "text": choice.text.to_dict(),
                "isCorrect": choice.is_correct,
                "nextNodeId": choice.next_node_id,
            }
            for choice in node.choices
        ]
    elif node.node_type != NodeType.END:
        raise TypeError(f"Unhandled node type: {node.node_type!r}")

    return data


# === 역직렬화 ===


def script_from_json(raw: str) -> RuntimeScript:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise GraphParseError(f"Runtime script is not valid JSON: {e}") from e
    return script_from_dict(data)


def script_from_dict(data: Any) -> RuntimeScript:
    """런타임 스키마 dict 파싱"""
    if not isinstance(data, dict):
        raise GraphParseError("Runtime script must be a JSON object")

    raw_nodes = data.get("nodes")
    if not isinstance(raw_nodes, list):
        raise GraphParseError("Runtime script has no 'nodes' list")

    nodes = tuple(_node_from_dict(raw, index) for index, raw in enumerate(raw_nodes))
    return RuntimeScript(
        start_node_id=_get_str(data, RUNTIME_MARKER_KEY),
        nodes=nodes,
        title=LocalizedText.from_dict(data.get("title")),
    )


def _node_from_dict(raw: Any, index: int) -> CompiledNode:
    if not isinstance(raw, dict):
        raise GraphParseError(f"Node #{index} is not an object")

    node_id = _get_str(raw, "id")
    if not node_id:
        raise GraphParseError(f"Node #{index} has no id")

    try:
        node_type = NodeType(_get_str(raw, "type"))
    except ValueError as e:
        raise GraphParseError(
            f"Node '{node_id}' has unknown type '{raw.get('type')}'"
        ) from e

    next_node_id = _get_str(raw, "nextNodeId") or None

    if node_type == NodeType.START:
        return CompiledNode(node_id, node_type, next_node_id=next_node_id)
    if node_type == NodeType.DIALOGUE:
        return CompiledNode(
            node_id,
            node_type,
            next_node_id=next_node_id,
            speaker=LocalizedText.from_dict(raw.get("speaker")),
            text=LocalizedText.from_dict(raw.get("text")),
        )
    if node_type == NodeType.CHOICE:
        raw_choices = raw.get("choices")
        if raw_choices is not None and not isinstance(raw_choices, list):
            raise GraphParseError(f"Node '{node_id}' choices is not a list")
        return CompiledNode(
            node_id,
            node_type,
            text=LocalizedText.from_dict(raw.get("text")),
            choices=tuple(
                _choice_from_dict(c, i, node_id)
                for i, c in enumerate(raw_choices or [])
            ),
        )
    return CompiledNode(node_id, node_type)


def _choice_from_dict(raw: Any, index: int, node_id: str) -> CompiledChoice:
    if not isinstance(raw, dict):
        raise GraphParseError(f"Choice #{index} of node '{node_id}' is not an object")
    return CompiledChoice(
        choice_id=_get_str(raw, "id") or f"choice_{index}",
        text=LocalizedText.from_dict(raw.get("text")),
        is_correct=parse_bool(raw.get("isCorrect")),
        next_node_id=_get_str(raw, "nextNodeId"),
    )


def parse_bool(value: Any) -> bool:
    """bool 또는 "true"/"false" 문자열. 그 외(누락 포함)는 False."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def _get_str(data: dict, key: str) -> str:
    value = data.get(key)
    return "" if value is None else str(value)


# === 로드 시 점검 ===


def check_script(script: RuntimeScript) -> list[GraphViolation]:
    """외부에서 받은 런타임 스크립트 점검. 재생은 막지 않고 경고용으로 쓴다."""
    violations: list[GraphViolation] = []

    start = script.get_start_node()
    if start is None or start.node_type != NodeType.START:
        violations.append(
            GraphViolation(
                kind=ViolationKind.MISSING_START_NODE,
                message=f"startNodeId '{script.start_node_id}' is not a start node",
                ref_id=script.start_node_id or None,
            )
        )

    seen: set[str] = set()
    for node in script.nodes:
        if node.node_id in seen:
            violations.append(
                GraphViolation(
                    kind=ViolationKind.DUPLICATE_NODE_ID,
                    message=f"Node id '{node.node_id}' is used more than once",
                    node_id=node.node_id,
                )
            )
        seen.add(node.node_id)

        targets = [node.next_node_id] + [c.next_node_id for c in node.choices]
        for target in targets:
            if target and script.get_node(target) is None:
                violations.append(
                    GraphViolation(
                        kind=ViolationKind.DANGLING_REFERENCE,
                        message=(
                            f"Node '{node.node_id}' points to missing node '{target}'"
                        ),
                        node_id=node.node_id,
                        ref_id=target,
                    )
                )

        if node.node_type == NodeType.CHOICE and not node.choices:
            violations.append(
                GraphViolation(
                    kind=ViolationKind.EMPTY_CHOICE_NODE,
                    message=f"Choice node '{node.node_id}' has no choices",
                    node_id=node.node_id,
                )
            )

    return violations
