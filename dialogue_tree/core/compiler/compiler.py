"""GraphDocument → RuntimeScript 컴파일

순수 함수. 문서 스냅샷을 검증하고 ERROR가 있으면 전부 거부한다 (부분 출력 없음).
WARNING(도달 불가 노드 등)은 로그만 남기고 컴파일을 진행한다.
"""

from __future__ import annotations

from typing import Optional

from dialogue_tree.core.errors import CompilationError
from dialogue_tree.core.graph.document import GraphDocument
from dialogue_tree.core.graph.models import (
    OUTPUT_PORT,
    ChoiceNode,
    DialogueNode,
    EndNode,
    LocalizedText,
    Node,
    StartNode,
)
from dialogue_tree.core.graph.validation import errors_only, warnings_only
from dialogue_tree.core.logging import get_logger
from dialogue_tree.core.script.models import (
    CompiledChoice,
    CompiledNode,
    RuntimeScript,
)

logger = get_logger(__name__)


def compile_document(
    document: GraphDocument, title: Optional[LocalizedText] = None
) -> RuntimeScript:
    """문서를 런타임 스크립트로 컴파일.

    Raises:
        CompilationError: ERROR 등급 위반이 하나라도 있을 때 (violations 포함)
    """
    snapshot = document.snapshot()

    violations = snapshot.validate()
    errors = errors_only(violations)
    if errors:
        logger.warning(
            "Compile refused: %d violation(s) (%s)",
            len(errors),
            ", ".join(v.kind.value for v in errors),
        )
        raise CompilationError(errors)

    for warning in warnings_only(violations):
        logger.warning("Compile warning: %s", warning.message)

    edge_index = snapshot.edge_index()
    compiled = tuple(_compile_node(node, edge_index) for node in snapshot.nodes)
    start_node_id = snapshot.start_nodes()[0].node_id

    logger.info(
        "Compiled document: %d nodes, start=%s", len(compiled), start_node_id
    )
    return RuntimeScript(
        start_node_id=start_node_id,
        nodes=compiled,
        title=title or LocalizedText(),
    )


def _compile_node(
    node: Node, edge_index: dict[tuple[str, str], str]
) -> CompiledNode:
    if isinstance(node, StartNode):
        return CompiledNode(
            node_id=node.node_id,
            node_type=node.node_type,
            next_node_id=edge_index.get((node.node_id, OUTPUT_PORT)),
        )
    if isinstance(node, DialogueNode):
        return CompiledNode(
            node_id=node.node_id,
            node_type=node.node_type,
            next_node_id=edge_index.get((node.node_id, OUTPUT_PORT)),
            speaker=node.speaker,
            text=node.text,
        )
    if isinstance(node, ChoiceNode):
        return CompiledNode(
            node_id=node.node_id,
            node_type=node.node_type,
            text=node.prompt,
            choices=tuple(
                CompiledChoice(
                    choice_id=choice.choice_id,
                    text=choice.text,
                    is_correct=choice.is_correct,
                    next_node_id=edge_index.get((node.node_id, choice.port_name), ""),
                )
                for choice in node.choices
            ),
        )
    if isinstance(node, EndNode):
        return CompiledNode(node_id=node.node_id, node_type=node.node_type)
    raise TypeError(f"Unhandled node: {node!r}")
