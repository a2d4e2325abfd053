"""저작 그래프 Core 패키지

DB 무관 순수 Python 도메인 모델 + 편집/검증 로직.
"""

from dialogue_tree.core.graph.models import (
    CHOICE_PORT_PREFIX,
    INPUT_PORT,
    OUTPUT_PORT,
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
)
from dialogue_tree.core.graph.document import GraphDocument
from dialogue_tree.core.graph.validation import (
    GraphViolation,
    Severity,
    ViolationKind,
    errors_only,
    validate_graph,
    warnings_only,
)

__all__ = [
    "CHOICE_PORT_PREFIX",
    "INPUT_PORT",
    "OUTPUT_PORT",
    "Choice",
    "ChoiceNode",
    "DialogueNode",
    "Edge",
    "EndNode",
    "LocalizedText",
    "Node",
    "NodeType",
    "Position",
    "StartNode",
    "GraphDocument",
    "GraphViolation",
    "Severity",
    "ViolationKind",
    "errors_only",
    "validate_graph",
    "warnings_only",
]
