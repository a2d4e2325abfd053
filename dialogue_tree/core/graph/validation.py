"""저작 그래프 구조 검증

예외를 던지지 않고 위반 목록을 반환한다.
ERROR 등급이 하나라도 있으면 컴파일은 거부된다. WARNING은 경고만.
순환(루프)은 의도된 패턴이므로 검사하지 않는다.
"""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from dialogue_tree.core.graph.models import (
    INPUT_PORT,
    ChoiceNode,
    Edge,
    Node,
    NodeType,
)


class ViolationKind(str, Enum):
    MISSING_START_NODE = "missing_start_node"  # 0개 또는 2개 이상
    DUPLICATE_NODE_ID = "duplicate_node_id"
    DANGLING_REFERENCE = "dangling_reference"
    EMPTY_CHOICE_NODE = "empty_choice_node"
    DUPLICATE_CHOICE_ID = "duplicate_choice_id"
    END_NODE_HAS_OUTPUT = "end_node_has_output"
    INVALID_PORT = "invalid_port"
    DUPLICATE_OUTPUT_EDGE = "duplicate_output_edge"
    UNREACHABLE_NODE = "unreachable_node"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class GraphViolation:
    """검증 위반 1건

    node_id: 위반을 일으킨 노드 (참조를 가진 쪽)
    ref_id: 존재하지 않는 참조 대상 등 보조 식별자
    """

    kind: ViolationKind
    message: str
    node_id: Optional[str] = None
    ref_id: Optional[str] = None
    severity: Severity = Severity.ERROR

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "nodeId": self.node_id,
            "refId": self.ref_id,
        }


def validate_graph(
    nodes: Sequence[Node], edges: Sequence[Edge]
) -> list[GraphViolation]:
    """노드/엣지 목록 전체 검증. 위반 목록 반환 (없으면 빈 리스트)."""
    violations: list[GraphViolation] = []

    violations.extend(_check_start_nodes(nodes))
    violations.extend(_check_node_ids(nodes))
    violations.extend(_check_choice_nodes(nodes))
    violations.extend(_check_edges(nodes, edges))
    violations.extend(find_unreachable(nodes, edges))

    return violations


def errors_only(violations: Sequence[GraphViolation]) -> list[GraphViolation]:
    return [v for v in violations if v.is_error]


def warnings_only(violations: Sequence[GraphViolation]) -> list[GraphViolation]:
    return [v for v in violations if not v.is_error]


def _check_start_nodes(nodes: Sequence[Node]) -> list[GraphViolation]:
    start_ids = [n.node_id for n in nodes if n.node_type == NodeType.START]
    if not start_ids:
        return [
            GraphViolation(
                kind=ViolationKind.MISSING_START_NODE,
                message="Document has no start node",
            )
        ]
    if len(start_ids) > 1:
        return [
            GraphViolation(
                kind=ViolationKind.MISSING_START_NODE,
                message=(
                    f"Document has {len(start_ids)} start nodes: "
                    f"{', '.join(start_ids)}"
                ),
                node_id=start_ids[1],
            )
        ]
    return []


def _check_node_ids(nodes: Sequence[Node]) -> list[GraphViolation]:
    counts = Counter(n.node_id for n in nodes)
    return [
        GraphViolation(
            kind=ViolationKind.DUPLICATE_NODE_ID,
            message=f"Node id '{node_id}' is used {count} times",
            node_id=node_id,
        )
        for node_id, count in counts.items()
        if count > 1
    ]


def _check_choice_nodes(nodes: Sequence[Node]) -> list[GraphViolation]:
    violations: list[GraphViolation] = []
    for node in nodes:
        if not isinstance(node, ChoiceNode):
            continue
        if not node.choices:
            violations.append(
                GraphViolation(
                    kind=ViolationKind.EMPTY_CHOICE_NODE,
                    message=f"Choice node '{node.node_id}' has no choices",
                    node_id=node.node_id,
                )
            )
            continue
        counts = Counter(c.choice_id for c in node.choices)
        for choice_id, count in counts.items():
            if count > 1:
                violations.append(
                    GraphViolation(
                        kind=ViolationKind.DUPLICATE_CHOICE_ID,
                        message=(
                            f"Choice id '{choice_id}' is used {count} times "
                            f"in node '{node.node_id}'"
                        ),
                        node_id=node.node_id,
                        ref_id=choice_id,
                    )
                )
    return violations


def _check_edges(
    nodes: Sequence[Node], edges: Sequence[Edge]
) -> list[GraphViolation]:
    violations: list[GraphViolation] = []
    by_id = {n.node_id: n for n in nodes}
    seen_ports: set[tuple[str, str]] = set()

    for edge in edges:
        source = by_id.get(edge.from_node_id)
        if source is None:
            violations.append(
                GraphViolation(
                    kind=ViolationKind.DANGLING_REFERENCE,
                    message=(
                        f"Edge to '{edge.to_node_id}' starts at missing node "
                        f"'{edge.from_node_id}'"
                    ),
                    node_id=edge.from_node_id,
                    ref_id=edge.from_node_id,
                )
            )
            continue

        if edge.to_node_id not in by_id:
            violations.append(
                GraphViolation(
                    kind=ViolationKind.DANGLING_REFERENCE,
                    message=(
                        f"Node '{edge.from_node_id}' port '{edge.from_port_name}' "
                        f"points to missing node '{edge.to_node_id}'"
                    ),
                    node_id=edge.from_node_id,
                    ref_id=edge.to_node_id,
                )
            )

        if source.node_type == NodeType.END:
            violations.append(
                GraphViolation(
                    kind=ViolationKind.END_NODE_HAS_OUTPUT,
                    message=f"End node '{source.node_id}' has an outgoing edge",
                    node_id=source.node_id,
                )
            )
            continue

        if edge.from_port_name not in source.output_ports():
            violations.append(
                GraphViolation(
                    kind=ViolationKind.INVALID_PORT,
                    message=(
                        f"Node '{source.node_id}' has no output port "
                        f"'{edge.from_port_name}'"
                    ),
                    node_id=source.node_id,
                    ref_id=edge.from_port_name,
                )
            )
        elif edge.to_port_name != INPUT_PORT:
            violations.append(
                GraphViolation(
                    kind=ViolationKind.INVALID_PORT,
                    message=(
                        f"Edge from '{source.node_id}' targets port "
                        f"'{edge.to_port_name}' instead of '{INPUT_PORT}'"
                    ),
                    node_id=source.node_id,
                    ref_id=edge.to_port_name,
                )
            )

        port_key = (edge.from_node_id, edge.from_port_name)
        if port_key in seen_ports:
            violations.append(
                GraphViolation(
                    kind=ViolationKind.DUPLICATE_OUTPUT_EDGE,
                    message=(
                        f"Node '{source.node_id}' port '{edge.from_port_name}' "
                        f"has more than one outgoing edge"
                    ),
                    node_id=source.node_id,
                    ref_id=edge.from_port_name,
                )
            )
        seen_ports.add(port_key)

    return violations


def find_unreachable(
    nodes: Sequence[Node], edges: Sequence[Edge]
) -> list[GraphViolation]:
    """Start에서 도달할 수 없는 노드 → WARNING.

    Start가 정확히 1개일 때만 판정한다 (그 외는 이미 ERROR).
    """
    start_ids = [n.node_id for n in nodes if n.node_type == NodeType.START]
    if len(start_ids) != 1:
        return []

    adjacency: dict[str, list[str]] = {}
    for edge in edges:
        adjacency.setdefault(edge.from_node_id, []).append(edge.to_node_id)

    reached = {start_ids[0]}
    queue = deque(start_ids)
    while queue:
        current = queue.popleft()
        for target in adjacency.get(current, []):
            if target not in reached:
                reached.add(target)
                queue.append(target)

    return [
        GraphViolation(
            kind=ViolationKind.UNREACHABLE_NODE,
            message=f"Node '{node.node_id}' is not reachable from start",
            node_id=node.node_id,
            severity=Severity.WARNING,
        )
        for node in nodes
        if node.node_id not in reached
    ]
