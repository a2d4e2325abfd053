"""GraphDocument - 저작 세션이 소유하는 가변 대화 그래프

노드는 id → Node 맵(삽입 순서 유지)에, 엣지는 별도 리스트에 보관한다.
노드끼리 서로를 참조하지 않으므로 순환 그래프도 그대로 직렬화된다.
"""

from __future__ import annotations

import copy
import re
from typing import Iterable, Optional, Union

from dialogue_tree.core.errors import GraphEditError
from dialogue_tree.core.graph.models import (
    NODE_CLASSES,
    Choice,
    ChoiceNode,
    DialogueNode,
    Edge,
    LocalizedText,
    Node,
    NodeType,
    Position,
    choice_port_name,
)
from dialogue_tree.core.graph.validation import GraphViolation, validate_graph
from dialogue_tree.core.logging import get_logger

logger = get_logger(__name__)

_NODE_ID_PATTERN = re.compile(r"^node_(\d+)$")

# 새 Choice 노드의 기본 선택지 수
DEFAULT_CHOICE_COUNT = 2


class GraphDocument:
    """저작용 대화 그래프

    사용 패턴:
        doc = GraphDocument.with_default_nodes()
        start_id, end_id = [n.node_id for n in doc.nodes]
        line_id = doc.add_node(NodeType.DIALOGUE)
        doc.add_edge(start_id, "output", line_id)
        doc.add_edge(line_id, "output", end_id)
        violations = doc.validate()
    """

    def __init__(
        self,
        nodes: Optional[Iterable[Node]] = None,
        edges: Optional[Iterable[Edge]] = None,
    ) -> None:
        self._nodes: dict[str, Node] = {}
        self._edges: list[Edge] = []
        self._node_counter = 0

        for node in nodes or []:
            self._insert_node(node)
        # 로드된 엣지는 검증 전까지 그대로 보존 (dangling 포함)
        self._edges.extend(edges or [])

    @classmethod
    def with_default_nodes(cls) -> GraphDocument:
        """Start + End 한 쌍이 들어 있는 새 문서"""
        doc = cls()
        doc.add_node(NodeType.START, Position(100, 200))
        doc.add_node(NodeType.END, Position(600, 200))
        return doc

    # === 조회 ===

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    def get_node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def start_nodes(self) -> list[Node]:
        return [n for n in self._nodes.values() if n.node_type == NodeType.START]

    def outgoing_edge(self, node_id: str, port_name: str) -> Optional[Edge]:
        for edge in self._edges:
            if edge.from_node_id == node_id and edge.from_port_name == port_name:
                return edge
        return None

    def edge_index(self) -> dict[tuple[str, str], str]:
        """(node_id, port_name) → to_node_id. 같은 포트 중복 시 먼저 온 것."""
        index: dict[tuple[str, str], str] = {}
        for edge in self._edges:
            index.setdefault((edge.from_node_id, edge.from_port_name), edge.to_node_id)
        return index

    # === 노드 편집 ===

    def add_node(
        self,
        node_type: Union[NodeType, str],
        position: Optional[Position] = None,
    ) -> str:
        """노드 추가 후 새 node_id 반환. Choice 노드는 기본 선택지 2개로 시작."""
        try:
            node_type = NodeType(node_type)
        except ValueError as e:
            raise GraphEditError(f"Unknown node type: {node_type}") from e
        node_id = self._next_node_id()
        node_cls = NODE_CLASSES[node_type]
        node = node_cls(node_id=node_id, position=position or Position())

        if isinstance(node, ChoiceNode):
            for index in range(DEFAULT_CHOICE_COUNT):
                label = f"Option {index + 1}"
                node.choices.append(
                    Choice(
                        choice_id=f"{node_id}_choice_{index}",
                        port_name=choice_port_name(index),
                        text=LocalizedText.of(en=label, fr=label),
                    )
                )

        if node_type == NodeType.START and self.start_nodes():
            logger.warning("Document already has a start node; added %s", node_id)

        self._nodes[node_id] = node
        return node_id

    def remove_node(self, node_id: str) -> None:
        """노드 삭제. 해당 노드에 닿는 엣지도 모두 삭제."""
        if node_id not in self._nodes:
            raise GraphEditError(f"Node not found: {node_id}")
        del self._nodes[node_id]
        self._edges = [
            e
            for e in self._edges
            if e.from_node_id != node_id and e.to_node_id != node_id
        ]

    def move_node(self, node_id: str, position: Position) -> None:
        self._require_node(node_id).position = position

    def set_dialogue_text(
        self,
        node_id: str,
        speaker: Optional[LocalizedText] = None,
        text: Optional[LocalizedText] = None,
    ) -> None:
        node = self._require_node(node_id)
        if not isinstance(node, DialogueNode):
            raise GraphEditError(f"Node is not a dialogue node: {node_id}")
        if speaker is not None:
            node.speaker = speaker
        if text is not None:
            node.text = text

    def set_choice_prompt(self, node_id: str, prompt: LocalizedText) -> None:
        self._require_choice_node(node_id).prompt = prompt

    # === 엣지 편집 ===

    def add_edge(self, from_node_id: str, from_port: str, to_node_id: str) -> Edge:
        """엣지 추가. 같은 (노드, 포트)에서 나가는 기존 엣지는 교체된다."""
        source = self._require_node(from_node_id)
        self._require_node(to_node_id)

        if source.node_type == NodeType.END:
            raise GraphEditError(f"End node cannot have outgoing edges: {from_node_id}")
        if from_port not in source.output_ports():
            raise GraphEditError(
                f"Node '{from_node_id}' has no output port '{from_port}'"
            )

        self.remove_edge(from_node_id, from_port)
        edge = Edge(
            from_node_id=from_node_id,
            from_port_name=from_port,
            to_node_id=to_node_id,
        )
        self._edges.append(edge)
        return edge

    def remove_edge(self, from_node_id: str, from_port: str) -> bool:
        """(노드, 포트)에서 나가는 엣지 삭제. 삭제했으면 True."""
        before = len(self._edges)
        self._edges = [
            e
            for e in self._edges
            if not (e.from_node_id == from_node_id and e.from_port_name == from_port)
        ]
        return len(self._edges) != before

    # === 선택지 편집 ===

    def add_choice(
        self,
        choice_node_id: str,
        text: Optional[LocalizedText] = None,
        is_correct: bool = False,
    ) -> str:
        """선택지(=출력 포트) 추가 후 choice_id 반환"""
        node = self._require_choice_node(choice_node_id)

        used_ids = {c.choice_id for c in node.choices}
        used_ports = set(node.output_ports())
        index = len(node.choices)
        while (
            f"{node.node_id}_choice_{index}" in used_ids
            or choice_port_name(index) in used_ports
        ):
            index += 1

        label = f"Option {len(node.choices) + 1}"
        choice = Choice(
            choice_id=f"{node.node_id}_choice_{index}",
            port_name=choice_port_name(index),
            text=text or LocalizedText.of(en=label, fr=label),
            is_correct=is_correct,
        )
        node.choices.append(choice)
        return choice.choice_id

    def remove_choice(self, choice_node_id: str, choice_id: str) -> None:
        """선택지 삭제. 마지막 1개는 삭제 불가. 해당 포트의 엣지도 삭제."""
        node = self._require_choice_node(choice_node_id)
        choice = node.get_choice(choice_id)
        if choice is None:
            raise GraphEditError(
                f"Choice '{choice_id}' not found on node '{choice_node_id}'"
            )
        if len(node.choices) <= 1:
            raise GraphEditError(
                f"Cannot remove the last choice of node '{choice_node_id}'"
            )

        node.choices.remove(choice)
        self.remove_edge(choice_node_id, choice.port_name)

    def update_choice(
        self,
        choice_node_id: str,
        choice_id: str,
        text: Optional[LocalizedText] = None,
        is_correct: Optional[bool] = None,
    ) -> None:
        node = self._require_choice_node(choice_node_id)
        choice = node.get_choice(choice_id)
        if choice is None:
            raise GraphEditError(
                f"Choice '{choice_id}' not found on node '{choice_node_id}'"
            )
        if text is not None:
            choice.text = text
        if is_correct is not None:
            choice.is_correct = is_correct

    # === 검증 / 스냅샷 ===

    def validate(self) -> list[GraphViolation]:
        """구조 검증. 예외 없이 위반 목록 반환."""
        return validate_graph(self.nodes, self._edges)

    def snapshot(self) -> GraphDocument:
        """컴파일용 읽기 스냅샷 (깊은 복사)"""
        return copy.deepcopy(self)

    # === 내부 ===

    def _insert_node(self, node: Node) -> None:
        if node.node_id in self._nodes:
            raise GraphEditError(f"Duplicate node id: {node.node_id}")
        self._nodes[node.node_id] = node
        match = _NODE_ID_PATTERN.match(node.node_id)
        if match:
            self._node_counter = max(self._node_counter, int(match.group(1)))

    def _next_node_id(self) -> str:
        self._node_counter += 1
        node_id = f"node_{self._node_counter:03d}"
        while node_id in self._nodes:
            self._node_counter += 1
            node_id = f"node_{self._node_counter:03d}"
        return node_id

    def _require_node(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise GraphEditError(f"Node not found: {node_id}")
        return node

    def _require_choice_node(self, node_id: str) -> ChoiceNode:
        node = self._require_node(node_id)
        if not isinstance(node, ChoiceNode):
            raise GraphEditError(f"Node is not a choice node: {node_id}")
        return node
