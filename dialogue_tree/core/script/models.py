"""런타임 스크립트 모델 (불변)

엣지 객체 없이 각 노드가 next_node_id를 직접 가진다.
여러 재생 세션이 같은 RuntimeScript를 참조로 공유해도 안전하다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from dialogue_tree.core.graph.models import LocalizedText, NodeType


@dataclass(frozen=True)
class CompiledChoice:
    """선택지. next_node_id가 빈 문자열이면 해당 분기 종료."""

    choice_id: str
    text: LocalizedText = field(default_factory=LocalizedText)
    is_correct: bool = False
    next_node_id: str = ""


@dataclass(frozen=True)
class CompiledNode:
    """컴파일된 노드 1개

    start/dialogue: next_node_id (없으면 None)
    dialogue: speaker, text
    choice: text(프롬프트), choices
    end: 추가 필드 없음
    """

    node_id: str
    node_type: NodeType
    next_node_id: Optional[str] = None
    speaker: Optional[LocalizedText] = None
    text: Optional[LocalizedText] = None
    choices: tuple[CompiledChoice, ...] = ()

    def get_choice(self, choice_id: str) -> Optional[CompiledChoice]:
        for choice in self.choices:
            if choice.choice_id == choice_id:
                return choice
        return None


@dataclass(frozen=True)
class RuntimeScript:
    """재생 엔진이 소비하는 평면 노드 목록 + 시작 노드 id"""

    start_node_id: str
    nodes: tuple[CompiledNode, ...] = ()
    title: LocalizedText = field(default_factory=LocalizedText)

    _node_map: dict[str, CompiledNode] = field(
        init=False, repr=False, compare=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "nodes", tuple(self.nodes))
        node_map: dict[str, CompiledNode] = {}
        for node in self.nodes:
            # 중복 id는 먼저 나온 노드 우선
            if node.node_id and node.node_id not in node_map:
                node_map[node.node_id] = node
        object.__setattr__(self, "_node_map", node_map)

    def get_node(self, node_id: Optional[str]) -> Optional[CompiledNode]:
        if not node_id:
            return None
        return self._node_map.get(node_id)

    def get_start_node(self) -> Optional[CompiledNode]:
        return self.get_node(self.start_node_id)

    def count_choice_nodes(self) -> int:
        return sum(1 for n in self.nodes if n.node_type == NodeType.CHOICE)
