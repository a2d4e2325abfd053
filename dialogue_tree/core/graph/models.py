"""대화 그래프 저작(authoring) 도메인 모델 (DB 무관)

노드 종류는 Start / Dialogue / Choice / End 4종으로 닫혀 있다.
종류별로 별도 dataclass를 두고 Node 유니온으로 묶는다.
엣지는 노드에 내장하지 않고 GraphDocument의 별도 테이블에 보관한다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import ClassVar, Mapping, Optional, Union

DEFAULT_LANGUAGES = ("en", "fr")

# --- 포트 이름 ---
OUTPUT_PORT = "output"
INPUT_PORT = "input"
CHOICE_PORT_PREFIX = "choice_"


class NodeType(str, Enum):
    START = "start"
    DIALOGUE = "dialogue"
    CHOICE = "choice"
    END = "end"


def _empty_language_map() -> dict[str, str]:
    return {lang: "" for lang in DEFAULT_LANGUAGES}


@dataclass(frozen=True)
class LocalizedText:
    """언어 코드 → 문자열 맵 (기본 EN/FR, N개 언어로 확장 가능)

    엔진은 이 맵을 그대로 전달만 하고, 언어 선택은 표시 계층이 한다.
    values는 읽기 전용 뷰. 수정본이 필요하면 to_dict()로 복사한다.
    """

    values: Mapping[str, str] = field(default_factory=_empty_language_map)

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.values.items())))

    def __deepcopy__(self, memo: dict) -> LocalizedText:
        return self

    @classmethod
    def of(cls, en: str = "", fr: str = "", **others: str) -> LocalizedText:
        values = {"en": en, "fr": fr}
        values.update(others)
        return cls(values)

    @classmethod
    def from_dict(cls, data: object) -> LocalizedText:
        """JSON dict에서 생성. dict가 아니면 빈 텍스트, None 값은 빈 문자열."""
        values = _empty_language_map()
        if isinstance(data, dict):
            for lang, text in data.items():
                values[str(lang)] = "" if text is None else str(text)
        return cls(values)

    def to_dict(self) -> dict[str, str]:
        return dict(self.values)

    def get(self, lang: str) -> str:
        return self.values.get(lang, "")

    def resolve(self, lang: str, fallback_order: Optional[list[str]] = None) -> str:
        """활성 언어 텍스트 반환. 비어 있으면 다른 언어로 폴백."""
        text = self.get(lang)
        if text:
            return text
        for other in fallback_order or list(self.values):
            if other != lang and self.get(other):
                return self.get(other)
        return ""

    @property
    def is_empty(self) -> bool:
        return not any(self.values.values())


@dataclass
class Position:
    """캔버스 좌표 (저작 전용, 런타임 스크립트에는 없음)"""

    x: float = 0.0
    y: float = 0.0


@dataclass
class Choice:
    """Choice 노드의 선택지 1개. port_name이 출력 포트가 된다."""

    choice_id: str
    port_name: str
    text: LocalizedText = field(default_factory=LocalizedText)
    is_correct: bool = False


@dataclass
class StartNode:
    """진입 표시용 노드 (표시 단위 아님)"""

    node_type: ClassVar[NodeType] = NodeType.START

    node_id: str
    position: Position = field(default_factory=Position)

    def output_ports(self) -> list[str]:
        return [OUTPUT_PORT]


@dataclass
class DialogueNode:
    """화자 + 대사 1줄"""

    node_type: ClassVar[NodeType] = NodeType.DIALOGUE

    node_id: str
    position: Position = field(default_factory=Position)
    speaker: LocalizedText = field(default_factory=LocalizedText)
    text: LocalizedText = field(default_factory=LocalizedText)

    def output_ports(self) -> list[str]:
        return [OUTPUT_PORT]


@dataclass
class ChoiceNode:
    """프롬프트 + 순서 있는 선택지 목록. 선택지마다 출력 포트 1개."""

    node_type: ClassVar[NodeType] = NodeType.CHOICE

    node_id: str
    position: Position = field(default_factory=Position)
    prompt: LocalizedText = field(default_factory=LocalizedText)
    choices: list[Choice] = field(default_factory=list)

    def output_ports(self) -> list[str]:
        return [choice.port_name for choice in self.choices]

    def get_choice(self, choice_id: str) -> Optional[Choice]:
        for choice in self.choices:
            if choice.choice_id == choice_id:
                return choice
        return None


@dataclass
class EndNode:
    """종료 노드. 출력 포트 없음."""

    node_type: ClassVar[NodeType] = NodeType.END

    node_id: str
    position: Position = field(default_factory=Position)

    def output_ports(self) -> list[str]:
        return []


Node = Union[StartNode, DialogueNode, ChoiceNode, EndNode]

NODE_CLASSES: dict[NodeType, type] = {
    NodeType.START: StartNode,
    NodeType.DIALOGUE: DialogueNode,
    NodeType.CHOICE: ChoiceNode,
    NodeType.END: EndNode,
}


@dataclass(frozen=True)
class Edge:
    """(from_node_id, from_port_name) → (to_node_id, "input")"""

    from_node_id: str
    from_port_name: str
    to_node_id: str
    to_port_name: str = INPUT_PORT


def choice_port_name(index: int) -> str:
    return f"{CHOICE_PORT_PREFIX}{index}"
