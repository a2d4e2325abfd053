"""재생 엔진이 표시 계층/분석 계층에 넘기는 값 객체"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from dialogue_tree.core.graph.models import LocalizedText


class EngineState(str, Enum):
    IDLE = "idle"  # start() 호출 전
    AT_DIALOGUE = "at_dialogue"
    AT_CHOICE = "at_choice"
    ENDED = "ended"


class Classification(str, Enum):
    EVALUATED = "evaluated"  # 정답 선택지가 1개 이상
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class DialogueContext:
    """마지막으로 지나온 대사 (선택지 위에 인용 표시용)"""

    speaker: LocalizedText
    text: LocalizedText


@dataclass(frozen=True)
class DialogueLine:
    """표시 단위: 대사 1줄"""

    node_id: str
    speaker: LocalizedText
    text: LocalizedText


@dataclass(frozen=True)
class ChoiceOption:
    choice_id: str
    text: LocalizedText


@dataclass(frozen=True)
class ChoicePrompt:
    """표시 단위: 선택지 묶음 + 직전 대사 컨텍스트

    context가 None이면 인용 줄을 생략한다.
    """

    node_id: str
    prompt: LocalizedText
    options: tuple[ChoiceOption, ...]
    classification: Classification
    context: Optional[DialogueContext] = None


DisplayUnit = Union[DialogueLine, ChoicePrompt]


@dataclass(frozen=True)
class ChoiceOutcome:
    """choose() 1회당 분석 계층에 전달되는 이벤트

    neutral 노드의 선택도 기록하되 counts_toward_score=False.
    timestamp: 세션 시작 후 경과 초
    """

    node_id: str
    choice_id: str
    was_correct: bool
    counts_toward_score: bool
    timestamp: float

    def to_dict(self) -> dict:
        return {
            "nodeId": self.node_id,
            "choiceId": self.choice_id,
            "wasCorrect": self.was_correct,
            "countsTowardScore": self.counts_toward_score,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class FeedbackCue:
    """선택 직후 표시 계층용 피드백 힌트. 실제 대기/연출은 표시 계층 책임."""

    classification: Classification
    chosen_is_correct: bool
    delay_ms: int
