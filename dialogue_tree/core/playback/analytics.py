"""대화 상호작용 분석 데이터

세션 1개의 선택 기록을 모으고 종료 시 점수를 계산한다.
점수 = evaluated 노드 선택 중 정답 비율 (%). evaluated 선택이 없으면 100.
neutral 노드 선택은 기록만 하고 점수에는 넣지 않는다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from dialogue_tree.core.playback.collaborators import AnalyticsRecorder
from dialogue_tree.core.playback.models import ChoiceOutcome

PERFECT_SCORE = 100.0


@dataclass
class DialogueInteractionData:
    """대화 1회분 분석 데이터 (인메모리)"""

    object_id: str
    choices: list[ChoiceOutcome] = field(default_factory=list)
    completed: bool = False
    final_score: Optional[float] = None

    @property
    def total_choices(self) -> int:
        return len(self.choices)

    @property
    def evaluated_choices(self) -> int:
        return sum(1 for c in self.choices if c.counts_toward_score)

    @property
    def correct_choices(self) -> int:
        return sum(1 for c in self.choices if c.counts_toward_score and c.was_correct)

    def record_choice(self, outcome: ChoiceOutcome) -> None:
        self.choices.append(outcome)

    def calculate_score(self) -> float:
        if self.evaluated_choices == 0:
            return PERFECT_SCORE
        return round(PERFECT_SCORE * self.correct_choices / self.evaluated_choices, 2)

    def complete(self) -> float:
        """종료 처리 + 최종 점수 확정"""
        self.completed = True
        self.final_score = self.calculate_score()
        return self.final_score

    def to_dict(self) -> dict[str, Any]:
        return {
            "objectId": self.object_id,
            "choices": [c.to_dict() for c in self.choices],
            "totalChoices": self.total_choices,
            "evaluatedChoices": self.evaluated_choices,
            "correctChoices": self.correct_choices,
            "finalScore": self.final_score,
            "completed": self.completed,
        }


class InteractionRecorder(AnalyticsRecorder):
    """엔진의 선택 이벤트를 DialogueInteractionData에 쌓는 기록기"""

    def __init__(self, data: DialogueInteractionData) -> None:
        self.data = data

    def record_choice(self, outcome: ChoiceOutcome) -> None:
        self.data.record_choice(outcome)
