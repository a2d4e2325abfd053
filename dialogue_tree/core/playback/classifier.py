"""Choice 노드 evaluated / neutral 판정

노드마다 매번 새로 계산한다 (전역 캐시 없음).
"""

from __future__ import annotations

from typing import Iterable, Union

from dialogue_tree.core.graph.models import Choice, ChoiceNode
from dialogue_tree.core.playback.models import Classification, FeedbackCue
from dialogue_tree.core.script.models import CompiledChoice, CompiledNode

EVALUATED_FEEDBACK_DELAY_MS = 800
NEUTRAL_FEEDBACK_DELAY_MS = 300


def classify_choices(choices: Iterable[Union[Choice, CompiledChoice]]) -> Classification:
    if any(choice.is_correct for choice in choices):
        return Classification.EVALUATED
    return Classification.NEUTRAL


def classify_choice_node(node: Union[CompiledNode, ChoiceNode]) -> Classification:
    """정답 선택지가 하나라도 있으면 EVALUATED, 아니면 NEUTRAL"""
    return classify_choices(node.choices)


def feedback_cue(
    classification: Classification,
    chosen_is_correct: bool,
    evaluated_delay_ms: int = EVALUATED_FEEDBACK_DELAY_MS,
    neutral_delay_ms: int = NEUTRAL_FEEDBACK_DELAY_MS,
) -> FeedbackCue:
    delay = (
        evaluated_delay_ms
        if classification == Classification.EVALUATED
        else neutral_delay_ms
    )
    return FeedbackCue(
        classification=classification,
        chosen_is_correct=chosen_is_correct,
        delay_ms=delay,
    )
