"""재생 엔진 Core 패키지

RuntimeScript를 사용자 액션 단위로 한 단계씩 재생한다.
"""

from dialogue_tree.core.playback.models import (
    ChoiceOption,
    ChoiceOutcome,
    ChoicePrompt,
    Classification,
    DialogueContext,
    DialogueLine,
    DisplayUnit,
    EngineState,
    FeedbackCue,
)
from dialogue_tree.core.playback.classifier import (
    EVALUATED_FEEDBACK_DELAY_MS,
    NEUTRAL_FEEDBACK_DELAY_MS,
    classify_choice_node,
    classify_choices,
    feedback_cue,
)
from dialogue_tree.core.playback.collaborators import (
    AnalyticsRecorder,
    DisplaySurface,
    LocalizationProvider,
    StaticLocalization,
    resolve_text,
)
from dialogue_tree.core.playback.analytics import (
    DialogueInteractionData,
    InteractionRecorder,
)
from dialogue_tree.core.playback.engine import DialogueEngine

__all__ = [
    "ChoiceOption",
    "ChoiceOutcome",
    "ChoicePrompt",
    "Classification",
    "DialogueContext",
    "DialogueLine",
    "DisplayUnit",
    "EngineState",
    "FeedbackCue",
    "EVALUATED_FEEDBACK_DELAY_MS",
    "NEUTRAL_FEEDBACK_DELAY_MS",
    "classify_choice_node",
    "classify_choices",
    "feedback_cue",
    "AnalyticsRecorder",
    "DisplaySurface",
    "LocalizationProvider",
    "StaticLocalization",
    "resolve_text",
    "DialogueInteractionData",
    "InteractionRecorder",
    "DialogueEngine",
]
