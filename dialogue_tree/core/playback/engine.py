"""DialogueEngine - 런타임 스크립트 단계별 재생 상태 기계

상태: IDLE → (AT_DIALOGUE | AT_CHOICE)* → ENDED

규칙:
- 상태 변화는 start() / advance() / choose() 호출 안에서만 일어난다 (타이머 없음)
- 루프(이미 방문한 노드로 복귀)는 정상 패턴. 방문 횟수 제한 없음
- 재생 중 이상(잘못된 선택지, 해석 불가 노드)은 예외로 던지지 않고
  on_error 콜백 + 로그로 보고한다. 해석 불가 대상은 ENDED로 처리
- 엔진이 보관하는 상태는 현재 노드 id와 마지막 대사 컨텍스트뿐
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from dialogue_tree.core.errors import (
    EngineStateError,
    InvalidChoiceSelection,
    PlaybackError,
    UnresolvedNodeError,
)
from dialogue_tree.core.graph.models import LocalizedText, NodeType
from dialogue_tree.core.logging import get_logger
from dialogue_tree.core.playback.classifier import (
    EVALUATED_FEEDBACK_DELAY_MS,
    NEUTRAL_FEEDBACK_DELAY_MS,
    classify_choice_node,
    feedback_cue,
)
from dialogue_tree.core.playback.collaborators import AnalyticsRecorder, DisplaySurface
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
from dialogue_tree.core.script.models import CompiledNode, RuntimeScript

logger = get_logger(__name__)

ErrorCallback = Callable[[PlaybackError], None]
Clock = Callable[[], float]


class DialogueEngine:
    """재생 세션 1개 = 엔진 인스턴스 1개. 세션 중단은 인스턴스를 버리면 된다.

    사용 패턴:
        engine = DialogueEngine(script, display=ui, analytics=recorder)
        engine.start()
        engine.advance()
        engine.choose("c1")
    """

    def __init__(
        self,
        script: RuntimeScript,
        display: Optional[DisplaySurface] = None,
        analytics: Optional[AnalyticsRecorder] = None,
        on_error: Optional[ErrorCallback] = None,
        clock: Clock = time.monotonic,
        evaluated_delay_ms: int = EVALUATED_FEEDBACK_DELAY_MS,
        neutral_delay_ms: int = NEUTRAL_FEEDBACK_DELAY_MS,
    ) -> None:
        self._script = script
        self._display = display
        self._analytics = analytics
        self._on_error = on_error
        self._clock = clock
        self._evaluated_delay_ms = evaluated_delay_ms
        self._neutral_delay_ms = neutral_delay_ms

        self._state = EngineState.IDLE
        self._current_node_id: Optional[str] = None
        self._last_dialogue: Optional[DialogueContext] = None
        self._last_feedback: Optional[FeedbackCue] = None
        self._started_at = 0.0

    # === 조회 ===

    @property
    def script(self) -> RuntimeScript:
        return self._script

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def current_node_id(self) -> Optional[str]:
        return self._current_node_id

    @property
    def last_dialogue(self) -> Optional[DialogueContext]:
        return self._last_dialogue

    @property
    def last_feedback(self) -> Optional[FeedbackCue]:
        return self._last_feedback

    @property
    def is_ended(self) -> bool:
        return self._state == EngineState.ENDED

    @property
    def current_unit(self) -> Optional[DisplayUnit]:
        """현재 표시 단위. IDLE/ENDED면 None."""
        node = self._current_node()
        if node is None:
            return None
        if self._state == EngineState.AT_DIALOGUE:
            return DialogueLine(
                node_id=node.node_id,
                speaker=node.speaker or LocalizedText(),
                text=node.text or LocalizedText(),
            )
        if self._state == EngineState.AT_CHOICE:
            return ChoicePrompt(
                node_id=node.node_id,
                prompt=node.text or LocalizedText(),
                options=tuple(
                    ChoiceOption(choice_id=c.choice_id, text=c.text)
                    for c in node.choices
                ),
                classification=classify_choice_node(node),
                context=self._last_dialogue,
            )
        return None

    # === 액션 ===

    def start(self) -> Optional[DisplayUnit]:
        """Start 노드의 전이를 즉시 따라간다 (Start는 표시 단위가 아님)."""
        if self._state != EngineState.IDLE:
            self._report(EngineStateError("Engine already started"))
            return self.current_unit

        self._started_at = self._clock()
        start = self._script.get_start_node()
        if start is None:
            self._report(
                UnresolvedNodeError(
                    f"Start node '{self._script.start_node_id}' not found",
                    self._script.start_node_id or None,
                )
            )
            self._end()
            return None

        if start.node_type != NodeType.START:
            self._report(
                PlaybackError(
                    f"startNodeId '{start.node_id}' is a {start.node_type.value} node",
                    start.node_id,
                )
            )
            self._enter(start.node_id, source_id=start.node_id)
        else:
            self._enter(start.next_node_id, source_id=start.node_id)

        logger.debug("Playback started: state=%s", self._state.value)
        return self.current_unit

    def advance(self) -> Optional[DisplayUnit]:
        """대사 노드에서 다음으로. 떠나는 대사를 컨텍스트로 기록한다."""
        if self._state != EngineState.AT_DIALOGUE:
            self._report(
                EngineStateError(
                    f"advance() is not accepted in state '{self._state.value}'",
                    self._current_node_id,
                )
            )
            return self.current_unit

        node = self._current_node()
        self._last_dialogue = DialogueContext(
            speaker=node.speaker or LocalizedText(),
            text=node.text or LocalizedText(),
        )
        self._enter(node.next_node_id, source_id=node.node_id)
        return self.current_unit

    def choose(self, choice_id: str) -> Optional[ChoiceOutcome]:
        """선택지 선택. 잘못된 id면 보고 후 None (상태 변화 없음)."""
        if self._state != EngineState.AT_CHOICE:
            self._report(
                EngineStateError(
                    f"choose() is not accepted in state '{self._state.value}'",
                    self._current_node_id,
                )
            )
            return None

        node = self._current_node()
        choice = node.get_choice(choice_id)
        if choice is None:
            self._report(InvalidChoiceSelection(node.node_id, choice_id))
            return None

        classification = classify_choice_node(node)
        outcome = ChoiceOutcome(
            node_id=node.node_id,
            choice_id=choice.choice_id,
            was_correct=choice.is_correct,
            counts_toward_score=classification == Classification.EVALUATED,
            timestamp=round(self._clock() - self._started_at, 3),
        )
        if self._analytics is not None:
            self._safe_call(self._analytics.record_choice, outcome)

        self._last_feedback = feedback_cue(
            classification,
            choice.is_correct,
            evaluated_delay_ms=self._evaluated_delay_ms,
            neutral_delay_ms=self._neutral_delay_ms,
        )
        if self._display is not None:
            self._safe_call(self._display.show_choice_feedback, self._last_feedback)

        logger.debug(
            "Choice %s/%s (%s, correct=%s)",
            node.node_id,
            choice.choice_id,
            classification.value,
            choice.is_correct,
        )
        self._enter(choice.next_node_id, source_id=node.node_id)
        return outcome

    # === 내부 ===

    def _current_node(self) -> Optional[CompiledNode]:
        return self._script.get_node(self._current_node_id)

    def _enter(self, node_id: Optional[str], source_id: str) -> None:
        """전이 대상 해석. Start 노드는 경유만 한다 (같은 Start 재방문 시 종료)."""
        passed_starts: set[str] = set()
        while True:
            if not node_id:
                self._end()
                return

            node = self._script.get_node(node_id)
            if node is None:
                self._report(
                    UnresolvedNodeError(
                        f"Node '{source_id}' points to missing node '{node_id}'",
                        source_id,
                    )
                )
                self._end()
                return

            if node.node_type == NodeType.START:
                if node.node_id in passed_starts:
                    self._report(
                        PlaybackError(
                            f"Start node '{node.node_id}' routes back to itself",
                            node.node_id,
                        )
                    )
                    self._end()
                    return
                passed_starts.add(node.node_id)
                source_id, node_id = node.node_id, node.next_node_id
                continue

            if node.node_type == NodeType.DIALOGUE:
                self._set_current(EngineState.AT_DIALOGUE, node.node_id)
                return

            if node.node_type == NodeType.CHOICE:
                if not node.choices:
                    self._report(
                        PlaybackError(
                            f"Choice node '{node.node_id}' has no choices",
                            node.node_id,
                        )
                    )
                    self._end()
                    return
                self._set_current(EngineState.AT_CHOICE, node.node_id)
                return

            if node.node_type == NodeType.END:
                self._end()
                return

            raise TypeError(f"Unhandled node type: {node.node_type!r}")

    def _set_current(self, state: EngineState, node_id: str) -> None:
        self._state = state
        self._current_node_id = node_id
        if self._display is not None:
            self._safe_call(self._display.show_unit, self.current_unit)

    def _end(self) -> None:
        self._state = EngineState.ENDED
        self._current_node_id = None
        if self._display is not None:
            self._safe_call(self._display.show_end)

    def _report(self, error: PlaybackError) -> None:
        logger.warning("Playback anomaly: %s", error)
        if self._on_error is not None:
            self._safe_call(self._on_error, error)

    def _safe_call(self, func: Callable, *args) -> None:
        """협력자 에러가 재생 세션을 깨뜨리지 않도록 격리"""
        try:
            func(*args)
        except Exception:
            logger.exception("Playback collaborator error: %s", func.__qualname__)
