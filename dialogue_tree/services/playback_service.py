"""재생 세션 관리 Service - 저장된 대화를 컴파일하고 DialogueEngine으로 재생

Service → Core, Service → DB 허용. Service → Service 금지(EventBus 경유).
DocumentService를 호출하지 않고 DialogueModel을 직접 읽어 컴파일한다.
세션은 인메모리 (프로세스 재시작 시 소멸).
"""

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.orm import Session

from dialogue_tree.core.compiler import compile_document, document_from_json
from dialogue_tree.core.errors import PlaybackError
from dialogue_tree.core.event_bus import DialogueEvent, EventBus
from dialogue_tree.core.event_types import EventTypes
from dialogue_tree.core.graph import LocalizedText
from dialogue_tree.core.playback import (
    EVALUATED_FEEDBACK_DELAY_MS,
    NEUTRAL_FEEDBACK_DELAY_MS,
    ChoiceOutcome,
    ChoicePrompt,
    DialogueEngine,
    DialogueInteractionData,
    DialogueLine,
    DisplayUnit,
    InteractionRecorder,
    StaticLocalization,
    resolve_text,
)
from dialogue_tree.core.script import RuntimeScript, check_script
from dialogue_tree.db.models import DialogueModel

logger = logging.getLogger(__name__)

# 종료된 세션 보관 한도 (초과 시 오래된 것부터 폐기)
FINISHED_SESSION_LIMIT = 100


@dataclass
class PlaybackSession:
    """재생 세션 1개 = 엔진 1개 + 분석 데이터 1개"""

    session_id: str
    dialogue_id: str
    engine: DialogueEngine
    interaction: DialogueInteractionData
    localization: StaticLocalization
    errors: list[PlaybackError] = field(default_factory=list)


class EventBusRecorder(InteractionRecorder):
    """선택을 분석 데이터에 쌓고 choice_made 이벤트를 발행"""

    def __init__(
        self, data: DialogueInteractionData, event_bus: EventBus, session_id: str
    ) -> None:
        super().__init__(data)
        self._bus = event_bus
        self._session_id = session_id

    def record_choice(self, outcome: ChoiceOutcome) -> None:
        super().record_choice(outcome)
        self._bus.emit(
            DialogueEvent(
                event_type=EventTypes.CHOICE_MADE,
                data={"session_id": self._session_id, **outcome.to_dict()},
                source="playback_service",
            )
        )


class PlaybackService:
    """재생 세션 관리"""

    def __init__(
        self,
        db: Session,
        event_bus: EventBus,
        evaluated_delay_ms: int = EVALUATED_FEEDBACK_DELAY_MS,
        neutral_delay_ms: int = NEUTRAL_FEEDBACK_DELAY_MS,
        default_language: str = "en",
        supported_languages: Optional[list[str]] = None,
        finished_session_limit: int = FINISHED_SESSION_LIMIT,
    ):
        self._db = db
        self._bus = event_bus
        self._evaluated_delay_ms = evaluated_delay_ms
        self._neutral_delay_ms = neutral_delay_ms
        self._default_language = default_language
        self._supported_languages = list(supported_languages or ["en", "fr"])
        self._sessions: dict[str, PlaybackSession] = {}
        # 끝난 세션은 결과 조회용으로 한도 내에서만 보관
        self._finished: OrderedDict[str, PlaybackSession] = OrderedDict()
        self._finished_limit = finished_session_limit

    # === 공개 API ===

    def start_session(
        self, dialogue_id: str, language: Optional[str] = None
    ) -> PlaybackSession:
        """저장된 대화를 컴파일하고 재생 시작.

        Raises:
            ValueError: 대화가 없을 때
            CompilationError: 문서에 ERROR 위반이 있을 때
        """
        row = (
            self._db.query(DialogueModel)
            .filter(DialogueModel.dialogue_id == dialogue_id)
            .first()
        )
        if row is None:
            raise ValueError(f"Dialogue not found: {dialogue_id}")

        document = document_from_json(row.graph_json)
        title = LocalizedText.of(en=row.title_en or "", fr=row.title_fr or "")
        script = compile_document(document, title=title)
        return self.start_session_from_script(script, dialogue_id, language)

    def start_session_from_script(
        self,
        script: RuntimeScript,
        dialogue_id: str = "",
        language: Optional[str] = None,
    ) -> PlaybackSession:
        for violation in check_script(script):
            logger.warning(
                "Script check (dialogue=%s): %s", dialogue_id, violation.message
            )
        session_id = str(uuid.uuid4())
        interaction = DialogueInteractionData(object_id=dialogue_id or session_id)
        errors: list[PlaybackError] = []
        engine = DialogueEngine(
            script,
            analytics=EventBusRecorder(interaction, self._bus, session_id),
            on_error=errors.append,
            evaluated_delay_ms=self._evaluated_delay_ms,
            neutral_delay_ms=self._neutral_delay_ms,
        )
        session = PlaybackSession(
            session_id=session_id,
            dialogue_id=dialogue_id,
            engine=engine,
            interaction=interaction,
            localization=self._localization_for(language),
            errors=errors,
        )
        self._sessions[session_id] = session

        self._bus.emit(
            DialogueEvent(
                event_type=EventTypes.DIALOGUE_STARTED,
                data={
                    "session_id": session_id,
                    "dialogue_id": dialogue_id,
                    "choice_node_count": script.count_choice_nodes(),
                },
                source="playback_service",
            )
        )
        engine.start()
        self._after_action(session)
        logger.info(
            "Playback session started: %s (dialogue=%s)", session_id, dialogue_id
        )
        return session

    def get_session(self, session_id: str) -> PlaybackSession:
        session = self._sessions.get(session_id)
        if session is None:
            session = self._finished.get(session_id)
        if session is None:
            raise ValueError(f"Playback session not found: {session_id}")
        return session

    def advance(self, session_id: str) -> PlaybackSession:
        session = self.get_session(session_id)
        session.engine.advance()
        self._after_action(session)
        return session

    def choose(self, session_id: str, choice_id: str) -> PlaybackSession:
        """선택 처리. 잘못된 선택지는 session.errors에 쌓이고 상태는 그대로."""
        session = self.get_session(session_id)
        session.engine.choose(choice_id)
        self._after_action(session)
        return session

    def end_session(self, session_id: str) -> None:
        """세션 폐기. 끝나지 않은 세션은 점수 없이 버린다."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            session = self._finished.pop(session_id, None)
        if session is None:
            raise ValueError(f"Playback session not found: {session_id}")
        logger.info("Playback session discarded: %s", session_id)

    @property
    def session_count(self) -> int:
        """진행 중인 세션 수"""
        return len(self._sessions)

    @property
    def finished_count(self) -> int:
        return len(self._finished)

    def describe(self, session: PlaybackSession) -> dict[str, Any]:
        """API 응답용 세션 스냅샷 (활성 언어로 해석한 텍스트 포함)"""
        engine = session.engine
        unit = engine.current_unit
        feedback = engine.last_feedback
        return {
            "session_id": session.session_id,
            "dialogue_id": session.dialogue_id,
            "state": engine.state.value,
            "language": session.localization.active_language(),
            "current_node_id": engine.current_node_id,
            "unit": _describe_unit(unit, session.localization),
            "feedback": None
            if feedback is None
            else {
                "classification": feedback.classification.value,
                "chosen_is_correct": feedback.chosen_is_correct,
                "delay_ms": feedback.delay_ms,
            },
            "interaction": session.interaction.to_dict(),
            "errors": [str(e) for e in session.errors],
        }

    # === 내부 ===

    def _after_action(self, session: PlaybackSession) -> None:
        """액션 1회 처리 후: 종료 판정 + 이벤트 체인 초기화"""
        if session.engine.is_ended and not session.interaction.completed:
            score = session.interaction.complete()
            self._bus.emit(
                DialogueEvent(
                    event_type=EventTypes.DIALOGUE_ENDED,
                    data={
                        "session_id": session.session_id,
                        "dialogue_id": session.dialogue_id,
                        "final_score": score,
                        "total_choices": session.interaction.total_choices,
                    },
                    source="playback_service",
                )
            )
            logger.info(
                "Playback session ended: %s (score=%.2f)", session.session_id, score
            )
            self._retire(session)
        self._bus.reset_chain()

    def _retire(self, session: PlaybackSession) -> None:
        self._sessions.pop(session.session_id, None)
        self._finished[session.session_id] = session
        while len(self._finished) > self._finished_limit:
            evicted, _ = self._finished.popitem(last=False)
            logger.debug("Finished session evicted: %s", evicted)

    def _localization_for(self, language: Optional[str]) -> StaticLocalization:
        lang = language or self._default_language
        if lang not in self._supported_languages:
            logger.warning(
                "Unsupported language '%s', using '%s'", lang, self._default_language
            )
            lang = self._default_language
        fallbacks = [lang] + [code for code in self._supported_languages if code != lang]
        return StaticLocalization(language=lang, fallbacks=fallbacks)


def _describe_unit(
    unit: Optional[DisplayUnit], localization: StaticLocalization
) -> Optional[dict[str, Any]]:
    if unit is None:
        return None
    if isinstance(unit, DialogueLine):
        return {
            "kind": "dialogue",
            "node_id": unit.node_id,
            "speaker": resolve_text(unit.speaker, localization),
            "text": resolve_text(unit.text, localization),
        }
    if isinstance(unit, ChoicePrompt):
        context = None
        if unit.context is not None:
            context = {
                "speaker": resolve_text(unit.context.speaker, localization),
                "text": resolve_text(unit.context.text, localization),
            }
        return {
            "kind": "choice",
            "node_id": unit.node_id,
            "prompt": resolve_text(unit.prompt, localization),
            "classification": unit.classification.value,
            "options": [
                {"choice_id": o.choice_id, "text": resolve_text(o.text, localization)}
                for o in unit.options
            ],
            "context": context,
        }
    raise TypeError(f"Unhandled display unit: {unit!r}")
