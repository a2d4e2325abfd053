"""대화 문서 관리 Service - 저작 그래프 저장/검증/컴파일/가져오기

Service → Core, Service → DB 허용. Service → Service 금지(EventBus 경유).
문서는 저작 포맷 JSON으로 저장하고, 런타임 스크립트는 요청 시 컴파일한다.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session

from dialogue_tree.core.compiler import (
    compile_document,
    document_from_json,
    document_to_json,
    extract_title,
    import_document,
)
from dialogue_tree.core.compiler.layout import COLUMN_X, ROW_SPACING
from dialogue_tree.core.errors import GraphParseError
from dialogue_tree.core.event_bus import DialogueEvent, EventBus
from dialogue_tree.core.event_types import EventTypes
from dialogue_tree.core.graph import GraphDocument, LocalizedText
from dialogue_tree.core.graph.validation import GraphViolation
from dialogue_tree.core.script import RuntimeScript, script_to_json
from dialogue_tree.db.models import DialogueModel

logger = logging.getLogger(__name__)

DEFAULT_TITLE = LocalizedText.of(en="New Dialogue", fr="Nouveau Dialogue")


@dataclass
class DialogueRecord:
    """DB 행 + 역직렬화된 문서"""

    dialogue_id: str
    title: LocalizedText
    document: GraphDocument
    play_count: int = 0
    last_score: Optional[float] = None


class DocumentService:
    """대화 문서 CRUD + 컴파일"""

    def __init__(
        self,
        db: Session,
        event_bus: EventBus,
        layout_column_x: float = COLUMN_X,
        layout_row_spacing: float = ROW_SPACING,
    ):
        self._db = db
        self._bus = event_bus
        self._column_x = layout_column_x
        self._row_spacing = layout_row_spacing
        self._register_event_handlers()

    def _register_event_handlers(self) -> None:
        """EventBus 구독"""
        self._bus.subscribe(EventTypes.DIALOGUE_ENDED, self._on_dialogue_ended)

    # === 공개 API ===

    def create_dialogue(
        self,
        dialogue_id: Optional[str] = None,
        title: Optional[LocalizedText] = None,
    ) -> DialogueRecord:
        """새 대화 생성. Start/End 기본 노드 2개로 시작한다."""
        if dialogue_id is None:
            dialogue_id = self._next_dialogue_id()
        elif self._find(dialogue_id) is not None:
            raise ValueError(f"Dialogue already exists: {dialogue_id}")

        document = GraphDocument.with_default_nodes()
        record = DialogueRecord(
            dialogue_id=dialogue_id,
            title=title or DEFAULT_TITLE,
            document=document,
        )
        self._db.add(
            DialogueModel(
                dialogue_id=dialogue_id,
                title_en=record.title.get("en"),
                title_fr=record.title.get("fr"),
                graph_json=document_to_json(document),
            )
        )
        self._db.commit()
        logger.info("Dialogue created: %s", dialogue_id)
        return record

    def list_dialogues(self) -> list[DialogueRecord]:
        rows = self._db.query(DialogueModel).order_by(DialogueModel.dialogue_id).all()
        return [self._to_record(row) for row in rows]

    def get_dialogue(self, dialogue_id: str) -> DialogueRecord:
        return self._to_record(self._require(dialogue_id))

    def save_document(self, dialogue_id: str, document: GraphDocument) -> DialogueRecord:
        """편집된 그래프 저장. 검증은 하지 않는다 (편집 중 미완성 그래프 허용)."""
        row = self._require(dialogue_id)
        row.graph_json = document_to_json(document)
        self._db.commit()

        self._bus.emit(
            DialogueEvent(
                event_type=EventTypes.DOCUMENT_SAVED,
                data={"dialogue_id": dialogue_id, "node_count": document.node_count},
                source="document_service",
            )
        )
        self._bus.reset_chain()
        return self._to_record(row)

    def update_title(self, dialogue_id: str, title: LocalizedText) -> DialogueRecord:
        row = self._require(dialogue_id)
        row.title_en = title.get("en")
        row.title_fr = title.get("fr")
        self._db.commit()
        return self._to_record(row)

    def delete_dialogue(self, dialogue_id: str) -> None:
        row = self._require(dialogue_id)
        self._db.delete(row)
        self._db.commit()
        logger.info("Dialogue deleted: %s", dialogue_id)

    def validate_dialogue(self, dialogue_id: str) -> list[GraphViolation]:
        return self.get_dialogue(dialogue_id).document.validate()

    def compile_dialogue(self, dialogue_id: str) -> RuntimeScript:
        """저장된 문서를 컴파일.

        Raises:
            CompilationError: 문서에 ERROR 위반이 있을 때
        """
        record = self.get_dialogue(dialogue_id)
        script = compile_document(record.document, title=record.title)

        self._bus.emit(
            DialogueEvent(
                event_type=EventTypes.DOCUMENT_COMPILED,
                data={
                    "dialogue_id": dialogue_id,
                    "node_count": len(script.nodes),
                    "choice_node_count": script.count_choice_nodes(),
                },
                source="document_service",
            )
        )
        self._bus.reset_chain()
        return script

    def export_runtime_json(self, dialogue_id: str) -> str:
        return script_to_json(self.compile_dialogue(dialogue_id))

    def import_dialogue(
        self,
        raw: Any,
        dialogue_id: Optional[str] = None,
        title: Optional[LocalizedText] = None,
    ) -> DialogueRecord:
        """저작/런타임 JSON을 새 대화로 가져온다.

        가져오기 결과가 빈 문서면 저장하지 않는다.

        Raises:
            GraphParseError: 입력에서 노드를 하나도 얻지 못했을 때
        """
        document = import_document(raw, self._column_x, self._row_spacing)
        if document.node_count == 0:
            raise GraphParseError("Import produced an empty document")

        record = self.create_dialogue(
            dialogue_id=dialogue_id,
            title=title or extract_title(raw) or DEFAULT_TITLE,
        )
        return self.save_document(record.dialogue_id, document)

    # === 내부 ===

    def _find(self, dialogue_id: str) -> Optional[DialogueModel]:
        return (
            self._db.query(DialogueModel)
            .filter(DialogueModel.dialogue_id == dialogue_id)
            .first()
        )

    def _require(self, dialogue_id: str) -> DialogueModel:
        row = self._find(dialogue_id)
        if row is None:
            raise ValueError(f"Dialogue not found: {dialogue_id}")
        return row

    def _next_dialogue_id(self) -> str:
        n = self._db.query(DialogueModel).count() + 1
        while self._find(f"dialogue_{n:03d}") is not None:
            n += 1
        return f"dialogue_{n:03d}"

    def _to_record(self, row: DialogueModel) -> DialogueRecord:
        if row.graph_json:
            document = document_from_json(row.graph_json)
        else:
            document = GraphDocument()
        return DialogueRecord(
            dialogue_id=row.dialogue_id,
            title=LocalizedText.of(en=row.title_en or "", fr=row.title_fr or ""),
            document=document,
            play_count=row.play_count or 0,
            last_score=row.last_score,
        )

    # === 이벤트 핸들러 ===

    def _on_dialogue_ended(self, event: DialogueEvent) -> None:
        """재생 완료 시 해당 대화의 재생 횟수와 마지막 점수 기록.
        dialogue_id가 없는 세션 (스크립트 직접 재생)은 무시한다.
        """
        data = event.data
        if not isinstance(data, dict):
            return
        dialogue_id = data.get("dialogue_id")
        if not dialogue_id:
            return
        row = self._find(dialogue_id)
        if row is None:
            logger.debug("dialogue_ended for unknown dialogue: %s", dialogue_id)
            return
        row.play_count = (row.play_count or 0) + 1
        row.last_score = data.get("final_score")
        self._db.commit()
        logger.info(
            "Play recorded: %s (plays=%d, score=%s)",
            dialogue_id,
            row.play_count,
            row.last_score,
        )
