"""Dialogue authoring API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from dialogue_tree.api.schemas import (
    CompileResponse,
    CreateDialogueRequest,
    DialogueDetail,
    DialogueSummary,
    ErrorResponse,
    ImportDialogueRequest,
    UpdateGraphRequest,
    ValidationResponse,
    ViolationInfo,
)
from dialogue_tree.core.compiler import document_from_dict, document_to_dict
from dialogue_tree.core.errors import CompilationError, GraphParseError
from dialogue_tree.core.graph import LocalizedText
from dialogue_tree.core.graph.validation import GraphViolation
from dialogue_tree.core.logging import get_logger
from dialogue_tree.core.script import script_to_dict
from dialogue_tree.services.document_service import DialogueRecord, DocumentService

logger = get_logger(__name__)

router = APIRouter(prefix="/dialogues", tags=["dialogues"])


def get_document_service(request: Request) -> DocumentService:
    """DocumentService 인스턴스 반환 (의존성 주입)"""
    service: DocumentService = request.app.state.document_service
    return service


def _build_summary(record: DialogueRecord) -> DialogueSummary:
    return DialogueSummary(
        dialogue_id=record.dialogue_id,
        title=record.title.to_dict(),
        node_count=record.document.node_count,
        edge_count=len(record.document.edges),
        play_count=record.play_count,
        last_score=record.last_score,
    )


def _build_detail(record: DialogueRecord) -> DialogueDetail:
    return DialogueDetail(
        dialogue_id=record.dialogue_id,
        title=record.title.to_dict(),
        graph=document_to_dict(record.document),
    )


def _build_violation(violation: GraphViolation) -> ViolationInfo:
    return ViolationInfo(
        kind=violation.kind.value,
        severity=violation.severity.value,
        message=violation.message,
        node_id=violation.node_id,
        ref_id=violation.ref_id,
    )


def compile_refused(e: CompilationError) -> HTTPException:
    """컴파일 거부 → 422 (위반 목록 포함)"""
    return HTTPException(
        status_code=422,
        detail={
            "message": str(e),
            "violations": [_build_violation(v).model_dump() for v in e.violations],
        },
    )


@router.get("", response_model=list[DialogueSummary])
def list_dialogues(
    service: DocumentService = Depends(get_document_service),
) -> list[DialogueSummary]:
    """저장된 대화 목록"""
    return [_build_summary(r) for r in service.list_dialogues()]


@router.post(
    "",
    response_model=DialogueDetail,
    status_code=201,
    responses={409: {"model": ErrorResponse}},
)
def create_dialogue(
    request: CreateDialogueRequest,
    service: DocumentService = Depends(get_document_service),
) -> DialogueDetail:
    """
    대화 생성

    Start/End 기본 노드 2개가 들어 있는 새 문서를 만듭니다.
    """
    title = LocalizedText.from_dict(request.title) if request.title else None
    try:
        record = service.create_dialogue(dialogue_id=request.dialogue_id, title=title)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _build_detail(record)


@router.post(
    "/import",
    response_model=DialogueDetail,
    status_code=201,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def import_dialogue(
    request: ImportDialogueRequest,
    service: DocumentService = Depends(get_document_service),
) -> DialogueDetail:
    """
    JSON 가져오기

    저작 포맷과 런타임 포맷 모두 받습니다. 런타임 포맷은 좌표를 자동 배치합니다.
    """
    title = LocalizedText.from_dict(request.title) if request.title else None
    try:
        record = service.import_dialogue(
            request.data, dialogue_id=request.dialogue_id, title=title
        )
    except GraphParseError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info("Dialogue imported: %s", record.dialogue_id)
    return _build_detail(record)


@router.get(
    "/{dialogue_id}",
    response_model=DialogueDetail,
    responses={404: {"model": ErrorResponse}},
)
def get_dialogue(
    dialogue_id: str,
    service: DocumentService = Depends(get_document_service),
) -> DialogueDetail:
    try:
        record = service.get_dialogue(dialogue_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _build_detail(record)


@router.put(
    "/{dialogue_id}/graph",
    response_model=DialogueDetail,
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
def update_graph(
    dialogue_id: str,
    request: UpdateGraphRequest,
    service: DocumentService = Depends(get_document_service),
) -> DialogueDetail:
    """
    저작 그래프 저장

    미완성 그래프도 저장됩니다. 구조 검사는 /validate 에서 합니다.
    """
    try:
        document = document_from_dict(request.graph)
        record = service.save_document(dialogue_id, document)
    except GraphParseError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _build_detail(record)


@router.delete(
    "/{dialogue_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse}},
)
def delete_dialogue(
    dialogue_id: str,
    service: DocumentService = Depends(get_document_service),
) -> Response:
    try:
        service.delete_dialogue(dialogue_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)


@router.get(
    "/{dialogue_id}/validate",
    response_model=ValidationResponse,
    responses={404: {"model": ErrorResponse}},
)
def validate_dialogue(
    dialogue_id: str,
    service: DocumentService = Depends(get_document_service),
) -> ValidationResponse:
    """구조 검증 (ERROR + WARNING 모두 반환)"""
    try:
        violations = service.validate_dialogue(dialogue_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return ValidationResponse(
        dialogue_id=dialogue_id,
        valid=not any(v.is_error for v in violations),
        violations=[_build_violation(v) for v in violations],
    )


@router.post(
    "/{dialogue_id}/compile",
    response_model=CompileResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def compile_dialogue(
    dialogue_id: str,
    service: DocumentService = Depends(get_document_service),
) -> CompileResponse:
    """
    런타임 스크립트로 컴파일

    ERROR 등급 위반이 있으면 422와 위반 목록을 반환합니다.
    """
    try:
        script = service.compile_dialogue(dialogue_id)
    except CompilationError as e:
        raise compile_refused(e)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return CompileResponse(
        dialogue_id=dialogue_id,
        choice_node_count=script.count_choice_nodes(),
        script=script_to_dict(script),
    )
