"""Dialogue playback API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request

from dialogue_tree.api.dialogues import compile_refused
from dialogue_tree.api.schemas import (
    ChooseRequest,
    ErrorResponse,
    SessionResponse,
    StartSessionRequest,
)
from dialogue_tree.core.errors import CompilationError
from dialogue_tree.services.playback_service import PlaybackService

router = APIRouter(prefix="/playback", tags=["playback"])


def get_playback_service(request: Request) -> PlaybackService:
    """PlaybackService 인스턴스 반환 (의존성 주입)"""
    service: PlaybackService = request.app.state.playback_service
    return service


@router.post(
    "/sessions",
    response_model=SessionResponse,
    status_code=201,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def start_session(
    request: StartSessionRequest,
    service: PlaybackService = Depends(get_playback_service),
) -> SessionResponse:
    """
    재생 세션 시작

    저장된 대화를 컴파일해 Start 노드 다음 표시 단위까지 진행합니다.
    """
    try:
        session = service.start_session(request.dialogue_id, language=request.language)
    except CompilationError as e:
        raise compile_refused(e)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return SessionResponse(**service.describe(session))


@router.get(
    "/sessions/{session_id}",
    response_model=SessionResponse,
    responses={404: {"model": ErrorResponse}},
)
def get_session(
    session_id: str,
    service: PlaybackService = Depends(get_playback_service),
) -> SessionResponse:
    try:
        session = service.get_session(session_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return SessionResponse(**service.describe(session))


@router.post(
    "/sessions/{session_id}/advance",
    response_model=SessionResponse,
    responses={404: {"model": ErrorResponse}},
)
def advance(
    session_id: str,
    service: PlaybackService = Depends(get_playback_service),
) -> SessionResponse:
    """대사 노드에서 다음으로 진행. 대사가 아닌 상태면 errors에 기록만 됩니다."""
    try:
        session = service.advance(session_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return SessionResponse(**service.describe(session))


@router.post(
    "/sessions/{session_id}/choose",
    response_model=SessionResponse,
    responses={404: {"model": ErrorResponse}},
)
def choose(
    session_id: str,
    request: ChooseRequest,
    service: PlaybackService = Depends(get_playback_service),
) -> SessionResponse:
    """선택지 선택. 잘못된 choice_id는 상태 변화 없이 errors에 기록됩니다."""
    try:
        session = service.choose(session_id, request.choice_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return SessionResponse(**service.describe(session))


@router.delete(
    "/sessions/{session_id}",
    status_code=204,
    responses={404: {"model": ErrorResponse}},
)
def end_session(
    session_id: str,
    service: PlaybackService = Depends(get_playback_service),
) -> None:
    try:
        service.end_session(session_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
