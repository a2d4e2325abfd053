"""API request/response schemas."""

from typing import Any, Optional, Union

from pydantic import BaseModel, Field


# === Request Schemas ===


class CreateDialogueRequest(BaseModel):
    """대화 생성 요청"""

    dialogue_id: Optional[str] = Field(
        None, min_length=1, max_length=100, description="비우면 자동 발급"
    )
    title: dict[str, str] = Field(
        default_factory=dict, description="언어 코드 → 제목 (예: {'en': ..., 'fr': ...})"
    )


class UpdateGraphRequest(BaseModel):
    """저작 그래프 전체 교체 요청 (저작 포맷 JSON 객체)"""

    graph: dict[str, Any]


class ImportDialogueRequest(BaseModel):
    """저작/런타임 JSON 가져오기 요청"""

    data: Union[dict[str, Any], str] = Field(..., description="JSON 객체 또는 문자열")
    dialogue_id: Optional[str] = Field(None, min_length=1, max_length=100)
    title: Optional[dict[str, str]] = None


class StartSessionRequest(BaseModel):
    """재생 세션 시작 요청"""

    dialogue_id: str = Field(..., min_length=1)
    language: Optional[str] = Field(None, description="활성 언어 코드")


class ChooseRequest(BaseModel):
    """선택지 선택 요청"""

    choice_id: str = Field(..., min_length=1)


# === Response Schemas ===


class DialogueSummary(BaseModel):
    """대화 목록 항목"""

    dialogue_id: str
    title: dict[str, str]
    node_count: int
    edge_count: int
    play_count: int = 0
    last_score: Optional[float] = None


class DialogueDetail(BaseModel):
    """대화 상세 (저작 그래프 포함)"""

    dialogue_id: str
    title: dict[str, str]
    graph: dict[str, Any]


class ViolationInfo(BaseModel):
    """검증 위반 1건"""

    kind: str
    severity: str
    message: str
    node_id: Optional[str] = None
    ref_id: Optional[str] = None


class ValidationResponse(BaseModel):
    """검증 결과. valid = ERROR 등급 위반 없음"""

    dialogue_id: str
    valid: bool
    violations: list[ViolationInfo] = []


class CompileResponse(BaseModel):
    """컴파일 결과 (런타임 스크립트 JSON)"""

    dialogue_id: str
    choice_node_count: int
    script: dict[str, Any]


class SessionResponse(BaseModel):
    """재생 세션 스냅샷"""

    session_id: str
    dialogue_id: str
    state: str
    language: str
    current_node_id: Optional[str] = None
    unit: Optional[dict[str, Any]] = None
    feedback: Optional[dict[str, Any]] = None
    interaction: dict[str, Any]
    errors: list[str] = []


class ErrorResponse(BaseModel):
    """에러 응답"""

    success: bool = False
    error: str
    detail: Optional[str] = None
