"""재생 엔진 외부 협력자 인터페이스

엔진은 표시 계층, 분석 기록기, 언어 제공자를 직접 구현하지 않는다.
모두 선택 사항이며 None이면 해당 알림을 건너뛴다.

규칙:
- 다국어 텍스트 해석은 표시 계층이 한다 (엔진은 언어 맵 전체를 그대로 넘긴다)
- 피드백 시간/색상은 표시 계층 책임, 엔진은 분류와 정답 여부만 보고한다
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from dialogue_tree.core.graph.models import DEFAULT_LANGUAGES, LocalizedText
from dialogue_tree.core.playback.models import (
    ChoiceOutcome,
    DisplayUnit,
    FeedbackCue,
)


class DisplaySurface(ABC):
    """현재 표시 단위를 그리는 쪽"""

    @abstractmethod
    def show_unit(self, unit: DisplayUnit) -> None:
        """대사 1줄 또는 선택지 묶음(+직전 대사 컨텍스트) 표시"""
        ...

    @abstractmethod
    def show_choice_feedback(self, cue: FeedbackCue) -> None:
        """선택 결과 피드백 (evaluated: 정답/오답, neutral: 가벼운 확인)"""
        ...

    @abstractmethod
    def show_end(self) -> None:
        ...


class AnalyticsRecorder(ABC):
    """choose() 1회마다 이벤트 1건을 받는 쪽"""

    @abstractmethod
    def record_choice(self, outcome: ChoiceOutcome) -> None:
        ...


class LocalizationProvider(ABC):
    """활성 언어 코드 제공"""

    @abstractmethod
    def active_language(self) -> str:
        ...

    def fallback_languages(self) -> Sequence[str]:
        return DEFAULT_LANGUAGES


class StaticLocalization(LocalizationProvider):
    """고정 언어 제공자 (테스트 / 서버 세션용)"""

    def __init__(self, language: str = "en", fallbacks: Optional[Sequence[str]] = None):
        self._language = language
        self._fallbacks = tuple(fallbacks) if fallbacks else DEFAULT_LANGUAGES

    def active_language(self) -> str:
        return self._language

    def fallback_languages(self) -> Sequence[str]:
        return self._fallbacks


def resolve_text(text: Optional[LocalizedText], localization: LocalizationProvider) -> str:
    """표시 계층용: 활성 언어 → 비어 있으면 다른 언어로 폴백"""
    if text is None:
        return ""
    return text.resolve(
        localization.active_language(), list(localization.fallback_languages())
    )
