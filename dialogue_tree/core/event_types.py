"""이벤트 유형 상수

서비스 간 통신은 EventBus를 경유한다.
"""


class EventTypes:
    """이벤트 유형 문자열 상수"""

    # authoring
    DOCUMENT_SAVED = "document_saved"
    DOCUMENT_COMPILED = "document_compiled"

    # playback
    DIALOGUE_STARTED = "dialogue_started"
    CHOICE_MADE = "choice_made"
    DIALOGUE_ENDED = "dialogue_ended"
