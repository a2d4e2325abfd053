"""대화 그래프 / 재생 엔진 에러 정의"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from dialogue_tree.core.graph.validation import GraphViolation


class DialogueTreeError(Exception):
    """Base class for all dialogue tree errors."""

    pass


class GraphParseError(DialogueTreeError):
    """Raised when authoring or runtime JSON cannot be parsed."""

    pass


class GraphEditError(DialogueTreeError):
    """Raised when an authoring edit would break the document structure."""

    pass


class CompilationError(DialogueTreeError):
    """Raised when a document fails validation and compile refuses it.

    Carries the full list of error-level violations.
    """

    def __init__(self, violations: list[GraphViolation]) -> None:
        self.violations = list(violations)
        summary = "; ".join(v.message for v in self.violations)
        super().__init__(f"Document failed validation: {summary}")


class PlaybackError(DialogueTreeError):
    """Runtime anomaly reported by DialogueEngine through its error side-channel."""

    def __init__(self, message: str, node_id: Optional[str] = None) -> None:
        self.node_id = node_id
        super().__init__(message)


class InvalidChoiceSelection(PlaybackError):
    """choose() was called with an id that is not on the current choice node."""

    def __init__(self, node_id: str, choice_id: str) -> None:
        self.choice_id = choice_id
        super().__init__(
            f"Choice '{choice_id}' does not belong to node '{node_id}'", node_id
        )


class UnresolvedNodeError(PlaybackError):
    """A nextNodeId / startNodeId did not resolve to a node in the script."""

    pass


class EngineStateError(PlaybackError):
    """An action was invoked in a state that does not accept it."""

    pass
