"""Dialogue Tree Core

DB/HTTP 무관 순수 Python 도메인: 저작 그래프, 컴파일러, 재생 엔진.
"""
__version__ = "0.1.0"

from dialogue_tree.core.errors import (
    CompilationError,
    DialogueTreeError,
    EngineStateError,
    GraphEditError,
    GraphParseError,
    InvalidChoiceSelection,
    PlaybackError,
    UnresolvedNodeError,
)
from dialogue_tree.core.graph import GraphDocument, NodeType
from dialogue_tree.core.script import RuntimeScript
from dialogue_tree.core.compiler import compile_document, import_document
from dialogue_tree.core.playback import DialogueEngine

__all__ = [
    "CompilationError",
    "DialogueTreeError",
    "EngineStateError",
    "GraphEditError",
    "GraphParseError",
    "InvalidChoiceSelection",
    "PlaybackError",
    "UnresolvedNodeError",
    "GraphDocument",
    "NodeType",
    "RuntimeScript",
    "compile_document",
    "import_document",
    "DialogueEngine",
]
