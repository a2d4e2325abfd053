"""GraphCompiler Core 패키지

저작 문서 ↔ 런타임 스크립트 양방향 변환 (순수 함수).
"""

from dialogue_tree.core.compiler.authoring import (
    document_from_dict,
    document_from_json,
    document_to_dict,
    document_to_json,
)
from dialogue_tree.core.compiler.compiler import compile_document
from dialogue_tree.core.compiler.importer import (
    document_from_script,
    extract_title,
    import_document,
)
from dialogue_tree.core.compiler.layout import auto_layout

__all__ = [
    "document_from_dict",
    "document_from_json",
    "document_to_dict",
    "document_to_json",
    "compile_document",
    "document_from_script",
    "extract_title",
    "import_document",
    "auto_layout",
]
