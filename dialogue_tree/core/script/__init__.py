"""런타임 스크립트 Core 패키지"""

from dialogue_tree.core.script.models import (
    CompiledChoice,
    CompiledNode,
    RuntimeScript,
)
from dialogue_tree.core.script.codec import (
    RUNTIME_MARKER_KEY,
    check_script,
    script_from_dict,
    script_from_json,
    script_to_dict,
    script_to_json,
)

__all__ = [
    "CompiledChoice",
    "CompiledNode",
    "RuntimeScript",
    "RUNTIME_MARKER_KEY",
    "check_script",
    "script_from_dict",
    "script_from_json",
    "script_to_dict",
    "script_to_json",
]
