"""가져온 런타임 스크립트용 자동 배치

런타임 스키마에는 좌표가 없으므로 원래 배치는 복원할 수 없다.
고정 열 하나에 노드를 목록 순서대로 세로로 쌓고, Start는 고정 위치에 둔다.
"""

from __future__ import annotations

from typing import Sequence

from dialogue_tree.core.graph.models import NodeType, Position
from dialogue_tree.core.script.models import CompiledNode

COLUMN_X = 250.0
ROW_SPACING = 200.0
START_ANCHOR = Position(100.0, 100.0)


def auto_layout(
    nodes: Sequence[CompiledNode],
    column_x: float = COLUMN_X,
    row_spacing: float = ROW_SPACING,
) -> dict[str, Position]:
    """node_id → Position. 같은 입력이면 항상 같은 결과."""
    positions: dict[str, Position] = {}
    y_offset = 0.0
    for node in nodes:
        if node.node_type == NodeType.START:
            positions[node.node_id] = Position(START_ANCHOR.x, START_ANCHOR.y)
        else:
            positions[node.node_id] = Position(column_x, y_offset)
        # Start 자리도 한 줄을 차지한다
        y_offset += row_spacing
    return positions
