"""SQLAlchemy declarative base and ORM models."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all database models."""


class DialogueModel(Base):
    """대화 1개 = 저작 그래프 JSON + 이중 언어 제목

    graph_json은 저작 포맷으로 저장한다. 런타임 스크립트는 저장하지 않고
    필요할 때마다 컴파일한다.
    """

    __tablename__ = "dialogues"

    dialogue_id: Mapped[str] = mapped_column(String, primary_key=True)
    title_en: Mapped[str] = mapped_column(String, nullable=False, default="")
    title_fr: Mapped[str] = mapped_column(String, nullable=False, default="")
    graph_json: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # 재생 통계 (dialogue_ended 이벤트로 갱신)
    play_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utcnow, onupdate=_utcnow
    )
