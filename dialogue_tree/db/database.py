"""Database engine and session configuration."""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from dialogue_tree.config import settings

# SQLite만 스레드 검사 해제가 필요 (FastAPI 스레드풀에서 세션 공유)
_connect_args = (
    {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
)

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args,
    echo=settings.DEBUG,
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    """요청 단위 DB 세션. 응답 후 닫는다."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
