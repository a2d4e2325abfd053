"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from dialogue_tree.api.dialogues import router as dialogues_router
from dialogue_tree.api.health import router as health_router
from dialogue_tree.api.playback import router as playback_router
from dialogue_tree.config import settings
from dialogue_tree.core.event_bus import EventBus
from dialogue_tree.core.logging import get_logger, setup_logging
from dialogue_tree.db.database import SessionLocal, engine as db_engine
from dialogue_tree.db.models import Base
from dialogue_tree.services.document_service import DocumentService
from dialogue_tree.services.playback_service import PlaybackService

setup_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    # DB 테이블 생성
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=db_engine)
    logger.info("Database tables created.")

    event_bus = EventBus()
    db_session = SessionLocal()
    app.state.event_bus = event_bus

    # DocumentService 초기화
    app.state.document_service = DocumentService(
        db=db_session,
        event_bus=event_bus,
        layout_column_x=settings.LAYOUT_COLUMN_X,
        layout_row_spacing=settings.LAYOUT_ROW_SPACING,
    )
    logger.info("DocumentService initialized.")

    # PlaybackService 초기화
    app.state.playback_service = PlaybackService(
        db=db_session,
        event_bus=event_bus,
        evaluated_delay_ms=settings.EVALUATED_FEEDBACK_DELAY_MS,
        neutral_delay_ms=settings.NEUTRAL_FEEDBACK_DELAY_MS,
        default_language=settings.DEFAULT_LANGUAGE,
        supported_languages=settings.SUPPORTED_LANGUAGES,
        finished_session_limit=settings.FINISHED_SESSION_LIMIT,
    )
    logger.info("PlaybackService initialized.")

    yield

    # 종료 시 정리
    logger.info("Shutting down...")
    db_session.close()


app = FastAPI(title="Dialogue Tree", lifespan=lifespan)

app.include_router(health_router)
app.include_router(dialogues_router)
app.include_router(playback_router)
