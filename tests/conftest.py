"""Shared test fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dialogue_tree.core.event_bus import EventBus
from dialogue_tree.core.graph import GraphDocument, LocalizedText, NodeType
from dialogue_tree.db.database import get_db
from dialogue_tree.db.models import Base
from dialogue_tree.main import app
from dialogue_tree.services.document_service import DocumentService
from dialogue_tree.services.playback_service import PlaybackService

TEST_ENGINE = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSession = sessionmaker(bind=TEST_ENGINE, autocommit=False, autoflush=False)


def _override_get_db():
    db = TestSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = _override_get_db


@pytest.fixture()
def db_session() -> Session:
    """Fresh in-memory schema per test."""
    Base.metadata.drop_all(TEST_ENGINE)
    Base.metadata.create_all(TEST_ENGINE)
    session = TestSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def document_service(db_session: Session, event_bus: EventBus) -> DocumentService:
    return DocumentService(db_session, event_bus)


@pytest.fixture()
def playback_service(db_session: Session, event_bus: EventBus) -> PlaybackService:
    return PlaybackService(db_session, event_bus)


@pytest.fixture()
def client(
    document_service: DocumentService, playback_service: PlaybackService
) -> TestClient:
    """FastAPI TestClient wired to an in-memory SQLite database."""
    app.state.document_service = document_service
    app.state.playback_service = playback_service
    return TestClient(app)


@pytest.fixture()
def loop_script_data() -> dict:
    """Start → 대사 → 평가형 선택지 (오답은 대사로 복귀) → End"""
    return {
        "title": {"en": "Greeting", "fr": "Salutation"},
        "startNodeId": "n1",
        "nodes": [
            {"id": "n1", "type": "start", "nextNodeId": "n2"},
            {
                "id": "n2",
                "type": "dialogue",
                "speaker": {"en": "Guide", "fr": "Guide"},
                "text": {"en": "Hello there.", "fr": "Bonjour."},
                "nextNodeId": "n3",
            },
            {
                "id": "n3",
                "type": "choice",
                "text": {"en": "How do you answer?", "fr": "Que répondez-vous ?"},
                "choices": [
                    {
                        "id": "c1",
                        "text": {"en": "Hello!", "fr": "Bonjour !"},
                        "isCorrect": True,
                        "nextNodeId": "n4",
                    },
                    {
                        "id": "c2",
                        "text": {"en": "Go away.", "fr": "Partez."},
                        "isCorrect": False,
                        "nextNodeId": "n2",
                    },
                ],
            },
            {"id": "n4", "type": "end"},
        ],
    }


@pytest.fixture()
def loop_document() -> GraphDocument:
    """편집 API로 만든 저작 문서 (loop_script_data와 같은 구조)

    node_001 start, node_002 dialogue, node_003 choice, node_004 end
    """
    doc = GraphDocument()
    start_id = doc.add_node(NodeType.START)
    line_id = doc.add_node(NodeType.DIALOGUE)
    choice_id = doc.add_node(NodeType.CHOICE)
    end_id = doc.add_node(NodeType.END)

    doc.set_dialogue_text(
        line_id,
        speaker=LocalizedText.of(en="Guide", fr="Guide"),
        text=LocalizedText.of(en="Hello there.", fr="Bonjour."),
    )
    doc.set_choice_prompt(
        choice_id, LocalizedText.of(en="How do you answer?", fr="Que répondez-vous ?")
    )
    doc.update_choice(choice_id, f"{choice_id}_choice_0", is_correct=True)

    doc.add_edge(start_id, "output", line_id)
    doc.add_edge(line_id, "output", choice_id)
    doc.add_edge(choice_id, "choice_0", end_id)
    doc.add_edge(choice_id, "choice_1", line_id)
    return doc
