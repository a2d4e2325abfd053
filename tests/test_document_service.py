"""DocumentService 통합 테스트 (인메모리 SQLite + EventBus)"""

import json

import pytest

from dialogue_tree.core.errors import CompilationError, GraphParseError
from dialogue_tree.core.event_bus import DialogueEvent
from dialogue_tree.core.event_types import EventTypes
from dialogue_tree.core.graph import LocalizedText, NodeType, ViolationKind
from dialogue_tree.db.models import DialogueModel


def test_create_dialogue_with_default_nodes(document_service, db_session):
    record = document_service.create_dialogue()
    assert record.dialogue_id == "dialogue_001"
    assert record.title.get("en") == "New Dialogue"
    assert record.title.get("fr") == "Nouveau Dialogue"
    assert [n.node_type for n in record.document.nodes] == [NodeType.START, NodeType.END]

    row = db_session.query(DialogueModel).one()
    assert json.loads(row.graph_json)["nodes"][0]["type"] == "start"


def test_generated_ids_are_unique(document_service):
    document_service.create_dialogue(dialogue_id="dialogue_002")
    first = document_service.create_dialogue()
    second = document_service.create_dialogue()
    assert len({"dialogue_002", first.dialogue_id, second.dialogue_id}) == 3


def test_create_duplicate_id_rejected(document_service):
    document_service.create_dialogue(dialogue_id="intro")
    with pytest.raises(ValueError):
        document_service.create_dialogue(dialogue_id="intro")


def test_get_missing_dialogue(document_service):
    with pytest.raises(ValueError, match="Dialogue not found"):
        document_service.get_dialogue("nope")


def test_save_and_reload_document(document_service, event_bus, loop_document):
    saved = []
    event_bus.subscribe(EventTypes.DOCUMENT_SAVED, saved.append)
    document_service.create_dialogue(dialogue_id="intro")

    document_service.save_document("intro", loop_document)
    record = document_service.get_dialogue("intro")

    assert record.document.node_count == 4
    assert record.document.edge_index() == loop_document.edge_index()
    assert saved[0].data == {"dialogue_id": "intro", "node_count": 4}


def test_save_twice_emits_twice(document_service, event_bus, loop_document):
    saved = []
    event_bus.subscribe(EventTypes.DOCUMENT_SAVED, saved.append)
    document_service.create_dialogue(dialogue_id="intro")
    document_service.save_document("intro", loop_document)
    document_service.save_document("intro", loop_document)
    assert len(saved) == 2


def test_update_title_and_list(document_service):
    document_service.create_dialogue(dialogue_id="b")
    document_service.create_dialogue(dialogue_id="a")
    document_service.update_title("b", LocalizedText.of(en="Bee", fr="Abeille"))

    records = document_service.list_dialogues()
    assert [r.dialogue_id for r in records] == ["a", "b"]
    assert records[1].title.get("fr") == "Abeille"


def test_delete_dialogue(document_service):
    document_service.create_dialogue(dialogue_id="gone")
    document_service.delete_dialogue("gone")
    assert document_service.list_dialogues() == []
    with pytest.raises(ValueError):
        document_service.delete_dialogue("gone")


def test_validate_dialogue(document_service):
    document_service.create_dialogue(dialogue_id="intro")
    kinds = [v.kind for v in document_service.validate_dialogue("intro")]
    assert kinds == [ViolationKind.UNREACHABLE_NODE]


def test_compile_dialogue_emits_event(document_service, event_bus, loop_document):
    compiled = []
    event_bus.subscribe(EventTypes.DOCUMENT_COMPILED, compiled.append)
    document_service.create_dialogue(
        dialogue_id="intro", title=LocalizedText.of(en="Greeting", fr="Salutation")
    )
    document_service.save_document("intro", loop_document)

    script = document_service.compile_dialogue("intro")
    assert script.start_node_id == "node_001"
    assert script.title.get("en") == "Greeting"
    assert compiled[0].data["choice_node_count"] == 1


def test_compile_refused(document_service, loop_document, event_bus):
    compiled = []
    event_bus.subscribe(EventTypes.DOCUMENT_COMPILED, compiled.append)
    loop_document.add_node(NodeType.START)
    document_service.create_dialogue(dialogue_id="broken")
    document_service.save_document("broken", loop_document)

    with pytest.raises(CompilationError):
        document_service.compile_dialogue("broken")
    assert compiled == []


def test_export_runtime_json(document_service, loop_document):
    document_service.create_dialogue(dialogue_id="intro")
    document_service.save_document("intro", loop_document)
    data = json.loads(document_service.export_runtime_json("intro"))
    assert data["startNodeId"] == "node_001"
    assert len(data["nodes"]) == 4


def test_import_runtime_script_uses_its_title(document_service, loop_script_data):
    record = document_service.import_dialogue(json.dumps(loop_script_data))
    assert record.title.get("fr") == "Salutation"
    assert record.document.outgoing_edge("n3", "choice_1").to_node_id == "n2"


def test_import_with_explicit_id_and_title(document_service, loop_script_data):
    record = document_service.import_dialogue(
        loop_script_data,
        dialogue_id="imported",
        title=LocalizedText.of(en="Mine", fr="Le mien"),
    )
    assert record.dialogue_id == "imported"
    assert document_service.get_dialogue("imported").title.get("en") == "Mine"


def test_import_garbage_rejected(document_service):
    with pytest.raises(GraphParseError):
        document_service.import_dialogue("not json at all")
    assert document_service.list_dialogues() == []


def test_play_stats_recorded_from_dialogue_end(
    document_service, playback_service, loop_document
):
    document_service.create_dialogue(dialogue_id="intro")
    document_service.save_document("intro", loop_document)
    assert document_service.get_dialogue("intro").play_count == 0

    session = playback_service.start_session("intro")
    playback_service.advance(session.session_id)
    playback_service.choose(session.session_id, "node_003_choice_1")
    playback_service.advance(session.session_id)
    playback_service.choose(session.session_id, "node_003_choice_0")

    record = document_service.get_dialogue("intro")
    assert record.play_count == 1
    assert record.last_score == 50.0


def test_play_stats_ignore_unknown_dialogue(document_service, event_bus):
    document_service.create_dialogue(dialogue_id="intro")
    event_bus.emit(
        DialogueEvent(
            event_type=EventTypes.DIALOGUE_ENDED,
            data={"dialogue_id": "other", "final_score": 10.0},
            source="playback_service",
        )
    )
    event_bus.emit(
        DialogueEvent(
            event_type=EventTypes.DIALOGUE_ENDED,
            data={"dialogue_id": "", "final_score": 10.0},
            source="scratch",
        )
    )
    assert document_service.get_dialogue("intro").play_count == 0
