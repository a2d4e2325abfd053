"""EventBus 테스트"""

from dialogue_tree.core.event_bus import MAX_DEPTH, DialogueEvent, EventBus
from dialogue_tree.core.event_types import EventTypes


def _event(event_type: str, source: str = "test", **data) -> DialogueEvent:
    return DialogueEvent(event_type=event_type, data=data, source=source)


class TestSubscribeEmit:
    def test_basic_emit(self):
        bus = EventBus()
        received = []
        bus.subscribe(EventTypes.CHOICE_MADE, received.append)
        bus.emit(_event(EventTypes.CHOICE_MADE, node_id="n3"))
        assert len(received) == 1
        assert received[0].data["node_id"] == "n3"

    def test_handlers_called_in_subscription_order(self):
        bus = EventBus()
        results = []
        bus.subscribe("evt", lambda e: results.append("a"))
        bus.subscribe("evt", lambda e: results.append("b"))
        bus.emit(_event("evt"))
        assert results == ["a", "b"]

    def test_no_handlers(self):
        """구독자 없는 이벤트 발행 — 에러 없이 무시"""
        bus = EventBus()
        bus.emit(_event(EventTypes.DIALOGUE_ENDED))

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        bus.subscribe("evt", received.append)
        bus.unsubscribe("evt", received.append)
        bus.emit(_event("evt"))
        assert received == []

    def test_unsubscribe_unknown_handler_is_ignored(self):
        bus = EventBus()
        bus.subscribe("evt", lambda e: None)
        bus.unsubscribe("evt", lambda e: None)
        assert bus.handler_count == 1


class TestDepthLimit:
    def test_max_depth_stops_chain(self):
        bus = EventBus()
        call_count = 0

        def relay(event: DialogueEvent):
            nonlocal call_count
            call_count += 1
            # source를 바꿔 중복 차단을 우회
            bus.emit(_event("chain", source=f"relay_{call_count}"))

        bus.subscribe("chain", relay)
        bus.emit(_event("chain", source="origin"))
        assert call_count == MAX_DEPTH


class TestDuplicatePrevention:
    def test_same_source_same_event_blocked(self):
        bus = EventBus()
        count = 0

        def handler(event: DialogueEvent):
            nonlocal count
            count += 1
            bus.emit(_event("evt", source="playback_service"))

        bus.subscribe("evt", handler)
        bus.emit(_event("evt", source="playback_service"))
        assert count == 1

    def test_different_source_allowed(self):
        bus = EventBus()
        received = []
        bus.subscribe("evt", lambda e: received.append(e.source))
        bus.emit(_event("evt", source="document_service"))
        bus.emit(_event("evt", source="playback_service"))
        assert received == ["document_service", "playback_service"]

    def test_reset_chain_allows_re_emit(self):
        bus = EventBus()
        received = []
        bus.subscribe("evt", received.append)
        bus.emit(_event("evt"))
        bus.emit(_event("evt"))
        bus.reset_chain()
        bus.emit(_event("evt"))
        assert len(received) == 2


class TestHandlerError:
    def test_handler_exception_doesnt_stop_others(self):
        bus = EventBus()
        results = []

        def bad_handler(e):
            raise ValueError("boom")

        bus.subscribe("evt", bad_handler)
        bus.subscribe("evt", lambda e: results.append("ok"))
        bus.emit(_event("evt"))
        assert results == ["ok"]


class TestClear:
    def test_clear_removes_all(self):
        bus = EventBus()
        bus.subscribe(EventTypes.DOCUMENT_SAVED, lambda e: None)
        bus.subscribe(EventTypes.DOCUMENT_COMPILED, lambda e: None)
        assert bus.handler_count == 2
        bus.clear()
        assert bus.handler_count == 0
