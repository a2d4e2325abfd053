"""DialogueEngine 재생 상태 기계 테스트"""

import pytest

from dialogue_tree.core.errors import (
    EngineStateError,
    InvalidChoiceSelection,
    UnresolvedNodeError,
)
from dialogue_tree.core.playback import (
    AnalyticsRecorder,
    ChoicePrompt,
    Classification,
    DialogueEngine,
    DialogueLine,
    DisplaySurface,
    EngineState,
)
from dialogue_tree.core.script import script_from_dict


class RecordingDisplay(DisplaySurface):
    def __init__(self):
        self.units = []
        self.feedback = []
        self.ended = 0

    def show_unit(self, unit):
        self.units.append(unit)

    def show_choice_feedback(self, cue):
        self.feedback.append(cue)

    def show_end(self):
        self.ended += 1


class RecordingAnalytics(AnalyticsRecorder):
    def __init__(self):
        self.outcomes = []

    def record_choice(self, outcome):
        self.outcomes.append(outcome)


class BrokenDisplay(DisplaySurface):
    def show_unit(self, unit):
        raise RuntimeError("render failed")

    def show_choice_feedback(self, cue):
        raise RuntimeError("render failed")

    def show_end(self):
        raise RuntimeError("render failed")


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture()
def loop_script(loop_script_data):
    return script_from_dict(loop_script_data)


@pytest.fixture()
def linear_script():
    return script_from_dict(
        {
            "startNodeId": "n1",
            "nodes": [
                {"id": "n1", "type": "start", "nextNodeId": "n2"},
                {
                    "id": "n2",
                    "type": "dialogue",
                    "speaker": {"en": "Guide", "fr": "Guide"},
                    "text": {"en": "Goodbye.", "fr": "Au revoir."},
                    "nextNodeId": "n3",
                },
                {"id": "n3", "type": "end"},
            ],
        }
    )


def _engine(script, **kwargs):
    display = RecordingDisplay()
    analytics = RecordingAnalytics()
    errors = []
    engine = DialogueEngine(
        script, display=display, analytics=analytics, on_error=errors.append, **kwargs
    )
    return engine, display, analytics, errors


class TestLinear:
    def test_start_then_advance_ends(self, linear_script):
        engine, display, analytics, errors = _engine(linear_script)
        assert engine.state == EngineState.IDLE

        unit = engine.start()
        assert isinstance(unit, DialogueLine)
        assert unit.node_id == "n2"
        assert engine.state == EngineState.AT_DIALOGUE

        assert engine.advance() is None
        assert engine.is_ended
        assert analytics.outcomes == []
        assert display.ended == 1
        assert errors == []

    def test_start_twice_is_reported(self, linear_script):
        engine, _, _, errors = _engine(linear_script)
        engine.start()
        engine.start()
        assert engine.current_node_id == "n2"
        assert isinstance(errors[0], EngineStateError)


class TestEvaluatedLoop:
    def test_wrong_choice_loops_then_correct_ends(self, loop_script):
        clock = FakeClock()
        engine, display, analytics, errors = _engine(loop_script, clock=clock)

        engine.start()
        assert engine.current_node_id == "n2"

        prompt = engine.advance()
        assert isinstance(prompt, ChoicePrompt)
        assert engine.state == EngineState.AT_CHOICE
        assert prompt.classification == Classification.EVALUATED
        assert [o.choice_id for o in prompt.options] == ["c1", "c2"]

        clock.now = 102.5
        wrong = engine.choose("c2")
        assert (wrong.node_id, wrong.choice_id, wrong.was_correct) == ("n3", "c2", False)
        assert wrong.counts_toward_score is True
        assert wrong.timestamp == 2.5
        assert engine.current_node_id == "n2"
        assert engine.state == EngineState.AT_DIALOGUE

        engine.advance()
        right = engine.choose("c1")
        assert right.was_correct is True
        assert engine.state == EngineState.ENDED

        assert len(analytics.outcomes) == 2
        assert [c.chosen_is_correct for c in display.feedback] == [False, True]
        assert all(c.delay_ms == 800 for c in display.feedback)
        assert errors == []

    def test_choice_prompt_carries_last_dialogue(self, loop_script):
        engine, display, _, _ = _engine(loop_script)
        engine.start()
        prompt = engine.advance()
        assert prompt.context.text.get("en") == "Hello there."
        assert prompt.context.speaker.get("fr") == "Guide"
        assert display.units[-1] == prompt

    def test_choice_right_after_start_has_no_context(self):
        script = script_from_dict(
            {
                "startNodeId": "s",
                "nodes": [
                    {"id": "s", "type": "start", "nextNodeId": "q"},
                    {
                        "id": "q",
                        "type": "choice",
                        "text": {"en": "Pick one"},
                        "choices": [
                            {"id": "a", "text": {"en": "A"}, "nextNodeId": "e"}
                        ],
                    },
                    {"id": "e", "type": "end"},
                ],
            }
        )
        engine, _, _, errors = _engine(script)
        prompt = engine.start()
        assert isinstance(prompt, ChoicePrompt)
        assert prompt.context is None
        assert engine.last_dialogue is None
        assert errors == []

    def test_full_language_map_forwarded(self, loop_script):
        engine, _, _, _ = _engine(loop_script)
        unit = engine.start()
        assert unit.text.to_dict() == {"en": "Hello there.", "fr": "Bonjour."}


class TestNeutral:
    def test_neutral_choice_recorded_but_not_scored(self, loop_script_data):
        for choice in loop_script_data["nodes"][2]["choices"]:
            choice["isCorrect"] = False
        engine, display, analytics, _ = _engine(script_from_dict(loop_script_data))
        engine.start()
        engine.advance()
        outcome = engine.choose("c1")
        assert outcome.counts_toward_score is False
        assert analytics.outcomes == [outcome]
        assert display.feedback[0].classification == Classification.NEUTRAL
        assert display.feedback[0].delay_ms == 300


class TestInvalidActions:
    def test_invalid_choice_keeps_state(self, loop_script):
        engine, _, analytics, errors = _engine(loop_script)
        engine.start()
        engine.advance()

        assert engine.choose("nope") is None
        assert engine.state == EngineState.AT_CHOICE
        assert engine.current_node_id == "n3"
        assert analytics.outcomes == []
        assert isinstance(errors[0], InvalidChoiceSelection)
        assert errors[0].choice_id == "nope"

    def test_advance_at_choice_is_ignored(self, loop_script):
        engine, _, _, errors = _engine(loop_script)
        engine.start()
        engine.advance()
        engine.advance()
        assert engine.current_node_id == "n3"
        assert isinstance(errors[0], EngineStateError)

    def test_choose_at_dialogue_is_ignored(self, loop_script):
        engine, _, _, errors = _engine(loop_script)
        engine.start()
        assert engine.choose("c1") is None
        assert engine.current_node_id == "n2"
        assert len(errors) == 1

    def test_actions_after_end_are_ignored(self, linear_script):
        engine, _, _, errors = _engine(linear_script)
        engine.start()
        engine.advance()
        engine.advance()
        engine.choose("x")
        assert engine.is_ended
        assert len(errors) == 2


class TestNoSpontaneousChange:
    def test_state_only_changes_on_actions(self, loop_script):
        engine, display, _, _ = _engine(loop_script)
        engine.start()
        snapshot = (engine.state, engine.current_node_id, len(display.units))
        for _ in range(3):
            _ = engine.current_unit
            _ = engine.state
        assert (engine.state, engine.current_node_id, len(display.units)) == snapshot


class TestUnresolved:
    def test_missing_target_ends_with_report(self, loop_script_data):
        loop_script_data["nodes"][1]["nextNodeId"] = "ghost"
        engine, display, _, errors = _engine(script_from_dict(loop_script_data))
        engine.start()
        engine.advance()
        assert engine.is_ended
        assert isinstance(errors[0], UnresolvedNodeError)
        assert errors[0].node_id == "n2"
        assert display.ended == 1

    def test_missing_start_node(self, loop_script_data):
        loop_script_data["startNodeId"] = "nowhere"
        engine, _, _, errors = _engine(script_from_dict(loop_script_data))
        assert engine.start() is None
        assert engine.is_ended
        assert isinstance(errors[0], UnresolvedNodeError)

    def test_unlinked_choice_ends(self, loop_script_data):
        loop_script_data["nodes"][2]["choices"][0]["nextNodeId"] = ""
        engine, _, analytics, errors = _engine(script_from_dict(loop_script_data))
        engine.start()
        engine.advance()
        engine.choose("c1")
        assert engine.is_ended
        assert len(analytics.outcomes) == 1
        assert errors == []

    def test_empty_choice_node_ends_with_report(self, loop_script_data):
        loop_script_data["nodes"][2]["choices"] = []
        engine, _, _, errors = _engine(script_from_dict(loop_script_data))
        engine.start()
        engine.advance()
        assert engine.is_ended
        assert errors[0].node_id == "n3"

    def test_start_pointing_to_itself(self):
        script = script_from_dict(
            {"startNodeId": "s", "nodes": [{"id": "s", "type": "start", "nextNodeId": "s"}]}
        )
        engine, _, _, errors = _engine(script)
        engine.start()
        assert engine.is_ended
        assert len(errors) == 1


def test_collaborator_errors_do_not_break_playback(loop_script):
    engine = DialogueEngine(loop_script, display=BrokenDisplay())
    engine.start()
    engine.advance()
    engine.choose("c1")
    assert engine.is_ended


def test_engine_without_collaborators(loop_script):
    engine = DialogueEngine(loop_script)
    engine.start()
    engine.advance()
    engine.choose("c2")
    assert engine.current_node_id == "n2"


def test_script_shared_between_engines(loop_script):
    first = DialogueEngine(loop_script)
    second = DialogueEngine(loop_script)
    first.start()
    first.advance()
    first.choose("c1")
    second.start()
    assert first.is_ended
    assert second.current_node_id == "n2"
