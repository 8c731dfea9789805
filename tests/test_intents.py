"""Tests for rule-based intent extraction and wake-word gating."""

from __future__ import annotations

import pytest
from jarvis.assistant.intents import INTENT_CONFIDENCE, IntentExtractor, WakeWordGate


@pytest.fixture
def extractor():
    return IntentExtractor()


@pytest.fixture
def gate():
    return WakeWordGate()


class TestExtract:
    def test_open_url(self, extractor):
        intent = extractor.extract("open github")
        assert intent is not None
        assert intent.name == "open_url"
        assert intent.parameters == {"url": "github"}
        assert intent.confidence == INTENT_CONFIDENCE == 0.8

    def test_open_is_case_insensitive(self, extractor):
        intent = extractor.extract("Open YouTube")
        assert intent.parameters == {"url": "youtube"}

    def test_web_search(self, extractor):
        intent = extractor.extract("search for cute cats.")
        assert intent.name == "web_search"
        assert intent.parameters == {"query": "cute cats"}

    @pytest.mark.parametrize(
        ("utterance", "duration", "unit"),
        [
            ("set a timer for 5 minutes", "5", "minutes"),
            ("set timer for 30 seconds", "30", "seconds"),
            ("please set a timer for 2 hours", "2", "hours"),
            ("set a timer for 10min", "10", "min"),
            ("set a timer for 1 hr", "1", "hr"),
        ],
    )
    def test_set_timer(self, extractor, utterance, duration, unit):
        intent = extractor.extract(utterance)
        assert intent.name == "set_timer"
        assert intent.parameters == {"duration": duration, "unit": unit}

    @pytest.mark.parametrize("utterance", ["what's the weather", "What is the weather like?", "what’s the weather"])
    def test_weather(self, extractor, utterance):
        intent = extractor.extract(utterance)
        assert intent.name == "get_weather"
        assert intent.parameters == {}

    def test_calculate_keeps_whole_expression(self, extractor):
        intent = extractor.extract("calculate 2 + 2")
        assert intent.name == "calculate"
        assert intent.parameters == {"expression": "2 + 2"}

    @pytest.mark.parametrize(
        ("utterance", "action", "device"),
        [
            ("turn on the kitchen lights", "turn on", "kitchen lights"),
            ("turn off fan", "turn off", "fan"),
            ("dim the lamp", "dim", "lamp"),
            ("brighten the desk light", "brighten", "desk light"),
        ],
    )
    def test_smart_home(self, extractor, utterance, action, device):
        intent = extractor.extract(utterance)
        assert intent.name == "smart_home_control"
        assert intent.parameters == {"action": action, "device": device}

    def test_earlier_rule_shadows_later(self, extractor):
        intent = extractor.extract("search for how to open files")
        assert intent.name == "open_url"
        assert intent.parameters == {"url": "files"}

    @pytest.mark.parametrize("utterance", ["", "   ", "tell me a joke", "reopened the window"])
    def test_no_match(self, extractor, utterance):
        assert extractor.extract(utterance) is None


class TestWakeWordGate:
    @pytest.mark.parametrize(
        "utterance",
        ["Jarvis what's the weather", "hey jarvis", "HEY J.A.R.V.I.S open github", "ok jarvis"],
    )
    def test_detects_wake_word(self, gate, utterance):
        assert gate.is_wake_word(utterance)

    def test_no_wake_word(self, gate):
        assert not gate.is_wake_word("what's the weather")

    def test_strip_leaves_residual(self, gate):
        assert gate.strip_wake_word("jarvis what's the weather") == "what's the weather"
        assert gate.strip_wake_word("Hey Jarvis, open github") == "open github"
        assert gate.strip_wake_word("hey j.a.r.v.i.s calculate 1 + 1") == "calculate 1 + 1"

    def test_strip_wake_word_only(self, gate):
        assert gate.strip_wake_word("hey jarvis") == ""
        assert gate.strip_wake_word("Jarvis!") == ""

    def test_custom_phrases(self):
        custom = WakeWordGate(["computer"])
        assert custom.is_wake_word("Computer, lights")
        assert not custom.is_wake_word("jarvis")

    def test_requires_phrase(self):
        with pytest.raises(ValueError):
            WakeWordGate([" ", ""])
