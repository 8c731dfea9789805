"""Rule-based intent extraction and wake-word handling."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from .config import DEFAULT_WAKE_WORDS

INTENT_CONFIDENCE = 0.8

_TRAILING_PUNCTUATION = ".?!"


@dataclass(frozen=True)
class Intent:
    name: str
    confidence: float
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class IntentRule:
    name: str
    pattern: re.Pattern[str]
    extractor: Callable[[re.Match[str]], dict[str, Any]]


def _clean(value: str) -> str:
    return value.strip().rstrip(_TRAILING_PUNCTUATION).strip()


DEFAULT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        "open_url",
        re.compile(r"\bopen\s+(\S+)"),
        lambda match: {"url": _clean(match.group(1))},
    ),
    IntentRule(
        "web_search",
        re.compile(r"\bsearch for\s+(.+)"),
        lambda match: {"query": _clean(match.group(1))},
    ),
    IntentRule(
        "set_timer",
        re.compile(r"\bset (?:a )?timer for (\d+) ?(minutes?|min|seconds?|sec|hours?|hr)\b"),
        lambda match: {"duration": match.group(1), "unit": match.group(2)},
    ),
    IntentRule(
        "get_weather",
        re.compile(r"\bwhat(?:'s| is) the weather\b"),
        lambda match: {},
    ),
    IntentRule(
        "calculate",
        re.compile(r"\bcalculate\s+(.+)"),
        lambda match: {"expression": _clean(match.group(1))},
    ),
    IntentRule(
        "smart_home_control",
        re.compile(r"\b(turn on|turn off|dim|brighten) (?:the )?(.+)"),
        lambda match: {"action": match.group(1), "device": _clean(match.group(2))},
    ),
)


def normalize_utterance(text: str) -> str:
    lowered = (text or "").strip().lower()
    return lowered.replace("’", "'")


class IntentExtractor:
    """Match utterances against an ordered rule list; the first hit wins."""

    def __init__(self, rules: Sequence[IntentRule] = DEFAULT_RULES) -> None:
        self.rules = tuple(rules)

    def extract(self, utterance: str) -> Intent | None:
        normalized = normalize_utterance(utterance)
        if not normalized:
            return None
        for rule in self.rules:
            match = rule.pattern.search(normalized)
            if match:
                return Intent(name=rule.name, confidence=INTENT_CONFIDENCE, parameters=rule.extractor(match))
        return None


class WakeWordGate:
    """Case-insensitive wake-phrase detection for voice input."""

    def __init__(self, phrases: Iterable[str] = DEFAULT_WAKE_WORDS) -> None:
        cleaned = [phrase.strip().lower() for phrase in phrases if phrase and phrase.strip()]
        if not cleaned:
            raise ValueError("At least one wake phrase is required")
        # Longest first so "hey jarvis" is removed whole before "jarvis" can match inside it.
        self.phrases = tuple(sorted(set(cleaned), key=len, reverse=True))
        alternation = "|".join(re.escape(phrase) for phrase in self.phrases)
        self._pattern = re.compile(alternation, re.IGNORECASE)

    def is_wake_word(self, utterance: str) -> bool:
        lowered = (utterance or "").lower()
        return any(phrase in lowered for phrase in self.phrases)

    def strip_wake_word(self, utterance: str) -> str:
        stripped = self._pattern.sub("", utterance or "")
        stripped = re.sub(r"\s+", " ", stripped)
        return stripped.strip().strip(",.!?").strip()
