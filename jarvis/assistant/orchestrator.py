"""Turn pipeline: intent rules first, the language model second."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .dialog import ActionMetadata, ModelMetadata
from .intents import IntentExtractor, WakeWordGate
from .llm import ERROR_REPLY, LLMRequest, parse_action_response

if TYPE_CHECKING:
    from .actions import ActionRegistry
    from .dialog import DialogStore
    from .llm import LLMClient
    from .speech import SpeechOutput

LOGGER = logging.getLogger("jarvis-assistant.pipeline")

WAKE_ACKNOWLEDGEMENT = "Yes? How may I assist you?"


@dataclass
class TurnTracker:
    source: str
    start: float = field(default_factory=time.monotonic)
    stage_start: float = field(default_factory=time.monotonic)
    current_stage: str | None = None
    stage_durations: dict[str, int] = field(default_factory=dict)

    def begin_stage(self, stage: str) -> None:
        now = time.monotonic()
        if self.current_stage:
            self.stage_durations[self.current_stage] = int((now - self.stage_start) * 1000)
        self.current_stage = stage
        self.stage_start = now

    def finalize(self, status: str) -> dict[str, object]:
        now = time.monotonic()
        if self.current_stage:
            self.stage_durations[self.current_stage] = int((now - self.stage_start) * 1000)
        return {
            "source": self.source,
            "status": status,
            "total_ms": int((now - self.start) * 1000),
            "stages": self.stage_durations,
        }


class TurnOrchestrator:
    """Run one input at a time through intents, actions and the LLM client."""

    def __init__(
        self,
        *,
        dialog: DialogStore,
        actions: ActionRegistry,
        llm: LLMClient,
        speech: SpeechOutput,
        intents: IntentExtractor | None = None,
        wake_gate: WakeWordGate | None = None,
        recent_turns: int = 6,
        log_transcripts: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self.dialog = dialog
        self.actions = actions
        self.llm = llm
        self.speech = speech
        self.intents = intents or IntentExtractor()
        self.wake_gate = wake_gate or WakeWordGate()
        self.recent_turns = recent_turns
        self.log_transcripts = log_transcripts
        self.logger = logger or LOGGER
        self._processing = False
        self._last_run: dict[str, object] | None = None

    @property
    def processing(self) -> bool:
        return self._processing

    @property
    def last_run(self) -> dict[str, object] | None:
        return self._last_run

    async def process_voice(self, transcript: str) -> bool:
        """Handle a final speech transcript; only wake-word prefixed input is accepted."""
        if not transcript or not transcript.strip():
            return False
        if not self.wake_gate.is_wake_word(transcript):
            self.logger.debug("[pipeline] Ignoring transcript without wake word")
            return False
        if self._processing:
            self.logger.warning("[pipeline] Rejecting voice input while a turn is in progress")
            return False
        residual = self.wake_gate.strip_wake_word(transcript)
        if not residual:
            await self.speech.speak(WAKE_ACKNOWLEDGEMENT)
            return True
        return await self.process_input(residual, source="voice")

    async def process_input(self, text: str, *, source: str = "text") -> bool:
        if not text or not text.strip():
            return False
        if self._processing:
            self.logger.warning("[pipeline] Rejecting %s input while a turn is in progress", source)
            return False
        self._processing = True
        tracker = TurnTracker(source)
        status = "success"
        try:
            await self._run_turn(text.strip(), tracker)
        except Exception as exc:
            status = "error"
            self.logger.exception("[pipeline] Turn failed: %s", exc)
            await self._recover()
        finally:
            self._processing = False
            self._last_run = tracker.finalize(status)
            self.logger.debug("[pipeline] Turn finished: %s", self._last_run)
        return True

    async def _run_turn(self, text: str, tracker: TurnTracker) -> None:
        if self.log_transcripts:
            self.logger.info("[pipeline] Input [%s]: %s", tracker.source, text)
        self.dialog.add_user(text)

        tracker.begin_stage("intent")
        intent = self.intents.extract(text)
        if intent is not None:
            tracker.begin_stage("action")
            result = await self.actions.execute_intent(intent)
            response = result.message if result.success else f"I'm sorry, {result.message}"
            self.dialog.add_assistant(response, ActionMetadata(action=intent.name, result=result))
            tracker.begin_stage("speaking")
            await self.speech.speak(response)
            return

        tracker.begin_stage("thinking")
        history = self.dialog.recent(self.recent_turns)
        reply = await self.llm.query(
            LLMRequest(prompt=text, history=tuple(history), system_prompt=self.dialog.system_prompt)
        )
        parsed = parse_action_response(reply.text)
        if parsed.action:
            tracker.begin_stage("action")
            result = await self.actions.execute(parsed.action, parsed.parameters or {})
            response = parsed.text + ("" if result.success else f" However, {result.message}")
            metadata = ModelMetadata(reply=reply, action=parsed.action, action_result=result)
        else:
            response = parsed.text
            metadata = ModelMetadata(reply=reply)
        self.dialog.add_assistant(response, metadata)
        tracker.begin_stage("speaking")
        await self.speech.speak(response)

    async def _recover(self) -> None:
        self.dialog.add_assistant(ERROR_REPLY)
        try:
            await self.speech.speak(ERROR_REPLY)
        except Exception as exc:
            self.report_speech_error(exc)

    def report_speech_error(self, error: object) -> None:
        self.logger.warning("[pipeline] Voice error: %s", error)
        self.dialog.add_system(f"Voice error: {error}")

    def cancel_speech(self) -> None:
        self.speech.cancel()
