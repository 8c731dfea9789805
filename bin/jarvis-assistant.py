#!/usr/bin/env python3
"""JARVIS console assistant daemon."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys

from jarvis.assistant.actions import ActionRegistry, register_default_actions
from jarvis.assistant.config import AssistantConfig
from jarvis.assistant.dialog import DialogStore
from jarvis.assistant.intents import IntentExtractor, WakeWordGate
from jarvis.assistant.llm import build_llm_client, format_system_prompt
from jarvis.assistant.mqtt import AssistantMqtt, StatePublisher
from jarvis.assistant.orchestrator import TurnOrchestrator
from jarvis.assistant.scheduler import TimerScheduler
from jarvis.assistant.speech import ConsoleAlerts, ConsoleSpeech

LOGGER = logging.getLogger("jarvis-assistant")


async def _stdin_reader() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    return reader


class JarvisAssistant:
    def __init__(self, config: AssistantConfig, *, voice_mode: bool = False) -> None:
        self.config = config
        self.voice_mode = voice_mode
        self.speech = ConsoleSpeech(config.assistant_name)
        self.scheduler = TimerScheduler(ConsoleAlerts())
        self.actions = ActionRegistry()
        register_default_actions(self.actions, scheduler=self.scheduler, search_url=config.search_url)
        self.dialog = DialogStore(
            format_system_prompt(config.system_prompt, self.actions.describe_for_prompt()),
            max_turns=config.history_limit,
            greeting=config.greeting,
        )
        self.llm = build_llm_client(config.llm, logger=LOGGER)
        self.orchestrator = TurnOrchestrator(
            dialog=self.dialog,
            actions=self.actions,
            llm=self.llm,
            speech=self.speech,
            intents=IntentExtractor(),
            wake_gate=WakeWordGate(config.wake_words),
            recent_turns=config.recent_turns,
            log_transcripts=config.log_transcripts,
            logger=LOGGER,
        )
        self.mqtt = AssistantMqtt(config.mqtt, logger=LOGGER)
        self.publisher = StatePublisher(self.mqtt, config.history_topic, config.provider_topic)
        self._turn_tasks: set[asyncio.Task] = set()

    async def run(self) -> None:
        self.mqtt.connect()
        self.publisher.attach(self.dialog.history, self.llm.state)
        state = await self.llm.probe()
        LOGGER.info(
            "[startup] LLM provider: %s (%s)",
            state.active_provider,
            "connected" if state.connected else "offline",
        )
        greeting = self.dialog.all()
        if greeting:
            await self.speech.speak(greeting[-1].content)
        reader = await _stdin_reader()
        while True:
            raw = await reader.readline()
            if not raw:
                break
            if not await self.handle_line(raw.decode("utf-8", errors="replace").strip()):
                break
        if self._turn_tasks:
            await asyncio.gather(*self._turn_tasks, return_exceptions=True)

    async def handle_line(self, line: str) -> bool:
        if not line:
            return True
        if line == "/quit":
            return False
        if line == "/clear":
            self.dialog.clear()
            await self.speech.speak(self.dialog.all()[-1].content)
            return True
        if self.orchestrator.processing:
            LOGGER.info("[pipeline] Still working on the previous request; input dropped")
            return True
        turn = self.orchestrator.process_voice(line) if self.voice_mode else self.orchestrator.process_input(line)
        task = asyncio.create_task(turn)
        self._turn_tasks.add(task)
        task.add_done_callback(self._turn_tasks.discard)
        return True

    async def shutdown(self) -> None:
        self.orchestrator.cancel_speech()
        for task in list(self._turn_tasks):
            task.cancel()
        await self.scheduler.cancel_all()
        self.publisher.detach()
        self.mqtt.disconnect()


async def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--voice", action="store_true", help="treat typed lines as voice transcripts")
    args = parser.parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    config = AssistantConfig.from_env()
    assistant = JarvisAssistant(config, voice_mode=args.voice)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _handle_signal(signum: int) -> None:
        LOGGER.info("Received signal %s, shutting down", signum)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _handle_signal, sig)

    run_task = asyncio.create_task(assistant.run())
    stop_task = asyncio.create_task(stop_event.wait())
    await asyncio.wait({run_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    await assistant.shutdown()
    for task in (run_task, stop_task):
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
