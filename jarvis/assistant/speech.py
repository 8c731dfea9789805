"""Speech and alert boundaries plus console implementations."""

from __future__ import annotations

import logging
import sys
from typing import Protocol, TextIO

LOGGER = logging.getLogger("jarvis-assistant.speech")


class SpeechOutput(Protocol):
    async def speak(self, text: str) -> None: ...

    def cancel(self) -> None: ...


class AlertSink(Protocol):
    async def notify(self, title: str, body: str) -> None: ...

    async def chime(self) -> None: ...


class ConsoleSpeech:
    """Print responses instead of synthesizing them."""

    def __init__(self, assistant_name: str = "JARVIS", stream: TextIO | None = None) -> None:
        self.assistant_name = assistant_name
        self._stream = stream or sys.stdout
        self.speaking = False

    async def speak(self, text: str) -> None:
        if not text:
            return
        self.speaking = True
        try:
            print(f"{self.assistant_name}: {text}", file=self._stream, flush=True)
        finally:
            self.speaking = False

    def cancel(self) -> None:
        if not self.speaking:
            return
        self.speaking = False
        LOGGER.debug("[speech] Speech cancelled")


class ConsoleAlerts:
    """Timer alerts written to the terminal."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout

    async def notify(self, title: str, body: str) -> None:
        LOGGER.info("[alert] %s: %s", title, body)
        print(f"*** {title}: {body}", file=self._stream, flush=True)

    async def chime(self) -> None:
        self._stream.write("\a")
        self._stream.flush()
