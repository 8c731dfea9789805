"""Configuration helpers for the JARVIS assistant."""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass
from pathlib import Path

from jarvis.utils import parse_bool, parse_float, parse_int, split_csv


def _strip_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


DEFAULT_ASSISTANT_NAME = "JARVIS"
DEFAULT_WAKE_WORDS = ("hey jarvis", "jarvis", "hey j.a.r.v.i.s")
DEFAULT_HISTORY_LIMIT = 20
DEFAULT_RECENT_TURNS = 6
DEFAULT_LLM_ENDPOINT = "http://localhost:5000/api/llm"
DEFAULT_SEARCH_URL = "https://www.google.com/search?q="


@dataclass(frozen=True)
class LLMConfig:
    assistant_name: str
    endpoint: str
    timeout: float
    health_timeout: float
    max_tokens: int
    temperature: float
    cloud_api_key: str | None
    cloud_base_url: str
    cloud_model: str
    cloud_timeout: float

    @property
    def cloud_enabled(self) -> bool:
        return bool(self.cloud_api_key)


@dataclass(frozen=True)
class MqttConfig:
    host: str | None
    port: int
    username: str | None
    password: str | None
    tls_enabled: bool
    cert: str | None
    key: str | None
    ca_cert: str | None
    topic_base: str


@dataclass(frozen=True)
class AssistantConfig:
    hostname: str
    assistant_name: str
    wake_words: tuple[str, ...]
    history_limit: int
    recent_turns: int
    greeting: str | None
    system_prompt: str
    search_url: str
    log_transcripts: bool
    llm: LLMConfig
    mqtt: MqttConfig

    @property
    def history_topic(self) -> str:
        return f"{self.mqtt.topic_base}/history"

    @property
    def provider_topic(self) -> str:
        return f"{self.mqtt.topic_base}/provider"

    @staticmethod
    def from_env(env: dict[str, str] | None = None) -> AssistantConfig:
        source = env if env is not None else os.environ
        hostname = source.get("JARVIS_HOSTNAME") or socket.gethostname()
        assistant_name = (source.get("JARVIS_NAME") or DEFAULT_ASSISTANT_NAME).strip() or DEFAULT_ASSISTANT_NAME

        wake_words = tuple(word.lower() for word in split_csv(source.get("JARVIS_WAKE_WORDS"))) or DEFAULT_WAKE_WORDS

        history_limit = max(1, parse_int(source.get("JARVIS_HISTORY_LIMIT"), DEFAULT_HISTORY_LIMIT))
        recent_turns = max(1, parse_int(source.get("JARVIS_RECENT_TURNS"), DEFAULT_RECENT_TURNS))

        greeting_raw = source.get("JARVIS_GREETING")
        if greeting_raw is None:
            greeting: str | None = f"{assistant_name} online. How may I assist you today?"
        else:
            greeting = _strip_or_none(greeting_raw)

        system_prompt = source.get("JARVIS_SYSTEM_PROMPT", "").strip()
        prompt_file = source.get("JARVIS_SYSTEM_PROMPT_FILE")
        if not system_prompt and prompt_file:
            candidate = Path(prompt_file)
            if candidate.is_file():
                system_prompt = candidate.read_text(encoding="utf-8").strip()
        if not system_prompt:
            system_prompt = DEFAULT_SYSTEM_PROMPT.format(name=assistant_name)

        llm = LLMConfig(
            assistant_name=assistant_name,
            endpoint=(source.get("JARVIS_LLM_ENDPOINT") or DEFAULT_LLM_ENDPOINT).rstrip("/"),
            timeout=parse_float(source.get("JARVIS_LLM_TIMEOUT_SECONDS"), 30.0),
            health_timeout=parse_float(source.get("JARVIS_LLM_HEALTH_TIMEOUT_SECONDS"), 5.0),
            max_tokens=max(1, parse_int(source.get("JARVIS_LLM_MAX_TOKENS"), 150)),
            temperature=parse_float(source.get("JARVIS_LLM_TEMPERATURE"), 0.7),
            cloud_api_key=_strip_or_none(source.get("OPENAI_API_KEY")),
            cloud_base_url=(source.get("OPENAI_BASE_URL") or "https://api.openai.com/v1").rstrip("/"),
            cloud_model=source.get("OPENAI_MODEL", "gpt-4o-mini"),
            cloud_timeout=parse_float(source.get("OPENAI_TIMEOUT_SECONDS"), 45.0),
        )

        topic_base = source.get("JARVIS_TOPIC_BASE") or f"jarvis/{hostname}"
        mqtt = MqttConfig(
            host=_strip_or_none(source.get("MQTT_HOST")),
            port=parse_int(source.get("MQTT_PORT"), 1883),
            username=_strip_or_none(source.get("MQTT_USER") or source.get("MQTT_USERNAME")),
            password=_strip_or_none(source.get("MQTT_PASS") or source.get("MQTT_PASSWORD")),
            tls_enabled=parse_bool(source.get("MQTT_TLS_ENABLED"), False),
            cert=_strip_or_none(source.get("MQTT_CERT")),
            key=_strip_or_none(source.get("MQTT_KEY")),
            ca_cert=_strip_or_none(source.get("MQTT_CA_CERT")),
            topic_base=topic_base.rstrip("/"),
        )

        return AssistantConfig(
            hostname=hostname,
            assistant_name=assistant_name,
            wake_words=wake_words,
            history_limit=history_limit,
            recent_turns=recent_turns,
            greeting=greeting,
            system_prompt=system_prompt,
            search_url=source.get("JARVIS_SEARCH_URL") or DEFAULT_SEARCH_URL,
            log_transcripts=parse_bool(source.get("JARVIS_LOG_TRANSCRIPTS"), True),
            llm=llm,
            mqtt=mqtt,
        )


DEFAULT_SYSTEM_PROMPT = """You are {name}, an advanced AI assistant. You are helpful, intelligent, and slightly witty.

Key capabilities:
- Answer questions and provide information
- Control smart home devices
- Open websites
- Set timers
- Search the web
- Perform calculations

Always respond concisely but helpfully. If you need to perform an action, clearly indicate what you're doing."""
