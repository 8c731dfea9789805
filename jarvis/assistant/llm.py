"""LLM provider chain, canned fallback replies and model output parsing."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal

import httpx

from .config import LLMConfig
from .observable import Observable

if TYPE_CHECKING:
    from .dialog import Turn

LOGGER = logging.getLogger("jarvis-assistant.llm")

ProviderName = Literal["local", "cloud", "fallback"]

ERROR_REPLY = "I apologize, but I encountered an error processing your request."


class LLMProviderError(RuntimeError):
    """A provider could not produce a reply; the next provider is tried."""


@dataclass(frozen=True)
class LLMRequest:
    prompt: str
    history: Sequence[Turn] = ()
    system_prompt: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None


@dataclass(frozen=True)
class LLMReply:
    text: str
    provider: ProviderName
    model: str | None = None


@dataclass(frozen=True)
class ModelResponse:
    text: str
    action: str | None = None
    parameters: dict[str, Any] | None = None


@dataclass(frozen=True)
class ProviderState:
    connected: bool = False
    active_provider: ProviderName = "fallback"


def parse_action_response(raw: str) -> ModelResponse:
    """Accept either plain prose or a ``{"response", "action", "parameters"}`` object."""
    try:
        parsed = json.loads(raw)
    except (ValueError, TypeError, RecursionError):
        return ModelResponse(text=raw)
    if not isinstance(parsed, dict):
        return ModelResponse(text=raw)

    response = parsed.get("response")
    text = response if isinstance(response, str) and response.strip() else raw
    action = parsed.get("action")
    if not isinstance(action, str) or not action.strip():
        return ModelResponse(text=text)
    parameters = parsed.get("parameters")
    if not isinstance(parameters, dict):
        parameters = {}
    return ModelResponse(text=text, action=action.strip(), parameters=parameters)


def format_system_prompt(base_prompt: str, actions_for_prompt: Iterable[dict[str, str]]) -> str:
    action_lines = []
    for action in actions_for_prompt:
        slug = action.get("slug")
        desc = action.get("description", "")
        if slug:
            action_lines.append(f"- {slug}: {desc}")

    action_section = "\n".join(action_lines) if action_lines else "  (no actions are currently available)"

    return f"""{base_prompt.strip()}

Available actions:
{action_section}

Respond in JSON format when an action is needed:
{{
  "response": "I'll open Google for you.",
  "action": "open_url",
  "parameters": {{"url": "https://google.com"}}
}}

For general conversation, just respond normally."""


def build_prompt(request: LLMRequest, assistant_name: str) -> str:
    """Flatten the system prompt, history and new input into one completion prompt."""
    prompt = request.system_prompt or ""
    if request.history:
        prompt += "\n\nConversation history:\n"
        for turn in request.history:
            speaker = "User" if turn.role == "user" else assistant_name
            prompt += f"{speaker}: {turn.content}\n"
    prompt += f"\nUser: {request.prompt}\n{assistant_name}:"
    return prompt


class LLMProvider:
    name: ProviderName = "fallback"

    async def generate(self, request: LLMRequest) -> LLMReply:
        raise NotImplementedError


class LocalProvider(LLMProvider):
    """Completion-style endpoint, usually a model served on the same machine."""

    name: ProviderName = "local"

    def __init__(
        self,
        config: LLMConfig,
        client: httpx.AsyncClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self._client = client
        self._logger = logger or LOGGER

    def build_payload(self, request: LLMRequest) -> dict[str, Any]:
        name = self.config.assistant_name
        return {
            "prompt": build_prompt(request, name),
            "max_tokens": request.max_tokens if request.max_tokens is not None else self.config.max_tokens,
            "temperature": request.temperature if request.temperature is not None else self.config.temperature,
            "stop": ["\n\nUser:", f"\n\n{name}:"],
        }

    async def generate(self, request: LLMRequest) -> LLMReply:
        body = await self._post(self.config.endpoint, self.build_payload(request), self.config.timeout)
        choices = body.get("choices") or []
        text = None
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            text = choices[0].get("text")
        if not text:
            text = body.get("response")
        if not isinstance(text, str) or not text:
            text = ERROR_REPLY
        model = body.get("model")
        return LLMReply(text=text, provider=self.name, model=model if isinstance(model, str) else None)

    async def health_check(self) -> bool:
        url = f"{self.config.endpoint}/health"
        try:
            if self._client is not None:
                response = await self._client.get(url, timeout=self.config.health_timeout)
            else:
                async with httpx.AsyncClient(timeout=self.config.health_timeout) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            self._logger.info("[llm] Local LLM health check failed: %s", exc)
            return False
        return True

    async def _post(self, url: str, payload: dict[str, Any], timeout: float) -> dict[str, Any]:
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, timeout=timeout)
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(url, json=payload)
            response.raise_for_status()
            parsed = response.json()
        except httpx.HTTPStatusError as exc:
            raise LLMProviderError(f"{self.name} LLM HTTP error: {exc.response.status_code}") from exc
        except httpx.RequestError as exc:
            raise LLMProviderError(f"Unable to reach {self.name} LLM: {exc}") from exc
        except ValueError as exc:
            raise LLMProviderError(f"{self.name} LLM returned invalid JSON") from exc
        if not isinstance(parsed, dict):
            raise LLMProviderError(f"{self.name} LLM returned an unexpected payload")
        return parsed


class CloudProvider(LocalProvider):
    """OpenAI-compatible chat completion endpoint."""

    name: ProviderName = "cloud"

    def build_payload(self, request: LLMRequest) -> dict[str, Any]:
        messages: list[dict[str, str]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        for turn in request.history:
            role = "user" if turn.role == "user" else "assistant"
            messages.append({"role": role, "content": turn.content})
        messages.append({"role": "user", "content": request.prompt.strip()})
        return {
            "model": self.config.cloud_model,
            "messages": messages,
            "temperature": request.temperature if request.temperature is not None else self.config.temperature,
            "max_tokens": request.max_tokens if request.max_tokens is not None else self.config.max_tokens,
        }

    async def generate(self, request: LLMRequest) -> LLMReply:
        if not self.config.cloud_api_key:
            raise LLMProviderError("OPENAI_API_KEY is not set")
        url = f"{self.config.cloud_base_url}/chat/completions"
        body = await self._post(url, self.build_payload(request), self.config.cloud_timeout)
        choices = body.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            raise LLMProviderError("LLM response missing choices")
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if not content:
            raise LLMProviderError("LLM response missing content")
        return LLMReply(text=str(content), provider=self.name, model=self.config.cloud_model)

    async def _post(self, url: str, payload: dict[str, Any], timeout: float) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.config.cloud_api_key}"}
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, headers=headers, timeout=timeout)
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            parsed = response.json()
        except httpx.HTTPStatusError as exc:
            raise LLMProviderError(f"cloud LLM HTTP error: {exc.response.status_code}") from exc
        except httpx.RequestError as exc:
            raise LLMProviderError(f"Unable to reach cloud LLM: {exc}") from exc
        except ValueError as exc:
            raise LLMProviderError("cloud LLM returned invalid JSON") from exc
        if not isinstance(parsed, dict):
            raise LLMProviderError("cloud LLM returned an unexpected payload")
        return parsed


class FallbackProvider(LLMProvider):
    """Deterministic canned replies; never fails and never touches the network."""

    name: ProviderName = "fallback"

    def __init__(self, assistant_name: str = "JARVIS") -> None:
        self.assistant_name = assistant_name

    def responses(self) -> list[tuple[str, str]]:
        now = datetime.now()
        return [
            ("hello", f"Hello! I'm {self.assistant_name}, your AI assistant. How may I help you today?"),
            ("hi", "Hello! How can I assist you?"),
            ("how are you", "I'm functioning optimally, thank you for asking. How may I assist you?"),
            (
                "what can you do",
                "I can help you with web searches, opening websites, setting timers, controlling smart home "
                "devices, performing calculations, and answering questions. What would you like to do?",
            ),
            ("thank you", "You're welcome! Is there anything else I can help you with?"),
            ("goodbye", "Goodbye! Feel free to call on me anytime you need assistance."),
            ("what time is it", f"The current time is {now.strftime('%I:%M %p').lstrip('0')}."),
            ("what date is it", f"Today is {now.strftime('%A, %B %d, %Y')}."),
        ]

    def respond(self, prompt: str) -> str:
        lowered = prompt.lower()
        for trigger, reply in self.responses():
            if trigger in lowered:
                return reply
        return (
            f'I understand you\'re asking about "{prompt}". While I don\'t have specific information about '
            "that right now, I'm here to help with web searches, opening websites, timers, and basic "
            "assistance. What would you like me to do?"
        )

    async def generate(self, request: LLMRequest) -> LLMReply:
        return LLMReply(text=self.respond(request.prompt), provider=self.name)


@dataclass
class LLMClient:
    """Try each provider once, in order, until one produces a reply."""

    providers: list[LLMProvider]
    fallback: FallbackProvider = field(default_factory=FallbackProvider)
    logger: logging.Logger = field(default=LOGGER, repr=False)
    state: Observable[ProviderState] = field(
        default_factory=lambda: Observable(ProviderState(), name="llm-provider"), init=False
    )

    @property
    def provider_state(self) -> ProviderState:
        return self.state.value

    async def query(self, request: LLMRequest) -> LLMReply:
        for provider in self.providers:
            try:
                reply = await provider.generate(request)
            except LLMProviderError as exc:
                self.logger.warning("[llm] %s provider unavailable: %s", provider.name, exc)
                continue
            self.state.publish(ProviderState(connected=True, active_provider=provider.name))
            return reply
        self.state.publish(ProviderState(connected=False, active_provider="fallback"))
        return await self.fallback.generate(request)

    async def probe(self) -> ProviderState:
        """One-shot startup health check; later queries are not gated by it."""
        local = next((p for p in self.providers if isinstance(p, LocalProvider) and p.name == "local"), None)
        healthy = bool(local and await local.health_check())
        state = ProviderState(connected=healthy, active_provider="local" if healthy else "fallback")
        self.state.publish(state)
        return state


def build_llm_client(
    config: LLMConfig,
    client: httpx.AsyncClient | None = None,
    logger: logging.Logger | None = None,
) -> LLMClient:
    providers: list[LLMProvider] = [LocalProvider(config, client=client, logger=logger)]
    if config.cloud_enabled:
        providers.append(CloudProvider(config, client=client, logger=logger))
    return LLMClient(
        providers=providers,
        fallback=FallbackProvider(config.assistant_name),
        logger=logger or LOGGER,
    )
