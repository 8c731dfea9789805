"""Action registry, routing and built-in action handlers."""

from __future__ import annotations

import logging
import urllib.parse
import webbrowser
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .calculator import CalculationError, evaluate, is_allowed_expression
from .config import DEFAULT_SEARCH_URL

if TYPE_CHECKING:  # pragma: no cover
    from .intents import Intent
    from .scheduler import TimerScheduler

LOGGER = logging.getLogger("jarvis-assistant.actions")

UrlOpener = Callable[[str], Any]

SITE_SHORTCUTS: dict[str, str] = {
    "google": "https://google.com",
    "youtube": "https://youtube.com",
    "github": "https://github.com",
    "stackoverflow": "https://stackoverflow.com",
    "reddit": "https://reddit.com",
    "twitter": "https://twitter.com",
    "facebook": "https://facebook.com",
    "linkedin": "https://linkedin.com",
    "gmail": "https://gmail.com",
}

_MS_PER_SECOND = 1000
_MS_PER_MINUTE = 60_000
_MS_PER_HOUR = 3_600_000


@dataclass(frozen=True)
class ActionResult:
    success: bool
    message: str
    data: dict[str, Any] | None = None


ActionHandler = Callable[[dict[str, Any]], Awaitable[ActionResult]]


@dataclass(frozen=True)
class ActionDescriptor:
    name: str
    description: str
    parameters: tuple[str, ...]
    handler: ActionHandler = field(repr=False, compare=False)

    def to_prompt_dict(self) -> dict[str, str]:
        return {
            "slug": self.name,
            "description": self.description,
        }


class ActionRegistry:
    """Map action names to handlers and execute them."""

    def __init__(self) -> None:
        self._actions: dict[str, ActionDescriptor] = {}

    def register(self, descriptor: ActionDescriptor) -> None:
        if descriptor.name in self._actions:
            LOGGER.debug("[actions] Replacing action %s", descriptor.name)
        self._actions[descriptor.name] = descriptor

    def get(self, name: str) -> ActionDescriptor | None:
        return self._actions.get(name)

    def list(self) -> list[ActionDescriptor]:
        return list(self._actions.values())

    def describe_for_prompt(self) -> list[dict[str, str]]:
        return [descriptor.to_prompt_dict() for descriptor in self._actions.values()]

    async def execute(self, name: str, parameters: dict[str, Any] | None = None) -> ActionResult:
        descriptor = self._actions.get(name)
        if descriptor is None:
            LOGGER.info("[actions] Unknown action requested: %s", name)
            return ActionResult(success=False, message=f"Unknown action: {name}")
        result = await descriptor.handler(dict(parameters or {}))
        LOGGER.debug("[actions] %s -> success=%s message=%s", name, result.success, result.message)
        return result

    async def execute_intent(self, intent: Intent) -> ActionResult:
        return await self.execute(intent.name, intent.parameters)


def resolve_url(target: str) -> str:
    """Expand a shorthand site name or bare host into a full URL."""
    value = target.strip()
    if value.startswith(("http://", "https://")):
        return value
    return SITE_SHORTCUTS.get(value.lower(), f"https://{value}")


def timer_milliseconds(duration: int, unit: str) -> int:
    lowered = unit.lower()
    if "sec" in lowered:
        return duration * _MS_PER_SECOND
    if "hour" in lowered or "hr" in lowered:
        return duration * _MS_PER_HOUR
    return duration * _MS_PER_MINUTE


def _parse_duration(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return None


class BuiltinActions:
    """Handlers for the actions every assistant ships with."""

    def __init__(
        self,
        scheduler: TimerScheduler | None = None,
        open_url: UrlOpener | None = None,
        search_url: str = DEFAULT_SEARCH_URL,
    ) -> None:
        self.scheduler = scheduler
        self._open_url = open_url or webbrowser.open
        self.search_url = search_url

    def descriptors(self) -> list[ActionDescriptor]:
        return [
            ActionDescriptor("open_url", "Open a URL in a new browser tab", ("url",), self.open_url),
            ActionDescriptor("web_search", "Perform a web search", ("query",), self.web_search),
            ActionDescriptor("set_timer", "Set a timer for specified duration", ("duration", "unit"), self.set_timer),
            ActionDescriptor("calculate", "Perform mathematical calculations", ("expression",), self.calculate),
            ActionDescriptor("get_weather", "Get current weather information", ("location",), self.get_weather),
            ActionDescriptor(
                "smart_home_control", "Control smart home devices", ("action", "device"), self.smart_home_control
            ),
        ]

    def _launch(self, url: str) -> None:
        try:
            self._open_url(url)
        except Exception as exc:
            LOGGER.warning("[actions] Failed to open %s: %s", url, exc)

    async def open_url(self, params: dict[str, Any]) -> ActionResult:
        target = params.get("url") or params.get("site") or params.get("website")
        if not target or not str(target).strip():
            return ActionResult(success=False, message="No URL provided")
        url = resolve_url(str(target))
        self._launch(url)
        return ActionResult(success=True, message=f"Opening {url}", data={"url": url})

    async def web_search(self, params: dict[str, Any]) -> ActionResult:
        query = params.get("query")
        if not query or not str(query).strip():
            return ActionResult(success=False, message="No search query provided")
        query = str(query)
        url = f"{self.search_url}{urllib.parse.quote(query, safe='')}"
        self._launch(url)
        return ActionResult(success=True, message=f'Searching for "{query}"', data={"query": query, "url": url})

    async def set_timer(self, params: dict[str, Any]) -> ActionResult:
        duration = _parse_duration(params.get("duration"))
        unit = str(params.get("unit") or "minutes")
        if not duration or duration <= 0:
            return ActionResult(success=False, message="Invalid timer duration")
        milliseconds = timer_milliseconds(duration, unit)
        if self.scheduler is not None:
            try:
                self.scheduler.start_timer(milliseconds, duration, unit)
            except (RuntimeError, ValueError) as exc:
                LOGGER.warning("[actions] Unable to schedule timer: %s", exc)
                return ActionResult(success=False, message="I couldn't schedule that timer")
        return ActionResult(
            success=True,
            message=f"Timer set for {duration} {unit}",
            data={"duration": duration, "unit": unit, "milliseconds": milliseconds},
        )

    async def calculate(self, params: dict[str, Any]) -> ActionResult:
        expression = params.get("expression")
        if not expression or not str(expression).strip():
            return ActionResult(success=False, message="No expression provided")
        expression = str(expression).strip()
        if not is_allowed_expression(expression):
            return ActionResult(success=False, message="Invalid expression")
        try:
            result = evaluate(expression)
        except CalculationError as exc:
            LOGGER.debug("[actions] Calculation failed for %r: %s", expression, exc)
            return ActionResult(success=False, message="Invalid mathematical expression")
        return ActionResult(
            success=True,
            message=f"{expression} = {result}",
            data={"expression": expression, "result": result},
        )

    async def get_weather(self, params: dict[str, Any]) -> ActionResult:
        location = params.get("location") or "current location"
        return ActionResult(
            success=True,
            message=(
                f"I'd need to connect to a weather service to get the current weather for {location}. "
                "This feature will be available with API integration."
            ),
        )

    async def smart_home_control(self, params: dict[str, Any]) -> ActionResult:
        action = params.get("action")
        device = params.get("device")
        return ActionResult(
            success=True,
            message=(
                f"I would {action} the {device} if connected to a smart home system. "
                "This requires Home Assistant or similar integration."
            ),
            data={"action": action, "device": device},
        )


def register_default_actions(
    registry: ActionRegistry,
    scheduler: TimerScheduler | None = None,
    open_url: UrlOpener | None = None,
    search_url: str = DEFAULT_SEARCH_URL,
) -> BuiltinActions:
    builtins = BuiltinActions(scheduler=scheduler, open_url=open_url, search_url=search_url)
    for descriptor in builtins.descriptors():
        registry.register(descriptor)
    return builtins
