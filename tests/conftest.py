"""Shared test fixtures and configuration for the JARVIS test suite.

This module provides reusable fixtures for common test scenarios including:
- LLM configuration objects
- Recording speech and alert sinks
- Fully wired orchestrator components
"""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import Mock

import pytest
from jarvis.assistant.actions import ActionRegistry, register_default_actions
from jarvis.assistant.config import LLMConfig, MqttConfig
from jarvis.assistant.dialog import DialogStore

# ============================================================================
# Pytest Configuration
# ============================================================================


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"


# ============================================================================
# Logging Fixtures
# ============================================================================


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing.

    Returns a Mock with spec=logging.Logger to ensure only valid
    logger methods can be called.
    """
    return Mock(spec=logging.Logger)


# ============================================================================
# Boundary Fakes
# ============================================================================


class RecordingSpeech:
    """Speech output that remembers everything it was asked to say."""

    def __init__(self) -> None:
        self.spoken: list[str] = []
        self.cancelled = 0

    async def speak(self, text: str) -> None:
        self.spoken.append(text)

    def cancel(self) -> None:
        self.cancelled += 1


class RecordingAlerts:
    def __init__(self) -> None:
        self.notifications: list[tuple[str, str]] = []
        self.chimes = 0

    async def notify(self, title: str, body: str) -> None:
        self.notifications.append((title, body))

    async def chime(self) -> None:
        self.chimes += 1


@pytest.fixture
def speech():
    return RecordingSpeech()


@pytest.fixture
def alerts():
    return RecordingAlerts()


@pytest.fixture
def opened_urls():
    return []


@pytest.fixture
def registry(opened_urls):
    """Registry with the built-in actions and a URL opener that records instead of launching."""
    actions = ActionRegistry()
    register_default_actions(actions, open_url=opened_urls.append)
    return actions


@pytest.fixture
def dialog():
    return DialogStore("You are a test assistant.")


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def mqtt_config():
    """Create a basic MQTT configuration for testing."""
    return MqttConfig(
        host="localhost",
        port=1883,
        topic_base="jarvis/test-device",
        username=None,
        password=None,
        tls_enabled=False,
        ca_cert=None,
        cert=None,
        key=None,
    )


@pytest.fixture
def make_llm_config():
    """Factory fixture for creating LLM configs with custom overrides.

    Usage:
        config = make_llm_config(cloud_api_key="key")
    """

    def _create_config(**overrides: Any) -> LLMConfig:
        defaults = {
            "assistant_name": "JARVIS",
            "endpoint": "http://llm.local/api/llm",
            "timeout": 5.0,
            "health_timeout": 1.0,
            "max_tokens": 150,
            "temperature": 0.7,
            "cloud_api_key": None,
            "cloud_base_url": "https://api.openai.com/v1",
            "cloud_model": "gpt-4o-mini",
            "cloud_timeout": 5.0,
        }
        defaults.update(overrides)
        return LLMConfig(**defaults)  # type: ignore[arg-type]

    return _create_config
