"""MQTT telemetry for dialog history and LLM provider state."""

from __future__ import annotations

import json
import logging
import ssl
import threading
from collections.abc import Callable, Sequence
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

import paho.mqtt.client as mqtt

from .config import MqttConfig
from .dialog import Turn
from .llm import ProviderState

if TYPE_CHECKING:
    from .observable import Observable


class AssistantMqtt:
    """Optional broker connection; every call is a no-op when no host is configured."""

    def __init__(self, config: MqttConfig, logger: logging.Logger | None = None) -> None:
        self.config = config
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._lock = threading.Lock()
        self._connect_listeners: list[Callable[[], None]] = []

    def add_connect_listener(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` after every successful (re)connect; returns a remover."""
        self._connect_listeners.append(callback)

        def _remove() -> None:
            if callback in self._connect_listeners:
                self._connect_listeners.remove(callback)

        return _remove

    def connect(self) -> None:
        if not self.config.host:
            self._logger.debug("[mqtt] No broker configured; telemetry disabled")
            return
        with self._lock:
            if self._client is not None:
                return
            client = self._build_client()
            try:
                client.connect(self.config.host, self.config.port, keepalive=30)
            except Exception as exc:
                self._logger.warning("[mqtt] Failed to connect to %s:%s: %s", self.config.host, self.config.port, exc)
                return
            client.loop_start()
            self._client = client

    def _build_client(self) -> mqtt.Client:
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=f"jarvis-assistant-{self.config.topic_base}",
            clean_session=True,
        )
        if self.config.username:
            client.username_pw_set(self.config.username, self.config.password or "")
        if self.config.tls_enabled:
            client.tls_set(
                ca_certs=self.config.ca_cert or None,
                certfile=self.config.cert or None,
                keyfile=self.config.key or None,
                tls_version=ssl.PROTOCOL_TLS_CLIENT,
            )
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        return client

    def _on_connect(self, _client: Any, _userdata: Any, _flags: Any, reason_code: Any, _properties: Any = None) -> None:
        if getattr(reason_code, "is_failure", False):
            self._logger.warning("[mqtt] Broker refused connection: %s", reason_code)
            return
        self._logger.info("[mqtt] Connected to %s:%s", self.config.host, self.config.port)
        for callback in list(self._connect_listeners):
            try:
                callback()
            except Exception as exc:
                self._logger.error("[mqtt] Connect listener failed: %s", exc, exc_info=True)

    def _on_disconnect(
        self, _client: Any, _userdata: Any, _flags: Any, reason_code: Any, _properties: Any = None
    ) -> None:
        self._logger.info("[mqtt] Disconnected from broker: %s", reason_code)

    def disconnect(self) -> None:
        with self._lock:
            client = self._client
            self._client = None
        if client:
            client.loop_stop()
            client.disconnect()

    def is_connected(self) -> bool:
        client = self._client
        try:
            return bool(client and client.is_connected())
        except Exception:
            return False

    def publish(self, topic: str, payload: str, retain: bool = False, qos: int = 0) -> None:
        client = self._client
        if not client:
            return
        try:
            client.publish(topic, payload=payload, qos=qos, retain=retain)
        except Exception as exc:
            self._logger.debug("[mqtt] Failed to publish to %s: %s", topic, exc)


class StatePublisher:
    """Mirror observable assistant state onto retained MQTT topics.

    Snapshots are only serialized while the broker is connected; the latest
    values are pushed again on every reconnect so retained topics stay current.
    """

    def __init__(self, mqtt_client: AssistantMqtt, history_topic: str, provider_topic: str) -> None:
        self.mqtt = mqtt_client
        self.history_topic = history_topic
        self.provider_topic = provider_topic
        self._history: Observable[tuple[Turn, ...]] | None = None
        self._provider_state: Observable[ProviderState] | None = None
        self._unsubscribers: list[Callable[[], None]] = []

    def publish_history(self, turns: Sequence[Turn]) -> None:
        if not self.mqtt.is_connected():
            return
        payload = json.dumps([turn.to_dict() for turn in turns])
        self.mqtt.publish(self.history_topic, payload, retain=True)

    def publish_provider(self, state: ProviderState) -> None:
        if not self.mqtt.is_connected():
            return
        self.mqtt.publish(self.provider_topic, json.dumps(asdict(state)), retain=True)

    def republish(self) -> None:
        if self._history is not None:
            self.publish_history(self._history.value)
        if self._provider_state is not None:
            self.publish_provider(self._provider_state.value)

    def attach(self, history: Observable[tuple[Turn, ...]], provider_state: Observable[ProviderState]) -> None:
        self.detach()
        self._history = history
        self._provider_state = provider_state
        self._unsubscribers.append(history.subscribe(self.publish_history))
        self._unsubscribers.append(provider_state.subscribe(self.publish_provider))
        self._unsubscribers.append(self.mqtt.add_connect_listener(self.republish))

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self._history = None
        self._provider_state = None
