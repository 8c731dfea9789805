"""Tests for environment-driven configuration."""

from __future__ import annotations

from jarvis.assistant.config import (
    DEFAULT_LLM_ENDPOINT,
    DEFAULT_SEARCH_URL,
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_WAKE_WORDS,
    AssistantConfig,
)
from jarvis.utils import parse_bool, parse_float, parse_int, split_csv


class TestDefaults:
    def test_defaults(self):
        config = AssistantConfig.from_env({"JARVIS_HOSTNAME": "desk"})
        assert config.assistant_name == "JARVIS"
        assert config.wake_words == DEFAULT_WAKE_WORDS
        assert config.history_limit == 20
        assert config.recent_turns == 6
        assert config.greeting == "JARVIS online. How may I assist you today?"
        assert config.system_prompt == DEFAULT_SYSTEM_PROMPT.format(name="JARVIS")
        assert config.search_url == DEFAULT_SEARCH_URL
        assert config.log_transcripts is True
        assert config.llm.endpoint == DEFAULT_LLM_ENDPOINT
        assert config.llm.max_tokens == 150
        assert config.llm.temperature == 0.7
        assert config.llm.cloud_enabled is False
        assert config.mqtt.host is None
        assert config.mqtt.topic_base == "jarvis/desk"
        assert config.history_topic == "jarvis/desk/history"
        assert config.provider_topic == "jarvis/desk/provider"


class TestOverrides:
    def test_assistant_overrides(self):
        config = AssistantConfig.from_env(
            {
                "JARVIS_HOSTNAME": "desk",
                "JARVIS_NAME": "FRIDAY",
                "JARVIS_WAKE_WORDS": "Hey Friday, friday",
                "JARVIS_HISTORY_LIMIT": "8",
                "JARVIS_RECENT_TURNS": "0",
                "JARVIS_GREETING": "",
                "JARVIS_LOG_TRANSCRIPTS": "off",
            }
        )
        assert config.assistant_name == "FRIDAY"
        assert config.wake_words == ("hey friday", "friday")
        assert config.history_limit == 8
        assert config.recent_turns == 1
        assert config.greeting is None
        assert "You are FRIDAY" in config.system_prompt
        assert config.llm.assistant_name == "FRIDAY"
        assert config.log_transcripts is False

    def test_llm_overrides(self):
        config = AssistantConfig.from_env(
            {
                "JARVIS_HOSTNAME": "desk",
                "JARVIS_LLM_ENDPOINT": "http://gpu-box:8080/v1/complete/",
                "JARVIS_LLM_MAX_TOKENS": "bogus",
                "JARVIS_LLM_TEMPERATURE": "0.2",
                "OPENAI_API_KEY": "  sk-test ",
                "OPENAI_BASE_URL": "https://proxy.example/v1/",
            }
        )
        assert config.llm.endpoint == "http://gpu-box:8080/v1/complete"
        assert config.llm.max_tokens == 150
        assert config.llm.temperature == 0.2
        assert config.llm.cloud_api_key == "sk-test"
        assert config.llm.cloud_enabled
        assert config.llm.cloud_base_url == "https://proxy.example/v1"

    def test_system_prompt_file(self, tmp_path):
        prompt_file = tmp_path / "prompt.txt"
        prompt_file.write_text("  Custom prompt from file.\n", encoding="utf-8")
        config = AssistantConfig.from_env({"JARVIS_HOSTNAME": "desk", "JARVIS_SYSTEM_PROMPT_FILE": str(prompt_file)})
        assert config.system_prompt == "Custom prompt from file."

    def test_inline_prompt_wins_over_file(self, tmp_path):
        prompt_file = tmp_path / "prompt.txt"
        prompt_file.write_text("From file", encoding="utf-8")
        config = AssistantConfig.from_env(
            {
                "JARVIS_HOSTNAME": "desk",
                "JARVIS_SYSTEM_PROMPT": "Inline",
                "JARVIS_SYSTEM_PROMPT_FILE": str(prompt_file),
            }
        )
        assert config.system_prompt == "Inline"

    def test_mqtt(self):
        config = AssistantConfig.from_env(
            {
                "JARVIS_HOSTNAME": "desk",
                "MQTT_HOST": "broker",
                "MQTT_PORT": "8883",
                "MQTT_USER": "user",
                "MQTT_PASS": "pass",
                "MQTT_TLS_ENABLED": "true",
                "JARVIS_TOPIC_BASE": "home/jarvis/",
            }
        )
        assert config.mqtt.host == "broker"
        assert config.mqtt.port == 8883
        assert config.mqtt.username == "user"
        assert config.mqtt.password == "pass"
        assert config.mqtt.tls_enabled is True
        assert config.mqtt.topic_base == "home/jarvis"


class TestParsers:
    def test_parse_bool(self):
        assert parse_bool("Yes") is True
        assert parse_bool("0") is False
        assert parse_bool(None, True) is True

    def test_parse_numbers(self):
        assert parse_int("12", 0) == 12
        assert parse_int("x", 3) == 3
        assert parse_float("1.5", 0.0) == 1.5
        assert parse_float(None, 2.0) == 2.0

    def test_split_csv(self):
        assert split_csv(" a, ,b ,") == ["a", "b"]
        assert split_csv(None) == []
