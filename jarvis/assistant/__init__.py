"""
Conversational assistant pipeline

This package provides the decision logic for JARVIS:

- Dialog store: Bounded turn history with observable snapshots
- Intent rules: Ordered regular-expression rules and wake-word gating
- Actions: Named action registry with built-in handlers (URLs, search, timers, math)
- LLM client: Local endpoint with cloud and canned-response fallbacks
- Orchestrator: The per-input pipeline tying everything together

Key modules:
- config: Configuration management from environment variables
- dialog: Turn history and system prompt ownership
- intents: Rule-based intent extraction
- actions: Action registry and router
- llm: Provider chain and model output parsing
- orchestrator: Turn pipeline
"""

from __future__ import annotations

__all__ = [
    "config",
    "dialog",
    "intents",
    "actions",
    "llm",
    "orchestrator",
    "mqtt",
]
