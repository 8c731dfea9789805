"""
JARVIS - conversational assistant core

This is the root package for JARVIS, containing the orchestration core that
turns an utterance into a local action or a language-model reply.

Core modules:
- utils: Environment parsing helpers
- assistant: Dialog history, intent rules, actions, LLM client and turn pipeline
"""

__version__ = "0.3.0"
