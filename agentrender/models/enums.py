"""Shared enumerations."""

from __future__ import annotations

from enum import StrEnum


class EventType(StrEnum):
    """Wire event types pushed to the client."""

    CONTENT = "message/content"
    UI_UPDATE = "message/ui/update"
    CONTENT_DELTA = "message/content/delta"


class MessageRole(StrEnum):
    AI = "ai"
    USER = "user"


class ModelProvider(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GROQ = "groq"
