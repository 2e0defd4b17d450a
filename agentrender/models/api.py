"""API request schemas and the node input derived from them."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field

from agentrender.models.enums import ModelProvider


class ModelSelection(BaseModel):
    """Model requested by the client.  Passed through to the agent untouched."""

    provider: ModelProvider
    name: str


class InvokeMessage(BaseModel):
    content: str


class InvokeRequest(BaseModel):
    """Body of ``POST /api/invoke``."""

    id: str
    agent_id: str = Field(default="default", validation_alias=AliasChoices("agentId", "agent_id"))
    message: InvokeMessage
    model: ModelSelection | None = None


class ChatInput(BaseModel):
    """Input handed to an agent node's ``execute``."""

    query: str
    model: ModelSelection | None = None

    @classmethod
    def from_request(cls, request: InvokeRequest) -> ChatInput:
        return cls(query=request.message.content, model=request.model)
