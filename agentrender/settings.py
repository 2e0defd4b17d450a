"""Service configuration loaded from AGENTRENDER_* environment variables."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AgentRenderSettings(BaseSettings):
    """agentrender settings.

    All fields are read from environment variables with the ``AGENTRENDER_``
    prefix.  For example, ``AGENTRENDER_LOG_LEVEL=DEBUG`` maps to ``log_level``.

    Model-provider credentials are **not** managed here -- agents configure
    their own providers.
    """

    model_config = SettingsConfigDict(
        env_prefix="AGENTRENDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "INFO"

    # -- Server ----------------------------------------------------------------
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000
    graceful_shutdown_timeout: int = 300
    """Seconds to wait for open invocation streams to finish during shutdown."""

    sse_ping_interval: int = 15
    """Seconds between keep-alive comments on an idle event stream."""

    # -- Agents ----------------------------------------------------------------
    agents: dict[str, str] = Field(default_factory=dict)
    """Agent id -> ``module:Class`` import path of an ``AgentNode`` subclass.

    Given as JSON, e.g. ``AGENTRENDER_AGENTS='{"default": "myapp.nodes:Greeter"}'``.
    """

    # -- Build -----------------------------------------------------------------
    execute_method: str = "execute"
    """Name of the node method whose render calls are extracted."""

    render_method: str = "render"
    """Name of the context method that marks a render call site."""


@lru_cache(maxsize=1)
def get_settings() -> AgentRenderSettings:
    """Return a cached settings instance.

    Reads from environment variables and ``.env`` on first call.  Call
    ``get_settings.cache_clear()`` in tests after overriding env vars.
    """
    return AgentRenderSettings()
