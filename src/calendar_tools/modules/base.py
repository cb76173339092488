"""Abstract base class for tool modules."""

from __future__ import annotations

import abc
from typing import Any

from pydantic import BaseModel


class Module(abc.ABC):
    """Abstract base class for tool modules.

    A module owns one domain's MCP tools and the collaborators they need.
    The server validates the module's config section against
    ``config_schema``, calls ``on_startup``, then ``register_tools``.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Unique module name (e.g., 'calendar')."""
        ...

    @property
    @abc.abstractmethod
    def config_schema(self) -> type[BaseModel]:
        """Pydantic model class for this module's configuration."""
        ...

    @property
    @abc.abstractmethod
    def dependencies(self) -> list[str]:
        """Names of modules this module depends on."""
        ...

    @abc.abstractmethod
    async def register_tools(self, mcp: Any, config: Any) -> None:
        """Register MCP tools on the FastMCP server."""
        ...

    @abc.abstractmethod
    async def on_startup(self, config: Any) -> None:
        """Build the module's collaborators from its validated configuration."""
        ...

    @abc.abstractmethod
    async def on_shutdown(self) -> None:
        """Called during server shutdown."""
        ...
