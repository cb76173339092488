"""FastMCP server assembly for calendar tools."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from fastmcp import FastMCP

from calendar_tools.config import ServerConfig, load_config
from calendar_tools.core.logging import configure_logging
from calendar_tools.modules.calendar.module import CalendarModule
from calendar_tools.modules.calendar.store import CalendarStore

logger = logging.getLogger(__name__)


@dataclass
class CalendarServer:
    config: ServerConfig
    mcp: FastMCP
    module: CalendarModule

    async def shutdown(self) -> None:
        await self.module.on_shutdown()
        logger.info("Server %s stopped", self.config.name)


async def create_server(
    config_dir: Path,
    *,
    store: CalendarStore | None = None,
) -> CalendarServer:
    """Load config, configure logging, and register the calendar tools.

    ``store`` overrides the Google store built from ``[calendar].access_token``.
    """
    config = load_config(config_dir)
    configure_logging(
        level=config.logging.level,
        fmt=config.logging.format,
        log_file=Path(config.logging.log_file) if config.logging.log_file else None,
        server_name=config.name,
    )

    mcp = FastMCP(config.name)
    module = CalendarModule(store=store)
    await module.on_startup(config.calendar)
    await module.register_tools(mcp, config.calendar)

    logger.info(
        "Server %s ready (calendar_id=%s)", config.name, config.calendar.calendar_id
    )
    return CalendarServer(config=config, mcp=mcp, module=module)
