#!/usr/bin/env python3
"""Main entry point for the karaoke companion."""

from __future__ import annotations

import asyncio
import json
import logging
import logging.config
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from karaoke_companion.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from karaoke_companion.config.container import Container
    from karaoke_companion.config.settings import Settings

_LOGGING_CONFIG_PATH = Path(__file__).resolve().parents[2] / "logging_config.json"


def setup_logging(log_level: str = "INFO") -> None:
    resolved_level = getattr(logging, log_level.upper(), logging.INFO)

    try:
        with open(_LOGGING_CONFIG_PATH) as f:
            config = json.load(f)
        logging.config.dictConfig(config)
    except (FileNotFoundError, json.JSONDecodeError, ValueError):
        logging.basicConfig(
            level=resolved_level,
            format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.warning(LogTemplates.LOGGING_CONFIG_FALLBACK, _LOGGING_CONFIG_PATH)

    logging.getLogger().setLevel(resolved_level)


async def start(settings: Settings) -> Container:
    """Build the container, open the database and load the active session.

    Loading the session publishes ``SessionLoaded``, which lets the hosted
    session lifecycle reconnect to a session hosted before the restart.
    """
    from karaoke_companion.config.container import create_container

    container = create_container(settings)
    await container.initialize()
    await container.session_service.load_session()
    return container


async def run(settings: Settings, stop: asyncio.Event | None = None) -> None:
    stop = stop or asyncio.Event()
    container = await start(settings)
    try:
        await stop.wait()
    finally:
        await container.shutdown()


def main() -> int:
    from karaoke_companion.config.settings import get_settings

    settings = get_settings()
    setup_logging(settings.log_level)

    logger = logging.getLogger(__name__)
    logger.info(LogTemplates.APP_STARTING, settings.environment)

    try:
        asyncio.run(run(settings))
        logger.info(LogTemplates.APP_STOPPED)
        return 0
    except KeyboardInterrupt:
        logger.info(LogTemplates.APP_KEYBOARD_INTERRUPT)
        return 0
    except Exception as e:
        logger.exception(LogTemplates.APP_FATAL_ERROR, e)
        return 1


def cli() -> None:
    """Console script entry point (used by pyproject.toml [project.scripts])."""
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover
