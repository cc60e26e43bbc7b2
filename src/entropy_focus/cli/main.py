# src/entropy_focus/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds the core, loads persisted state, then runs:
- the session clock as a background asyncio task,
- the console REPL in the foreground (optional).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..cli.bootstrap import create_controller, load_state
from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier, run_console_loop
from ..core.controller import FocusController
from ..logging_setup import setup_logging
from ..session.clock import run_session_clock

logger = logging.getLogger(__name__)


async def _shutdown(controller: FocusController, clock_task: asyncio.Task[None]) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    clock_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await clock_task

    try:
        await controller.drain()
    except Exception:
        logger.exception("Failed to flush pending writes.")

    store = controller.store
    try:
        if store is not None and hasattr(store, "close"):
            store.close()
    except Exception:
        logger.debug("Store close failed.", exc_info=True)


async def run_app(settings) -> None:
    controller = create_controller(settings=settings)
    await load_state(controller)

    clock_task = asyncio.create_task(
        run_session_clock(
            controller,
            ConsoleNotifier(),
            interval_seconds=settings.clock_interval_seconds,
            auto_advance=settings.auto_advance,
        )
    )

    try:
        if settings.console_enabled:
            await run_console_loop(controller)
        else:
            logger.info("Console disabled. Running the session clock only. Press Ctrl+C to stop.")
            await asyncio.Event().wait()
    finally:
        await _shutdown(controller, clock_task)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/entropy")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "entropy"))

    try:
        asyncio.run(run_app(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down...")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
