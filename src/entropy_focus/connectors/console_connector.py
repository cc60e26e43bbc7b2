# src/entropy_focus/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.controller import FocusController
from ..core.ports import Notification

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleNotifier:
    """Notifier port that prints a banner line to the terminal."""

    def notify(self, notification: Notification) -> None:
        _print_ts(f"[{notification.kind.value.upper()}] {notification.title}: {notification.body}")


async def run_console_loop(controller: FocusController) -> None:
    """
    Interactive REPL. Input is read off the event loop; commands run on it,
    so every intent reaches the controller from one thread.
    """
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        _print_ts(text)

    while True:
        try:
            user_input = (await asyncio.to_thread(input, ">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            # Bare text is a quick-add into the current list.
            user_input = f"/add {user_input}"

        try:
            reply = command_registry.handle(controller, user_input, emit=emit)
        except ValueError as e:
            reply = f"Invalid input: {e}"
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            _print_ts(reply)

    logger.info("Console connector finished.")
