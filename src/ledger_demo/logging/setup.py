"""Centralized logging setup for generation runs."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from ledger_demo.logging.json_formatter import StructuredJSONFormatter

_CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_MAX_BYTES = 10 * 1024 * 1024
_BACKUP_COUNT = 5


def configure_logging(
    level: int = logging.INFO,
    log_dir: Path | None = None,
    json_logs: bool = False,
) -> None:
    """
    Configure console logging and optional rotating file outputs.

    Args:
        level: Root log level; ``logging.DEBUG`` when the CLI runs with --debug.
        log_dir: When set, write ``ledger_demo.log`` (and ``ledger_demo.jsonl``
            with ``json_logs``) into this directory.
        json_logs: Emit JSON lines carrying the run ID.
    """
    root = logging.getLogger()
    root.setLevel(level)

    console_handlers = [
        h
        for h in root.handlers
        if isinstance(h, logging.StreamHandler)
        and not isinstance(h, logging.FileHandler)
        and type(h).__name__ != "LogCaptureHandler"
    ]
    if not console_handlers:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        root.addHandler(console)
    for handler in console_handlers:
        handler.setLevel(level)

    # aiohttp is chatty at DEBUG
    logging.getLogger("aiohttp").setLevel(max(level, logging.INFO))
    logging.getLogger("faker").setLevel(logging.WARNING)

    if log_dir is None:
        return

    log_dir.mkdir(parents=True, exist_ok=True)
    existing_targets = {
        getattr(handler, "baseFilename", None)
        for handler in root.handlers
        if hasattr(handler, "baseFilename")
    }

    text_path = str((log_dir / "ledger_demo.log").resolve())
    if text_path not in existing_targets:
        text_handler = logging.handlers.RotatingFileHandler(
            text_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT
        )
        text_handler.setLevel(level)
        text_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        root.addHandler(text_handler)

    if json_logs:
        json_path = str((log_dir / "ledger_demo.jsonl").resolve())
        if json_path not in existing_targets:
            json_handler = logging.handlers.RotatingFileHandler(
                json_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT
            )
            json_handler.setLevel(logging.DEBUG)
            json_handler.setFormatter(StructuredJSONFormatter())
            root.addHandler(json_handler)


__all__ = ["configure_logging"]
