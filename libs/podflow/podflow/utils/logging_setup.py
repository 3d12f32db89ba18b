"""Logging initialization for the API, the worker and local scripts."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from podflow.config import LoggingConfig, Settings

# Client libraries that log every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "anthropic")


def _log_file_path(cfg: LoggingConfig, log_dir: str, component: str | None) -> Path | None:
    if not cfg.file:
        return None
    name = str(cfg.file).replace("{component}", component or "podflow")
    path = Path(name)
    if not path.is_absolute():
        path = Path(log_dir) / path
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def _build_handlers(settings: Settings, component: str | None) -> list[logging.Handler]:
    cfg = settings.logging
    formatter = logging.Formatter(fmt=str(cfg.format), datefmt=str(cfg.datefmt))

    handlers: list[logging.Handler] = []
    if cfg.console:
        handlers.append(logging.StreamHandler())

    path = _log_file_path(cfg, settings.log_dir, component)
    if path is not None:
        handlers.append(
            RotatingFileHandler(
                path,
                maxBytes=int(cfg.max_bytes),
                backupCount=int(cfg.backup_count),
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def setup_logging(settings: Settings, *, component: str | None = None) -> None:
    """Attach handlers to the `podflow` logger tree.

    `component` ("api", "worker", ...) fills a `{component}` placeholder in
    LOG_FILE so each process can write its own file. Framework loggers such
    as uvicorn are left alone. Calling this twice is a no-op.
    """
    root = logging.getLogger("podflow")
    if getattr(root, "_podflow_configured", False):
        return

    level = getattr(logging, str(settings.logging.level or "INFO").upper(), logging.INFO)
    root.setLevel(level)
    root.handlers = _build_handlers(settings, component)
    root.propagate = False

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    setattr(root, "_podflow_configured", True)
    root.debug("logging configured (component=%s, level=%s)", component, logging.getLevelName(level))
