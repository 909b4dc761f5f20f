"""Misc utilities shared across watch_core modules."""

from __future__ import annotations

from typing import Any, Type

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from .config import LOGGER


def safe_print(*args: Any, **kwargs: Any) -> None:
    """Best-effort print that ignores a closed or broken stream."""
    try:
        print(*args, **kwargs)
    except (OSError, ValueError):
        pass


def create_observer(use_polling: bool, observer_cls: Type[BaseObserver] = Observer) -> BaseObserver:
    """Create a watchdog observer based on configuration."""
    if use_polling:
        try:
            from watchdog.observers.polling import PollingObserver
        except ImportError:
            LOGGER.warning("[watch_mode] Polling observer unavailable, falling back to default Observer")
        else:
            LOGGER.info("[watch_mode] Using polling observer for filesystem events")
            return PollingObserver()
    return observer_cls()


__all__ = ["safe_print", "create_observer"]
