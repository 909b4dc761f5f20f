"""Shared logger and tuning constants for the watch engine."""

from __future__ import annotations

import os

from typegen.logger import get_logger, safe_float


def build_logger():
    """Create the watch engine logger."""
    return get_logger("typegen.watch")


LOGGER = build_logger()

# Debounce interval for file system events
DELAY_SECS = safe_float(os.environ.get("TYPEGEN_DEBOUNCE_SECS"), 1.0, LOGGER, "TYPEGEN_DEBOUNCE_SECS")
