"""Core building blocks for the typegen watch engine.

Modules:
    config: shared logger and debounce constant
    snapshot: hash-gated schema snapshot store
    documents: in-memory document tracker
    scheduler: debounced regeneration scheduler
    annotator: call-site type annotation rewriter
    handler: watchdog event handler logic
    engine: bootstrap + event wiring
    utils: observer factory and small helpers
"""

from . import config, snapshot, documents, scheduler, annotator, handler, engine, utils

__all__ = [
    "config",
    "snapshot",
    "documents",
    "scheduler",
    "annotator",
    "handler",
    "engine",
    "utils",
]
