"""Structured logging utility for typegen.

Text output appends the ``phase``/``file`` context of a record so failures
stay attributable without switching to JSON; ``get_logger(json_format=True)``
emits one JSON object per line instead. Also hosts the error taxonomy used by
the watch engine.
"""
import logging
import json
import os
import sys
import traceback
from typing import Any, Dict, Optional
from datetime import datetime, timezone

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_log_level_str = os.environ.get("LOG_LEVEL", "INFO").upper()
_log_level = getattr(logging, _log_level_str, logging.INFO)

# Cache loggers to avoid repeated lookups
_logger_cache: Dict[str, logging.Logger] = {}


def _context_of(record: logging.LogRecord) -> Dict[str, Any]:
    return getattr(record, 'extra_fields', None) or {}


class ContextFormatter(logging.Formatter):
    """Plain-text formatter: ``<line> [phase=... file=...]``."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        ctx = _context_of(record)
        if not ctx:
            return line
        return f"{line} [" + " ".join(f"{k}={v}" for k, v in ctx.items()) + "]"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, context fields merged at the top level."""

    __slots__ = ()

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.filename}:{record.lineno}",
        }
        log_data.update(_context_of(record))

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str)


def _stdout_handler(formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    return handler


logging.basicConfig(level=_log_level, handlers=[_stdout_handler(ContextFormatter(LOG_FORMAT))])


def get_logger(name: str, json_format: bool = False) -> logging.Logger:
    """Get a typegen logger.

    Args:
        name: Logger name (typically __name__)
        json_format: If True, the logger stops propagating to the root text
            handler and writes JSON lines to stdout instead.
    """
    cache_key = f"{name}:{json_format}"
    if cache_key in _logger_cache:
        return _logger_cache[cache_key]

    logger = logging.getLogger(name)
    logger.setLevel(_log_level)

    if json_format and not any(isinstance(h.formatter, JSONFormatter) for h in logger.handlers):
        logger.addHandler(_stdout_handler(JSONFormatter()))
        logger.propagate = False

    _logger_cache[cache_key] = logger
    return logger


class ContextLogger:
    """Binds ``phase``/``file`` context to every message of a logger.

    The context travels as ``record.extra_fields`` and is rendered by both
    :class:`ContextFormatter` and :class:`JSONFormatter`.
    """

    __slots__ = ('logger', 'context')

    def __init__(self, logger: logging.Logger, **context):
        self.logger = logger
        self.context = context

    def _log(self, level: int, msg: str, exc_info: Any = None, **extra):
        merged = {**self.context, **extra} if extra else self.context
        # stacklevel 3 points the record at whoever called debug()/error()/...
        self.logger.log(level, msg, exc_info=exc_info, extra={'extra_fields': merged}, stacklevel=3)

    def debug(self, msg: str, **extra):
        self._log(logging.DEBUG, msg, **extra)

    def info(self, msg: str, **extra):
        self._log(logging.INFO, msg, **extra)

    def warning(self, msg: str, **extra):
        self._log(logging.WARNING, msg, **extra)

    def error(self, msg: str, exc_info: Any = None, **extra):
        self._log(logging.ERROR, msg, exc_info=exc_info, **extra)

    def exception(self, msg: str, **extra):
        """Log an exception with traceback."""
        self._log(logging.ERROR, msg, exc_info=sys.exc_info(), **extra)

    def isEnabledFor(self, level: int) -> bool:
        return self.logger.isEnabledFor(level)


class TypegenError(Exception):
    """Base exception for all typegen errors.

    ``path`` and ``phase`` identify where the failure happened so reporters
    can print something actionable.
    """

    phase = "typegen"

    def __init__(self, message: str, path: Optional[Any] = None, phase: Optional[str] = None):
        super().__init__(message)
        self.path = path
        if phase is not None:
            self.phase = phase

    def context(self) -> Dict[str, Any]:
        ctx: Dict[str, Any] = {"phase": self.phase}
        if self.path is not None:
            ctx["file"] = str(self.path)
        return ctx


class ExtractionError(TypegenError):
    """The schema could not be introspected or serialized."""
    phase = "extract_schema"


class DiscoveryError(TypegenError):
    """Candidate source files could not be enumerated."""
    phase = "discover_files"


class DocumentParseError(TypegenError):
    """A single source file's graphql documents failed to load."""
    phase = "load_document"


class GenerationError(TypegenError):
    """The type emitter failed."""
    phase = "generate_types"


class AnnotationError(TypegenError):
    """A source file could not be annotated."""
    phase = "annotate"


class ConfigurationError(TypegenError):
    """Error in configuration or environment setup."""
    phase = "configure"


def log_and_reraise(logger: logging.Logger, msg: str, exc: Exception, **context):
    """Log an exception with context and re-raise it.

    Args:
        logger: Logger instance
        msg: Error message
        exc: Exception to log and re-raise
        **context: Additional context fields
    """
    if isinstance(logger, ContextLogger):
        logger.exception(msg, **context)
    else:
        logger.exception(msg, extra={'extra_fields': context})
    raise exc


def safe_float(value: Any, default: float, logger: Optional[logging.Logger] = None, context: str = "") -> float:
    """Safely convert value to float with logging on failure."""
    try:
        if value is None or (isinstance(value, str) and value.strip() == ""):
            return default
        return float(value)
    except (ValueError, TypeError) as e:
        if logger:
            logger.warning(f"Failed to convert {context} to float: {value}", exc_info=e)
        return default


def safe_bool(value: Any, default: bool, logger: Optional[logging.Logger] = None, context: str = "") -> bool:
    """Safely convert value to bool with logging on failure.

    Args:
        value: Value to convert
        default: Default value if conversion fails
        logger: Optional logger for warnings
        context: Context string for log message

    Returns:
        Converted bool or default
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return default
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if s in {"1", "true", "yes", "on"}:
        return True
    if s in {"0", "false", "no", "off"}:
        return False
    if logger:
        logger.warning(f"Failed to convert {context} to bool: {value}")
    return default
