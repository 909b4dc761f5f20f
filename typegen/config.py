#!/usr/bin/env python3
"""
typegen/config.py - Environment-based configuration and defaults.

Centralizes output locations, watcher tuning and the plugin-style options
(schema output path, type definitions output path, auto fix).
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv

from typegen.emitter import EmitterConfig
from typegen.logger import ConfigurationError, get_logger, safe_bool, safe_float

LOGGER = get_logger("typegen.config")

# ---------------------------------------------------------------------------
# Defaults (relative to the project root)
# ---------------------------------------------------------------------------
DEFAULT_SCHEMA_OUTPUT = Path(".cache") / "caches" / "typegen" / "schema.json"
DEFAULT_TYPE_DEFS_OUTPUT = Path("node_modules") / "generated" / "types" / "gatsby.ts"
DEFAULT_DEBOUNCE_SECS = 1.0
DOCUMENTS_DIR = "src"


def _env_path(key: str) -> Optional[Path]:
    val = os.environ.get(key, "").strip()
    return Path(val) if val else None


def _resolve(root: Path, p: Path) -> Path:
    return p if p.is_absolute() else (root / p)


@dataclass(frozen=True)
class TypegenOptions:
    """Options for one typegen run.

    Relative paths are resolved against ``root``.
    """

    root: Path
    schema_output_path: Path
    type_defs_output_path: Path
    auto_fix: bool = True
    debounce_secs: float = DEFAULT_DEBOUNCE_SECS
    extra_dirs: Tuple[Path, ...] = ()
    use_polling: bool = False
    emitter: EmitterConfig = field(default_factory=EmitterConfig)

    @property
    def documents_root(self) -> Path:
        return self.root / DOCUMENTS_DIR

    @classmethod
    def from_env(cls, root: Path | str = ".", load_env_file: bool = True, **overrides: Any) -> "TypegenOptions":
        """Build options from ``TYPEGEN_*`` environment variables.

        ``<root>/.env`` is loaded first (without overriding variables that are
        already set). Keyword overrides with a ``None`` value are ignored so
        CLI flags can be passed through unconditionally.
        """
        root_path = Path(root).resolve()
        if load_env_file:
            env_file = root_path / ".env"
            if env_file.exists():
                load_dotenv(env_file, override=False)

        schema_out = _env_path("TYPEGEN_SCHEMA_OUTPUT") or DEFAULT_SCHEMA_OUTPUT
        typedefs_out = _env_path("TYPEGEN_TYPEDEFS_OUTPUT") or DEFAULT_TYPE_DEFS_OUTPUT
        auto_fix = safe_bool(os.environ.get("TYPEGEN_AUTO_FIX"), True, LOGGER, "TYPEGEN_AUTO_FIX")
        debounce = safe_float(
            os.environ.get("TYPEGEN_DEBOUNCE_SECS"), DEFAULT_DEBOUNCE_SECS, LOGGER, "TYPEGEN_DEBOUNCE_SECS"
        )
        use_polling = safe_bool(os.environ.get("TYPEGEN_USE_POLLING"), False, LOGGER, "TYPEGEN_USE_POLLING")
        extra_raw = os.environ.get("TYPEGEN_EXTRA_DIRS", "").strip()
        extra_dirs = tuple(Path(p.strip()) for p in extra_raw.split(",") if p.strip())

        values: Dict[str, Any] = {
            "schema_output_path": schema_out,
            "type_defs_output_path": typedefs_out,
            "auto_fix": auto_fix,
            "debounce_secs": debounce,
            "extra_dirs": extra_dirs,
            "use_polling": use_polling,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        opts = cls(root=root_path, **values)
        return opts.normalized()

    def normalized(self) -> "TypegenOptions":
        """Resolve relative paths and validate values."""
        if self.debounce_secs < 0:
            raise ConfigurationError(f"debounce must be >= 0, got {self.debounce_secs}")
        schema_out = _resolve(self.root, Path(self.schema_output_path)).resolve()
        typedefs_out = _resolve(self.root, Path(self.type_defs_output_path)).resolve()
        if schema_out == typedefs_out:
            raise ConfigurationError(
                "schema output and type definitions output must differ", path=schema_out
            )
        return replace(
            self,
            schema_output_path=schema_out,
            type_defs_output_path=typedefs_out,
            extra_dirs=tuple(_resolve(self.root, Path(d)).resolve() for d in self.extra_dirs),
        )


__all__ = [
    "DEFAULT_SCHEMA_OUTPUT",
    "DEFAULT_TYPE_DEFS_OUTPUT",
    "DEFAULT_DEBOUNCE_SECS",
    "DOCUMENTS_DIR",
    "TypegenOptions",
]
