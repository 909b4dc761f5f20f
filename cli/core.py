"""Shared helpers for CLI commands."""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Tuple

# Ensure project root is on sys.path (fallback for development mode)
try:
    import typegen  # noqa: F401
except ImportError:
    ROOT_DIR = Path(__file__).resolve().parent.parent
    if str(ROOT_DIR) not in sys.path:
        sys.path.insert(0, str(ROOT_DIR))

from typegen.config import TypegenOptions
from typegen.logger import ConfigurationError
from typegen.schema import SDLFileSchemaSource

DEFAULT_SCHEMA_FILE = "schema.graphql"


def resolve_schema_file(args: argparse.Namespace, root: Path) -> Path:
    """Upstream schema: --schema, then $TYPEGEN_SCHEMA, then <root>/schema.graphql."""
    raw = getattr(args, "schema", None) or os.environ.get("TYPEGEN_SCHEMA") or DEFAULT_SCHEMA_FILE
    p = Path(raw)
    if not p.is_absolute():
        p = root / p
    if not p.is_file():
        raise ConfigurationError(f"schema file not found: {p}", path=p)
    return p.resolve()


def build_options(args: argparse.Namespace) -> TypegenOptions:
    root = Path(getattr(args, "path", None) or ".").resolve()
    auto_fix = False if getattr(args, "no_auto_fix", False) else None
    extra = getattr(args, "extra_dir", None)
    return TypegenOptions.from_env(
        root,
        schema_output_path=getattr(args, "schema_output", None),
        type_defs_output_path=getattr(args, "typedefs_output", None),
        auto_fix=auto_fix,
        debounce_secs=getattr(args, "debounce", None),
        extra_dirs=tuple(Path(d) for d in extra) if extra else None,
        use_polling=True if getattr(args, "polling", False) else None,
    )


def build_run(args: argparse.Namespace) -> Tuple[TypegenOptions, Path, SDLFileSchemaSource]:
    options = build_options(args)
    schema_file = resolve_schema_file(args, options.root)
    return options, schema_file, SDLFileSchemaSource(schema_file)
