"""Watch command: keep type definitions in sync with sources (daemon mode)."""
from __future__ import annotations

import argparse
import sys

from cli.core import build_run


def cmd_watch(args: argparse.Namespace) -> None:
    """Bootstrap, then regenerate on every schema or source change."""
    from typegen.schema import SchemaHub
    from typegen.watch_core.engine import TypegenEngine
    from typegen.watch_core.utils import safe_print

    options, schema_file, source = build_run(args)
    hub = SchemaHub()
    engine = TypegenEngine(options, source, hub=hub, schema_file=schema_file)

    safe_print(f"Watching {options.documents_root} (schema={schema_file})", file=sys.stderr)
    safe_print(
        f"Types → {options.type_defs_output_path} auto_fix={options.auto_fix} "
        f"debounce={options.debounce_secs}s polling={options.use_polling}",
        file=sys.stderr,
    )
    engine.run_forever()
