"""Generate command: one-shot schema extraction and type generation."""
from __future__ import annotations

import argparse
import json
import sys

from cli.core import build_run


def cmd_generate(args: argparse.Namespace) -> None:
    from typegen.logger import GenerationError
    from typegen.watch_core.engine import TypegenEngine

    options, _schema_file, source = build_run(args)
    engine = TypegenEngine(options, source)
    ok = engine.run_once()
    if not ok:
        raise GenerationError("type generation failed", path=options.type_defs_output_path)
    json.dump(
        {
            "ok": True,
            "schema": str(options.schema_output_path),
            "types": str(options.type_defs_output_path),
            "documents": len(engine.tracker),
            "files": len(engine.files),
        },
        sys.stdout,
    )
    sys.stdout.write("\n")
