"""Annotate command: add generated query types to call sites."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path


def cmd_annotate(args: argparse.Namespace) -> None:
    from typegen.logger import AnnotationError
    from typegen.watch_core.annotator import SourceAnnotator

    annotator = SourceAnnotator()
    changed = []
    for raw in args.files:
        p = Path(raw)
        if args.check:
            try:
                code = p.read_text(encoding="utf-8")
            except OSError as exc:
                raise AnnotationError(f"cannot read {p}: {exc}", path=p) from exc
            if annotator.annotate(code) != code:
                changed.append(str(p))
        elif annotator.annotate_file(p):
            changed.append(str(p))
    json.dump({"ok": not (args.check and changed), "changed": changed}, sys.stdout)
    sys.stdout.write("\n")
    if args.check and changed:
        sys.exit(1)
