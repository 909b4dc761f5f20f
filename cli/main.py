"""CLI entry point: argparse dispatcher for all subcommands."""
from __future__ import annotations

import argparse
import json
import sys
import traceback


# ---------------------------------------------------------------------------
# Command registry: command name → (module_path, function_name)
# Lazy-imported at dispatch time to keep startup fast.
# ---------------------------------------------------------------------------
COMMANDS = {
    "watch":    ("cli.commands.watch",    "cmd_watch"),
    "generate": ("cli.commands.generate", "cmd_generate"),
    "annotate": ("cli.commands.annotate", "cmd_annotate"),
}


# ---------------------------------------------------------------------------
# Shared argparse helpers
# ---------------------------------------------------------------------------
def _add_run_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("path", nargs="?", default=".", help="Project root")
    p.add_argument("-s", "--schema", help="Upstream schema (SDL or introspection JSON)")
    p.add_argument("--schema-output", help="Where to write the schema snapshot")
    p.add_argument("--typedefs-output", help="Where to write the type definitions")
    p.add_argument("--no-auto-fix", action="store_true", help="Do not annotate call sites")
    p.add_argument("--extra-dir", action="append", help="Additional theme/plugin directory (repeatable)")


# ---------------------------------------------------------------------------
# Parser builder
# ---------------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    from cli._version import __version__

    parser = argparse.ArgumentParser(
        prog="typegen",
        description="Keep GraphQL query types in sync with schema and sources",
    )
    parser.add_argument("--debug", action="store_true", help="Show stack traces on error")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    # watch
    p = sub.add_parser("watch", help="Regenerate types on file changes (daemon)")
    _add_run_args(p)
    p.add_argument("--debounce", type=float, help="Seconds to wait after the last change")
    p.add_argument("--polling", action="store_true", help="Use the polling observer")

    # generate
    p = sub.add_parser("generate", help="Extract schema and generate types once")
    _add_run_args(p)

    # annotate
    p = sub.add_parser("annotate", help="Add query type arguments to call sites")
    p.add_argument("files", nargs="+", help="Source files to rewrite")
    p.add_argument("--check", action="store_true", help="Only report files that would change")

    return parser


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------
def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    entry = COMMANDS.get(args.command)
    if not entry:
        parser.print_help()
        sys.exit(1)

    mod_path, fn_name = entry
    try:
        import importlib
        mod = importlib.import_module(mod_path)
        fn = getattr(mod, fn_name)
        fn(args)
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as exc:
        payload = {"ok": False, "error": str(exc)}
        phase = getattr(exc, "phase", None)
        if phase:
            payload["phase"] = phase
        json.dump(payload, sys.stdout, default=str)
        sys.stdout.write("\n")
        if args.debug:
            traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
