#!/usr/bin/env python3
"""
typegen/discovery.py - Enumerate candidate source files.

Mirrors how the site's query compiler finds queries: every .js/.jsx/.ts/.tsx
file under ``<dir>/src`` for the project and each additional theme or plugin
directory, skipping ``node_modules`` and ``.d.ts`` declaration files.
"""
from __future__ import annotations

import fnmatch
import os
from pathlib import Path
from typing import Iterable, List

from typegen.config import DOCUMENTS_DIR
from typegen.logger import DiscoveryError, get_logger

logger = get_logger(__name__)

DOCUMENT_EXTS = {".ts", ".tsx", ".js", ".jsx"}
_EXCLUDE_DIR_NAMES = {"node_modules"}
_EXCLUDE_FILE_GLOBS = ["*.d.ts"]


def is_document_file(p: Path) -> bool:
    """Check if a file may embed graphql documents (by extension)."""
    if p.suffix.lower() not in DOCUMENT_EXTS:
        return False
    base = p.name
    for g in _EXCLUDE_FILE_GLOBS:
        if fnmatch.fnmatch(base, g):
            return False
    return True


def matches_documents_glob(root: Path, p: Path) -> bool:
    """True when ``p`` matches ``<root>/src/**/*.{ts,tsx,js,jsx}``."""
    try:
        rel = p.resolve().relative_to((root / DOCUMENTS_DIR).resolve())
    except ValueError:
        return False
    if any(part in _EXCLUDE_DIR_NAMES for part in rel.parts[:-1]):
        return False
    return is_document_file(p)


def _scan_dir(base: Path) -> List[Path]:
    found: List[Path] = []

    def _onerror(err: OSError) -> None:
        raise DiscoveryError(f"cannot scan {err.filename}: {err.strerror}", path=err.filename)

    for dirpath, dirnames, filenames in os.walk(base, onerror=_onerror):
        dirnames[:] = sorted(d for d in dirnames if d not in _EXCLUDE_DIR_NAMES)
        for fname in filenames:
            p = Path(dirpath) / fname
            if is_document_file(p):
                found.append(p)
    return found


def find_files(
    root: Path,
    extra_dirs: Iterable[Path] = (),
    components: Iterable[Path] = (),
) -> List[Path]:
    """Return the de-duplicated, sorted list of candidate source files.

    ``root/src`` must exist; an extra directory without a ``src`` folder is
    skipped. ``components`` are individual files added as-is (pages
    registered outside ``src``).
    """
    src = root / DOCUMENTS_DIR
    if not src.is_dir():
        raise DiscoveryError(f"source directory not found: {src}", path=src)

    dirs = [src] + [Path(d) / DOCUMENTS_DIR for d in extra_dirs]
    files: List[Path] = []
    for d in dirs:
        if not d.is_dir():
            logger.debug("Skipping missing directory %s", d)
            continue
        files.extend(_scan_dir(d))
    for c in components:
        cp = Path(c)
        if not cp.is_file():
            raise DiscoveryError(f"component file not found: {cp}", path=cp)
        files.append(cp)

    unique = sorted({f.resolve() for f in files})
    logger.debug("Discovered %d candidate files", len(unique))
    return unique


__all__ = ["DOCUMENT_EXTS", "is_document_file", "matches_documents_glob", "find_files"]
