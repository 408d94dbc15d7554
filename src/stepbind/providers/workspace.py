"""Workspace file search and reading helpers shared by providers."""

import asyncio
import logging
import os
import re
from collections.abc import Iterable, Sequence
from fnmatch import fnmatch
from pathlib import Path

from stepbind.core.config.settings import DEFAULT_EXCLUDE_PATTERNS

logger = logging.getLogger(__name__)


def is_excluded(path: Path, root: Path, patterns: Iterable[str]) -> bool:
    """Check ``path`` against glob-style exclude patterns relative to ``root``."""
    try:
        relative = path.relative_to(root).as_posix()
    except ValueError:
        relative = path.as_posix()
    # Leading slash lets "**/bin/**" match a top-level bin folder too
    candidates = (relative, f"/{relative}")
    return any(
        fnmatch(candidate, pattern) for pattern in patterns for candidate in candidates
    )


def glob_regex(pattern: str) -> re.Pattern[str]:
    """Translate a ``Path.glob`` pattern into a regex over relative POSIX paths.

    ``**/`` matches zero or more folders; ``*`` and ``?`` stay within one
    path segment.
    """
    parts: list[str] = []
    index = 0
    while index < len(pattern):
        if pattern.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
        elif pattern.startswith("**", index):
            parts.append(".*")
            index += 2
        elif pattern[index] == "*":
            parts.append("[^/]*")
            index += 1
        elif pattern[index] == "?":
            parts.append("[^/]")
            index += 1
        else:
            parts.append(re.escape(pattern[index]))
            index += 1
    return re.compile("".join(parts))


def _is_excluded_dir(directory: Path, root: Path, patterns: Iterable[str]) -> bool:
    relative = directory.relative_to(root).as_posix()
    # Trailing slash lets "**/bin/**" match the folder itself
    candidates = (f"{relative}/", f"/{relative}/")
    return any(
        fnmatch(candidate, pattern) for pattern in patterns for candidate in candidates
    )


def _walk_files(root: Path, exclude_patterns: Sequence[str]) -> list[Path]:
    """Sorted files under ``root``, never descending into excluded folders."""
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        directory = Path(dirpath)
        dirnames[:] = [
            name
            for name in dirnames
            if not _is_excluded_dir(directory / name, root, exclude_patterns)
        ]
        for name in filenames:
            path = directory / name
            if not is_excluded(path, root, exclude_patterns):
                files.append(path)
    return sorted(files)


def find_files(
    roots: Sequence[Path],
    globs: Sequence[str],
    exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS,
    limit: int | None = None,
) -> list[Path]:
    """Find files under ``roots`` matching any of ``globs``.

    Results are de-duplicated and ordered by root, then glob, then path.
    Search stops once ``limit`` files were collected.
    """
    found: list[Path] = []
    seen: set[Path] = set()
    for root in roots:
        if not root.is_dir():
            logger.debug("Skipping missing workspace root %s", root)
            continue
        candidates = _walk_files(root, exclude_patterns)
        for pattern in globs:
            matcher = glob_regex(pattern)
            for path in candidates:
                if path in seen:
                    continue
                if not matcher.fullmatch(path.relative_to(root).as_posix()):
                    continue
                seen.add(path)
                found.append(path)
                if limit is not None and len(found) >= limit:
                    return found
    return found


async def find_files_async(
    roots: Sequence[Path],
    globs: Sequence[str],
    exclude_patterns: Sequence[str] = DEFAULT_EXCLUDE_PATTERNS,
    limit: int | None = None,
) -> list[Path]:
    """Run :func:`find_files` in a worker thread."""
    return await asyncio.to_thread(find_files, roots, globs, exclude_patterns, limit)


def read_source(path: Path) -> str:
    """Read a source file as text, tolerating a BOM and bad bytes."""
    return path.read_text(encoding="utf-8-sig", errors="replace")


async def read_source_async(path: Path) -> str:
    return await asyncio.to_thread(read_source, path)


def matches_glob(path: Path, roots: Sequence[Path], globs: Sequence[str]) -> bool:
    """Check whether ``path`` would be found by ``globs`` under one of ``roots``."""
    for root in roots:
        try:
            relative = path.relative_to(root)
        except ValueError:
            continue
        posix = relative.as_posix()
        if any(glob_regex(pattern).fullmatch(posix) for pattern in globs):
            return True
    return False
