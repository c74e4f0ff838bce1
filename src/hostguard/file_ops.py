"""
Safe file operations for hostguard.

Size-limited reads, atomic writes serialised per file, and input collection.
"""

from __future__ import annotations

import fnmatch
import os
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Optional, Union

from .exceptions import FileAccessError
from .logging_config import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


def read_source(filepath: PathLike, max_bytes: Optional[int] = None, encoding: str = "utf-8") -> str:
    """
    Read a source file exactly as stored.

    Line endings are kept (``newline=""``) so that offsets and fixes line up
    with the bytes on disk.

    Raises:
        FileAccessError: If the file is missing, too large, not text or unreadable
    """
    filepath = Path(filepath)
    try:
        size = filepath.stat().st_size
    except FileNotFoundError:
        raise FileAccessError(filepath, "file not found") from None
    except OSError as e:
        raise FileAccessError(filepath, f"OS error: {e}") from e
    if max_bytes is not None and size > max_bytes:
        raise FileAccessError(filepath, f"file is {size} bytes, above the {max_bytes} byte limit")

    try:
        with open(filepath, encoding=encoding, errors="strict", newline="") as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise FileAccessError(filepath, f"Encoding error: {e}") from e
    except OSError as e:
        raise FileAccessError(filepath, f"OS error: {e}") from e


def write_source(filepath: PathLike, text: str, encoding: str = "utf-8") -> None:
    """
    Replace a file's contents atomically.

    The new text goes to a temporary file in the same directory which then
    replaces the original, so readers never see a half-written file.

    Raises:
        FileAccessError: If the file cannot be written
    """
    filepath = Path(filepath)
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{filepath.name}.", suffix=".tmp", dir=filepath.parent)
    except OSError as e:
        raise FileAccessError(filepath, f"OS error: {e}", write=True) from e
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
        try:
            os.chmod(tmp_name, filepath.stat().st_mode & 0o7777)
        except OSError as e:
            logger.debug(f"Could not copy file mode to {filepath}: {e}")
        os.replace(tmp_name, filepath)
    except OSError as e:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise FileAccessError(filepath, f"OS error: {e}", write=True) from e


class FileLocks:
    """One lock per resolved path, so two writers never edit the same file at once."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def get(self, filepath: PathLike) -> threading.Lock:
        key = os.path.realpath(filepath)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, filepath: PathLike) -> Iterator[None]:
        with self.get(filepath):
            yield


def _is_hidden(relative: Path) -> bool:
    return any(part.startswith(".") and part not in (".", "..") for part in relative.parts)


def _excluded(relative: str, patterns: Iterable[str]) -> bool:
    name = relative.rsplit("/", 1)[-1]
    for pattern in patterns:
        if fnmatch.fnmatch(relative, pattern) or fnmatch.fnmatch(name, pattern):
            return True
        # "bin/*" also excludes "src/bin/x.cs"
        if fnmatch.fnmatch(relative, f"*/{pattern}"):
            return True
    return False


def _excluded_dir(relative: str, patterns: Iterable[str]) -> bool:
    """Directory patterns are written ``name/*``; pruning them skips the whole subtree."""
    names = [p[:-2] for p in patterns if p.endswith("/*")]
    return any(fnmatch.fnmatch(relative, n) or fnmatch.fnmatch(relative, f"*/{n}") for n in names)


def collect_files(
    paths: Iterable[PathLike],
    extensions: Iterable[str] = (".cs",),
    exclude_patterns: Iterable[str] = (),
    allow_hidden_files: bool = False,
    follow_symlinks: bool = False,
) -> list[str]:
    """
    Expand input paths into the files to analyse, in a stable order.

    Explicit file arguments are always kept, even when they do not exist,
    so the driver can report them. Directories contribute files with a
    matching extension that are not excluded.
    """
    extensions = tuple(e.lower() for e in extensions)
    exclude_patterns = tuple(exclude_patterns)
    seen: set[str] = set()
    result: list[str] = []

    def add(path: Path) -> None:
        key = str(path)
        if key not in seen:
            seen.add(key)
            result.append(key)

    for raw in paths:
        root = Path(raw)
        if not root.is_dir():
            add(root)
            continue
        found = []
        for dirpath, dirnames, filenames in os.walk(root, followlinks=follow_symlinks):
            base = Path(dirpath)
            dirnames.sort()
            kept = []
            for d in dirnames:
                rel = (base / d).relative_to(root)
                if not allow_hidden_files and _is_hidden(rel):
                    continue
                if _excluded_dir(rel.as_posix(), exclude_patterns):
                    continue
                kept.append(d)
            dirnames[:] = kept
            for filename in sorted(filenames):
                path = base / filename
                rel = path.relative_to(root)
                if not filename.lower().endswith(extensions):
                    continue
                if not allow_hidden_files and _is_hidden(rel):
                    continue
                if path.is_symlink() and not follow_symlinks:
                    continue
                if _excluded(rel.as_posix(), exclude_patterns):
                    continue
                found.append(path)
        for path in found:
            add(path)
    logger.debug(f"Collected {len(result)} file(s)")
    return result
