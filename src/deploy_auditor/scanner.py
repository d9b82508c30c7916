"""Tree scanner: enumerates every file under an application root."""

import os
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .errors import ScanError


DEFAULT_SKIP_DIRS = frozenset({".git", "node_modules", "__pycache__"})


@dataclass(frozen=True)
class FileRecord:
    """A scanned file. Content is read from disk on first access only."""

    path: Path
    relative_path: str
    size: int

    @cached_property
    def content(self) -> bytes:
        return self.path.read_bytes()

    @cached_property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="ignore")

    @property
    def extension(self) -> str:
        return self.path.suffix.lower()

    @property
    def name(self) -> str:
        return self.path.name

    @cached_property
    def line_count(self) -> int:
        return len(self.text.split("\n"))


def _check_root(root: Path) -> None:
    if not root.exists():
        raise ScanError(f"Scan root does not exist: {root}")
    if not root.is_dir():
        raise ScanError(f"Scan root is not a directory: {root}")
    if not os.access(root, os.R_OK | os.X_OK):
        raise ScanError(f"Scan root is not readable: {root}")


def _walk(
    root: Path,
    extensions: Optional[frozenset[str]],
    skip_dirs: frozenset[str],
) -> Iterator[FileRecord]:
    # Explicit stack; entries pushed in reverse so pops come out in name order.
    stack: list[tuple[Path, bool]] = [(root, True)]
    while stack:
        current, is_dir = stack.pop()
        if is_dir:
            try:
                with os.scandir(current) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError:
                # Unreadable subdirectory: skip it, keep walking
                continue
            children = []
            for entry in entries:
                if entry.is_dir(follow_symlinks=False):
                    if entry.name in skip_dirs:
                        continue
                    children.append((Path(entry.path), True))
                elif entry.is_file():
                    children.append((Path(entry.path), False))
            stack.extend(reversed(children))
            continue

        if extensions is not None and current.suffix.lower() not in extensions:
            continue
        try:
            size = current.stat().st_size
        except OSError:
            continue
        yield FileRecord(
            path=current,
            relative_path=current.relative_to(root).as_posix(),
            size=size,
        )


def scan_tree(
    root: str | Path,
    extensions: Optional[Iterable[str]] = None,
    skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS,
) -> Iterator[FileRecord]:
    """Walk `root` depth-first and yield a FileRecord per file.

    The root is validated immediately, so a missing or unreadable root raises
    ScanError at call time rather than on first iteration. Each call walks the
    tree from scratch. Symlink cycles are not handled; symlinked directories
    are not descended into.

    Args:
        root: Directory to scan.
        extensions: Optional set of lowercase suffixes (".php") to keep.
        skip_dirs: Directory names never descended into.
    """
    root = Path(root)
    _check_root(root)
    ext_filter = frozenset(e.lower() for e in extensions) if extensions is not None else None
    return _walk(root, ext_filter, frozenset(skip_dirs))
