"""Depth-first discovery of target directories.

The walker lists each directory once with os.scandir, visits its entries in
name order and asks a PathFilter what to do with each one. Targets are
yielded and never entered, so no reported path can contain another.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Iterator, Optional

from nmclean.filters import DEFAULT_FILTER, EntryKind, PathFilter

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[Path, OSError], None]


def _list_directory(path: Path) -> list[os.DirEntry]:
    """List a directory's entries sorted by name."""
    with os.scandir(path) as entries:
        return sorted(entries, key=lambda entry: entry.name)


def _is_real_directory(entry: os.DirEntry) -> bool:
    """True for directories that are not symlinks."""
    try:
        return entry.is_dir(follow_symlinks=False)
    except OSError:
        return False


def find_target_directories(
    root: Path,
    path_filter: Optional[PathFilter] = None,
    *,
    max_depth: Optional[int] = None,
    on_error: Optional[ErrorCallback] = None,
    cancel_event: Optional[threading.Event] = None,
) -> Iterator[Path]:
    """
    Find target directories under root.

    Uses an explicit stack instead of recursion, so arbitrarily deep trees
    are fine. Symlinks are never followed. The root itself is not
    classified, only what is inside it.

    Args:
        root: Directory to start from
        path_filter: Filter deciding targets and skipped names (default: node_modules)
        max_depth: Deepest level to examine, children of root being level 1.
            None means no limit.
        on_error: Optional callback(path, error) for directories that cannot be listed
        cancel_event: When set, stop before listing the next directory

    Yields:
        Paths to target directories, in pre-order with siblings sorted by name
    """
    path_filter = path_filter or DEFAULT_FILTER
    root = Path(root)

    if max_depth is not None and max_depth <= 0:
        return

    def _open(path: Path) -> Optional[Iterator[os.DirEntry]]:
        try:
            return iter(_list_directory(path))
        except OSError as e:
            logger.warning("Cannot read %s: %s", path, e)
            if on_error:
                on_error(path, e)
            return None

    if cancel_event is not None and cancel_event.is_set():
        return

    first = _open(root)
    if first is None:
        return

    # Each frame holds the remaining entries of one directory and that
    # directory's children depth
    stack: list[tuple[Iterator[os.DirEntry], int]] = [(first, 1)]

    while stack:
        entries, depth = stack[-1]
        entry = next(entries, None)
        if entry is None:
            stack.pop()
            continue

        kind = path_filter.classify(entry.name, _is_real_directory(entry))

        if kind == EntryKind.TARGET:
            yield Path(entry.path)
            continue

        if kind == EntryKind.SKIP:
            continue

        if max_depth is not None and depth >= max_depth:
            continue

        if cancel_event is not None and cancel_event.is_set():
            logger.debug("Traversal cancelled at %s", entry.path)
            return

        children = _open(Path(entry.path))
        if children is not None:
            stack.append((children, depth + 1))
