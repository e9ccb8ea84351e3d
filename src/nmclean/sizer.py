"""Size measurement for discovered target directories.

Measuring is by far the slowest part of a scan, so it only runs when the
caller asks for sizes, and independent targets are measured in parallel.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Iterable, NamedTuple, Optional

logger = logging.getLogger(__name__)

DEFAULT_SIZE_WORKERS = 6


class DirectorySize(NamedTuple):
    """Measured size of a directory tree."""

    size_bytes: int
    file_count: int
    dir_count: int
    partial: bool


def get_directory_size(
    path: Path,
    cancel_event: Optional[threading.Event] = None,
) -> DirectorySize:
    """
    Sum the sizes of all regular files under a directory.

    Symlinks are neither followed nor counted. Entries that cannot be read
    add nothing and mark the result as partial.

    Args:
        path: Directory to measure
        cancel_event: When set, stop early and mark the result as partial

    Returns:
        DirectorySize(size_bytes, file_count, dir_count, partial)
    """
    total_size = 0
    file_count = 0
    dir_count = 0
    partial = False

    stack = [Path(path)]
    while stack:
        if cancel_event is not None and cancel_event.is_set():
            partial = True
            break

        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                for entry in entries:
                    try:
                        if entry.is_file(follow_symlinks=False):
                            total_size += entry.stat(follow_symlinks=False).st_size
                            file_count += 1
                        elif entry.is_dir(follow_symlinks=False):
                            dir_count += 1
                            stack.append(Path(entry.path))
                    except OSError as e:
                        logger.debug("Cannot stat %s: %s", entry.path, e)
                        partial = True
        except OSError as e:
            logger.debug("Cannot read %s: %s", current, e)
            partial = True

    return DirectorySize(total_size, file_count, dir_count, partial)


def measure_sizes(
    paths: Iterable[Path],
    max_workers: int = DEFAULT_SIZE_WORKERS,
    cancel_event: Optional[threading.Event] = None,
    progress_callback: Optional[Callable[[Path, DirectorySize], None]] = None,
) -> dict[Path, DirectorySize]:
    """
    Measure several directories in parallel.

    Args:
        paths: Directories to measure (must not be nested in one another)
        max_workers: Number of parallel workers
        cancel_event: When set, pending measurements are not started
        progress_callback: Optional callback(path, size) as each one finishes

    Returns:
        Dict of path -> DirectorySize. Paths skipped because of
        cancellation are missing from the dict.
    """
    paths = list(paths)
    sizes: dict[Path, DirectorySize] = {}
    if not paths:
        return sizes

    def _measure(p: Path) -> Optional[DirectorySize]:
        if cancel_event is not None and cancel_event.is_set():
            return None
        return get_directory_size(p, cancel_event)

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = {executor.submit(_measure, p): p for p in paths}
        for future in as_completed(futures):
            path = futures[future]
            size = future.result()
            if size is None:
                continue
            sizes[path] = size
            if progress_callback:
                progress_callback(path, size)

    return sizes
