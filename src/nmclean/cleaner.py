"""Deletion of target directories with per-path outcomes.

Every requested path is revalidated against the filesystem right before it
is deleted; nothing is assumed from the scan that produced it. One path
failing never stops the others.
"""

import logging
import os
import stat
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, Optional

from nmclean.models import CleanOutcome, CleanReport, CleanStatus

logger = logging.getLogger(__name__)

DEFAULT_DELETE_WORKERS = 4

CANCELLED_BEFORE_DELETION = "Cancelled before deletion"


def _is_within(path: Path, root: Path) -> bool:
    """True if path is strictly inside root."""
    return path != root and path.is_relative_to(root)


def _failure(path: str, status: CleanStatus, detail: str) -> CleanOutcome:
    return CleanOutcome(path=path, status=status, detail=detail)


def validate_target(
    path: str,
    allowed_roots: Optional[Iterable[Path]] = None,
    protected_paths: Iterable[Path] = (),
    target_names: Optional[Iterable[str]] = None,
) -> Optional[CleanOutcome]:
    """
    Check that a path may be deleted right now.

    Args:
        path: Absolute path from the request
        allowed_roots: If given, the path must be strictly inside one of these
        protected_paths: Paths that must never be deleted or contained by a deletion
        target_names: If given, the path's final component must be one of these

    Returns:
        A failure CleanOutcome, or None if deletion may proceed
    """
    candidate = Path(path)

    if not candidate.is_absolute():
        return _failure(path, CleanStatus.OTHER_FAILURE, "Not an absolute path")

    if ".." in candidate.parts:
        return _failure(path, CleanStatus.OTHER_FAILURE, "Path contains '..'")

    try:
        info = os.lstat(candidate)
    except FileNotFoundError:
        return _failure(path, CleanStatus.NOT_FOUND, "Path does not exist")
    except PermissionError as e:
        return _failure(path, CleanStatus.PERMISSION_DENIED, f"Permission denied: {e}")
    except OSError as e:
        return _failure(path, CleanStatus.OTHER_FAILURE, f"OS error: {e}")
    except ValueError as e:
        return _failure(path, CleanStatus.OTHER_FAILURE, f"Invalid path: {e}")

    if stat.S_ISLNK(info.st_mode):
        return _failure(path, CleanStatus.OTHER_FAILURE, "Path is a symbolic link")

    if not stat.S_ISDIR(info.st_mode):
        return _failure(path, CleanStatus.OTHER_FAILURE, "Path is not a directory")

    if target_names is not None and candidate.name not in set(target_names):
        return _failure(
            path, CleanStatus.OTHER_FAILURE, f"Not a target directory: {candidate.name}"
        )

    # Compare real locations so symlinked parents cannot escape a root
    real = Path(os.path.realpath(candidate))

    if allowed_roots is not None:
        roots = [Path(os.path.realpath(r)) for r in allowed_roots]
        if not any(_is_within(real, root) for root in roots):
            return _failure(path, CleanStatus.OTHER_FAILURE, "Path is outside the allowed roots")

    for protected in protected_paths:
        protected_real = Path(os.path.realpath(protected))
        if real == protected_real or _is_within(protected_real, real):
            return _failure(
                path, CleanStatus.OTHER_FAILURE, f"Protected path: {protected}"
            )

    return None


def delete_target(
    path: str,
    cancel_event: Optional[threading.Event] = None,
) -> CleanOutcome:
    """
    Recursively delete a directory, removing the directory itself last.

    Errors are collected rather than raised, so as much as possible is
    removed and the outcome reports exactly what went wrong. Symlinks
    inside the tree are unlinked, never followed.

    Args:
        path: Directory to delete (already validated)
        cancel_event: When set, stop before the next directory

    Returns:
        CleanOutcome for the path
    """
    if not os.path.lexists(path):
        return _failure(path, CleanStatus.NOT_FOUND, "Path does not exist")

    if os.path.islink(path):
        return _failure(path, CleanStatus.OTHER_FAILURE, "Path is a symbolic link")

    errors: list[OSError] = []
    removed = 0

    def _record(e: OSError) -> None:
        if not isinstance(e, FileNotFoundError):
            errors.append(e)

    def _remove(func: Callable[[str], None], target: str) -> None:
        nonlocal removed
        try:
            func(target)
            removed += 1
        except OSError as e:
            _record(e)

    for dirpath, dirnames, filenames in os.walk(path, topdown=False, onerror=_record):
        if cancel_event is not None and cancel_event.is_set():
            if not removed:
                return _failure(path, CleanStatus.OTHER_FAILURE, CANCELLED_BEFORE_DELETION)
            logger.warning("Deletion of %s cancelled part way", path)
            return _failure(
                path, CleanStatus.OTHER_FAILURE, "Cancelled, directory partially deleted"
            )

        for name in filenames:
            _remove(os.unlink, os.path.join(dirpath, name))

        for name in dirnames:
            child = os.path.join(dirpath, name)
            if os.path.islink(child):
                _remove(os.unlink, child)
            else:
                _remove(os.rmdir, child)

    _remove(os.rmdir, path)

    if not errors:
        if os.path.lexists(path):
            return _failure(path, CleanStatus.OTHER_FAILURE, "Directory still exists")
        logger.info("Deleted %s", path)
        return CleanOutcome(path=path, status=CleanStatus.DELETED)

    status = (
        CleanStatus.PERMISSION_DENIED
        if any(isinstance(e, PermissionError) for e in errors)
        else CleanStatus.OTHER_FAILURE
    )
    detail = f"{len(errors)} entries could not be removed; first error: {errors[0]}"
    logger.warning("Could not fully delete %s: %s", path, detail)
    return _failure(path, status, detail)


def _real_location(path: str) -> Path:
    try:
        return Path(os.path.realpath(path))
    except (OSError, ValueError):
        return Path(os.path.normpath(path))


def _nesting_waves(paths: list[str]) -> list[list[str]]:
    """
    Group paths so that no two in a wave can touch the same directory.

    Paths are compared by real location. A path runs after every requested
    path that contains it, and after any earlier path that resolves to the
    same directory.
    """
    real = [_real_location(p) for p in paths]
    distinct = set(real)
    seen: dict[Path, int] = {}
    waves: dict[tuple[int, int], list[str]] = {}
    for p, location in zip(paths, real):
        depth = sum(1 for other in distinct if _is_within(location, other))
        alias = seen.get(location, 0)
        seen[location] = alias + 1
        waves.setdefault((depth, alias), []).append(p)
    return [waves[key] for key in sorted(waves)]


def clean_paths(
    paths: list[str],
    *,
    allowed_roots: Optional[Iterable[Path]] = None,
    protected_paths: Iterable[Path] = (),
    target_names: Optional[Iterable[str]] = None,
    max_workers: int = DEFAULT_DELETE_WORKERS,
    cancel_event: Optional[threading.Event] = None,
    dry_run: bool = False,
    progress_callback: Optional[Callable[[CleanOutcome], None]] = None,
) -> CleanReport:
    """
    Validate and delete each requested path.

    Independent paths are deleted in parallel on a bounded pool. A path
    nested inside another requested path is handled after its ancestor,
    so an ancestor and its descendant are never deleted at the same time.

    Args:
        paths: Absolute paths to delete
        allowed_roots: If given, every path must be inside one of these
        protected_paths: Paths that must never be deleted
        target_names: If given, only directories with these names are deleted
        max_workers: Number of parallel deletions
        cancel_event: When set, no new deletions are started
        dry_run: If True, validate only and report what would be deleted
        progress_callback: Optional callback(outcome) as each path finishes

    Returns:
        CleanReport with exactly one outcome per requested path, in request order
    """
    allowed_roots = list(allowed_roots) if allowed_roots is not None else None
    protected_paths = list(protected_paths)
    target_names = list(target_names) if target_names is not None else None

    unique = list(dict.fromkeys(paths))
    results: dict[str, CleanOutcome] = {}

    def _attempt(path: str) -> CleanOutcome:
        if cancel_event is not None and cancel_event.is_set():
            return _failure(path, CleanStatus.OTHER_FAILURE, CANCELLED_BEFORE_DELETION)

        failure = validate_target(path, allowed_roots, protected_paths, target_names)
        if failure is not None:
            logger.info("Not deleting %s: %s", path, failure.detail)
            return failure

        if dry_run:
            return CleanOutcome(path=path, status=CleanStatus.DELETED, detail="dry run")

        return delete_target(path, cancel_event)

    def _process(path: str) -> CleanOutcome:
        try:
            return _attempt(path)
        except Exception as e:
            logger.exception("Unexpected error cleaning %r", path)
            return _failure(path, CleanStatus.OTHER_FAILURE, f"Unexpected error: {e}")

    waves = _nesting_waves(unique)

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        for batch in waves:
            for path, outcome in zip(batch, executor.map(_process, batch)):
                results[path] = outcome
                if progress_callback:
                    progress_callback(outcome)

    outcomes = [results[p].model_copy() for p in paths]
    cancelled = cancel_event is not None and cancel_event.is_set()
    return CleanReport(outcomes=outcomes, cancelled=cancelled)
