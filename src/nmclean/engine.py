"""The two requests nmclean serves: scan a root, clean a list of paths.

Nothing is remembered between requests. A clean never trusts an earlier
scan; each path is checked again against the filesystem.
"""

import logging
import threading
from pathlib import Path
from typing import Callable, Iterable, Optional

from nmclean.cleaner import clean_paths
from nmclean.config import EngineConfig
from nmclean.errors import InvalidRoot
from nmclean.formatter import make_display_name
from nmclean.models import (
    CleanOutcome,
    CleanReport,
    CleanRequest,
    DiscoveredTarget,
    ScanRequest,
    ScanResult,
    UnreadableSubtree,
)
from nmclean.sizer import DirectorySize, measure_sizes
from nmclean.walker import find_target_directories

logger = logging.getLogger(__name__)

FoundCallback = Callable[[Path], None]


def _check_root(root_path: str) -> Path:
    root = Path(root_path).expanduser()
    if not root.exists():
        raise InvalidRoot(root_path, "does not exist")
    if not root.is_dir():
        raise InvalidRoot(root_path, "is not a directory")
    return root.absolute()


def scan(
    root_path: str,
    compute_sizes: bool = False,
    *,
    config: Optional[EngineConfig] = None,
    cancel_event: Optional[threading.Event] = None,
    progress_callback: Optional[FoundCallback] = None,
) -> ScanResult:
    """
    Find target directories under a root, optionally with their sizes.

    Discovery runs on the calling thread; sizes are measured afterwards on
    a bounded worker pool. Unreadable directories are recorded in the
    result instead of failing the scan.

    Args:
        root_path: Directory to scan
        compute_sizes: If True, measure each target (slow on large trees)
        config: Engine settings (default: EngineConfig())
        cancel_event: When set, stop and return what was found so far
        progress_callback: Optional callback(path) for each target found

    Returns:
        ScanResult with targets in traversal order (or by size if configured)

    Raises:
        InvalidRoot: If root_path does not exist or is not a directory
    """
    config = config or EngineConfig()
    root = _check_root(root_path)
    unreadable: list[UnreadableSubtree] = []

    def _on_error(path: Path, error: OSError) -> None:
        unreadable.append(UnreadableSubtree(path=str(path), error=str(error)))

    found: list[Path] = []
    for target in find_target_directories(
        root,
        config.path_filter(),
        max_depth=config.max_depth,
        on_error=_on_error,
        cancel_event=cancel_event,
    ):
        found.append(target)
        if progress_callback:
            progress_callback(target)

    logger.info("Found %d target(s) under %s", len(found), root)

    sizes: dict[Path, DirectorySize] = {}
    if compute_sizes and found:
        sizes = measure_sizes(found, config.size_workers, cancel_event)

    targets: list[DiscoveredTarget] = []
    for path in found:
        size_bytes = None
        partial = False
        if compute_sizes:
            # Missing entries were skipped by cancellation
            size = sizes.get(path)
            size_bytes = size.size_bytes if size else 0
            partial = size.partial if size else True
            if config.skip_empty and size_bytes == 0 and not partial:
                continue

        targets.append(
            DiscoveredTarget(
                path=str(path),
                display_name=make_display_name(path, root),
                size_bytes=size_bytes,
                size_partial=partial,
            )
        )

    total_size = None
    if compute_sizes:
        total_size = sum(t.size_bytes for t in targets)
        if config.sort_by_size:
            targets.sort(key=lambda t: t.size_bytes, reverse=True)

    cancelled = cancel_event is not None and cancel_event.is_set()
    if cancelled:
        logger.warning("Scan of %s cancelled; results are partial", root)

    return ScanResult(
        root_path=str(root),
        targets=targets,
        total_size_bytes=total_size,
        unreadable=unreadable,
        cancelled=cancelled,
    )


def clean_report(
    paths: list[str],
    *,
    config: Optional[EngineConfig] = None,
    allowed_roots: Optional[Iterable[str]] = None,
    cancel_event: Optional[threading.Event] = None,
    dry_run: bool = False,
    progress_callback: Optional[Callable[[CleanOutcome], None]] = None,
) -> CleanReport:
    """
    Delete the given target directories and report what happened.

    Only directories whose name is a configured target name are deleted,
    and never a protected path.

    Args:
        paths: Absolute paths to delete
        config: Engine settings (default: EngineConfig())
        allowed_roots: If given, every path must lie inside one of these
        cancel_event: When set, no new deletions are started
        dry_run: If True, validate only
        progress_callback: Optional callback(outcome) as each path finishes

    Returns:
        CleanReport with one outcome per requested path, in request order
    """
    config = config or EngineConfig()
    roots = [Path(r).expanduser() for r in allowed_roots] if allowed_roots is not None else None

    report = clean_paths(
        list(paths),
        allowed_roots=roots,
        protected_paths=config.expanded_protected_paths(),
        target_names=config.target_names,
        max_workers=config.delete_workers,
        cancel_event=cancel_event,
        dry_run=dry_run,
        progress_callback=progress_callback,
    )
    logger.info(
        "Clean finished: %d deleted, %d not deleted",
        report.deleted_count,
        report.failure_count,
    )
    return report


def clean(
    paths: list[str],
    *,
    config: Optional[EngineConfig] = None,
    allowed_roots: Optional[Iterable[str]] = None,
    cancel_event: Optional[threading.Event] = None,
) -> list[CleanOutcome]:
    """Delete the given target directories; one outcome per path, in order."""
    report = clean_report(
        paths,
        config=config,
        allowed_roots=allowed_roots,
        cancel_event=cancel_event,
    )
    return report.outcomes


def handle_scan(request: ScanRequest, config: Optional[EngineConfig] = None) -> ScanResult:
    """Serve a ScanRequest."""
    return scan(request.root_path, request.compute_sizes, config=config)


def handle_clean(
    request: CleanRequest, config: Optional[EngineConfig] = None
) -> list[CleanOutcome]:
    """Serve a CleanRequest."""
    return clean(request.paths, config=config)
