"""Size formatting and response assembly.

Sizes are shown in binary megabytes up to and including 1 GiB and in binary
gigabytes above it, always with two decimals. Callers parse these strings
back to add up selections, so the format must not change.
"""

import re
from pathlib import Path
from typing import Iterable, Optional, Union

from nmclean.models import ScanResponse, ScanResult, TargetEntry

MB = 1024**2
GB = 1024**3

_SIZE_PATTERN = re.compile(r"^([\d.]+) (MB|GB)$")


def format_size(size_bytes: Union[int, float]) -> str:
    """Format bytes as 'X.XX MB', or 'X.XX GB' when above 1 GiB."""
    if size_bytes > GB:
        return f"{size_bytes / GB:.2f} GB"
    return f"{size_bytes / MB:.2f} MB"


def parse_size(text: str) -> int:
    """
    Parse a string produced by format_size back into bytes.

    The result is only as precise as the two decimals in the string.

    Raises:
        ValueError: If the string is not in 'X.XX MB' / 'X.XX GB' form
    """
    match = _SIZE_PATTERN.match(text.strip())
    if not match:
        raise ValueError(f"Not a formatted size: {text!r}")

    value = float(match.group(1))
    unit = GB if match.group(2) == "GB" else MB
    return round(value * unit)


def sum_formatted_sizes(sizes: Iterable[str]) -> str:
    """Add up formatted sizes (e.g. a user's selection) and format the total."""
    total = 0
    for size in sizes:
        total += parse_size(size)
    return format_size(total)


def make_display_name(path: Path, root: Path) -> str:
    """
    Short name for a target: '.../<project dir>'.

    Falls back to the path relative to root when the target has no
    parent name (e.g. directly under the filesystem root).
    """
    parent_name = path.parent.name
    if parent_name:
        return f".../{parent_name}"

    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)


def build_scan_response(result: ScanResult) -> ScanResponse:
    """Convert a ScanResult into the payload returned to the caller."""
    folders = [
        TargetEntry(
            path=target.path,
            name=target.display_name,
            size=_format_optional(target.size_bytes),
            size_in_bytes=target.size_bytes,
        )
        for target in result.targets
    ]

    return ScanResponse(
        folders=folders,
        total_size=_format_optional(result.total_size_bytes),
        incomplete=result.incomplete,
        cancelled=result.cancelled,
    )


def _format_optional(size_bytes: Optional[int]) -> Optional[str]:
    if size_bytes is None:
        return None
    return format_size(size_bytes)
