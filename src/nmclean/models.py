"""Data models for nmclean."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ScanRequest(BaseModel):
    """A request to discover target directories under a root."""

    root_path: str = Field(..., description="Absolute path of the directory to scan")
    compute_sizes: bool = Field(False, description="Whether to measure each target's size")


class DiscoveredTarget(BaseModel):
    """A single target directory found by a scan."""

    path: str = Field(..., description="Absolute path of the target directory")
    display_name: str = Field(..., description="Short name for display")
    size_bytes: Optional[int] = Field(
        None, ge=0, description="Total size in bytes, set only when sizes were requested"
    )
    size_partial: bool = Field(
        False, description="Whether some entries could not be read while measuring"
    )

    @property
    def size_human(self) -> Optional[str]:
        """Size formatted as MB/GB, or None when sizes were not computed."""
        if self.size_bytes is None:
            return None
        from nmclean.formatter import format_size

        return format_size(self.size_bytes)


class UnreadableSubtree(BaseModel):
    """A directory that could not be listed during traversal."""

    path: str = Field(..., description="Directory that failed to list")
    error: str = Field(..., description="Error message from the operating system")


class ScanResult(BaseModel):
    """Result of scanning a root directory."""

    root_path: str = Field(..., description="Root that was scanned")
    targets: list[DiscoveredTarget] = Field(default_factory=list)
    total_size_bytes: Optional[int] = Field(
        None, ge=0, description="Sum of target sizes, set only when sizes were requested"
    )
    unreadable: list[UnreadableSubtree] = Field(default_factory=list)
    cancelled: bool = Field(False, description="Whether the scan was cancelled early")

    @property
    def target_count(self) -> int:
        """Number of targets found."""
        return len(self.targets)

    @property
    def incomplete(self) -> bool:
        """True when the result may be missing targets or bytes."""
        return (
            self.cancelled
            or bool(self.unreadable)
            or any(t.size_partial for t in self.targets)
        )

    @property
    def total_size_human(self) -> Optional[str]:
        """Total size formatted as MB/GB, or None when sizes were not computed."""
        if self.total_size_bytes is None:
            return None
        from nmclean.formatter import format_size

        return format_size(self.total_size_bytes)


class CleanRequest(BaseModel):
    """A request to delete a list of target directories."""

    paths: list[str] = Field(default_factory=list, description="Absolute paths to delete")


class CleanStatus(str, Enum):
    """Outcome of deleting a single path."""

    DELETED = "deleted"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    OTHER_FAILURE = "other_failure"


class CleanOutcome(BaseModel):
    """Result of a deletion attempt for one requested path."""

    path: str = Field(..., description="Path as given in the request")
    status: CleanStatus = Field(..., description="What happened to the path")
    detail: Optional[str] = Field(None, description="Error message or extra information")

    @property
    def success(self) -> bool:
        """Whether the path was deleted by this request."""
        return self.status == CleanStatus.DELETED


class CleanReport(BaseModel):
    """All outcomes of a clean request, in request order."""

    outcomes: list[CleanOutcome] = Field(default_factory=list)
    cancelled: bool = Field(False, description="Whether the clean was cancelled early")

    @property
    def deleted_count(self) -> int:
        """Number of paths deleted."""
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failure_count(self) -> int:
        """Number of paths that were not deleted."""
        return sum(1 for o in self.outcomes if not o.success)


# =============================================================================
# Response payload
# =============================================================================


class TargetEntry(BaseModel):
    """One target as sent back to the caller."""

    path: str
    name: str
    size: Optional[str] = None
    size_in_bytes: Optional[int] = None


class ScanResponse(BaseModel):
    """Scan result shaped for the presentation layer."""

    folders: list[TargetEntry] = Field(default_factory=list)
    total_size: Optional[str] = None
    incomplete: bool = False
    cancelled: bool = False
