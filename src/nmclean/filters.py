"""Classification of directory entries during traversal.

Every entry seen by the walker is classified as a target (report it, never
descend), a directory to skip outright, or an ordinary directory to descend
into. Classification depends only on the entry name and whether it is a
directory, so it can be tested without touching the filesystem.
"""

from enum import Enum
from typing import Iterable

TARGET_NAMES = frozenset({"node_modules"})

# Directories that never contain useful targets (performance + safety)
SKIP_DIRECTORIES = frozenset(
    {
        ".git",
        ".svn",
        ".hg",
        ".Trash",
        "$RECYCLE.BIN",
        "System Volume Information",
        "__pycache__",
    }
)


class EntryKind(str, Enum):
    """How the walker treats a directory entry."""

    TARGET = "target"
    SKIP = "skip"
    DESCEND = "descend"


class PathFilter:
    """Decides which directory entries are targets, skipped, or descended into.

    Args:
        target_names: Exact directory names to report (e.g. 'node_modules')
        skip_names: Directory names never worth descending into
        skip_hidden: If True, also skip any other name starting with '.'
    """

    def __init__(
        self,
        target_names: Iterable[str] = TARGET_NAMES,
        skip_names: Iterable[str] = SKIP_DIRECTORIES,
        skip_hidden: bool = True,
    ) -> None:
        self.target_names = frozenset(target_names)
        self.skip_names = frozenset(skip_names)
        self.skip_hidden = skip_hidden

    def classify(self, name: str, is_dir: bool) -> EntryKind:
        """Classify a directory entry by name."""
        if not is_dir:
            return EntryKind.SKIP

        # Targets win over every skip rule, so '.venv'-style targets still match
        if name in self.target_names:
            return EntryKind.TARGET

        if name in self.skip_names:
            return EntryKind.SKIP

        if self.skip_hidden and name.startswith("."):
            return EntryKind.SKIP

        return EntryKind.DESCEND

    def is_target_name(self, name: str) -> bool:
        """Whether a directory with this name would be reported."""
        return name in self.target_names

    def __repr__(self) -> str:
        return (
            f"PathFilter(target_names={sorted(self.target_names)!r}, "
            f"skip_names={sorted(self.skip_names)!r}, skip_hidden={self.skip_hidden!r})"
        )


DEFAULT_FILTER = PathFilter()


def classify(name: str, is_dir: bool) -> EntryKind:
    """Classify an entry with the default node_modules filter."""
    return DEFAULT_FILTER.classify(name, is_dir)
