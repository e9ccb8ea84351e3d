"""Exceptions raised by nmclean.

Only conditions that are fatal to a whole request are raised. Per-path
problems (unreadable subtrees, failed deletions) are collected into the
result models instead.
"""


class NmcleanError(Exception):
    """Base class for nmclean errors."""


class InvalidRoot(NmcleanError):
    """The scan root does not exist or is not a directory."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid root {path!r}: {reason}")


class ConfigError(NmcleanError):
    """The configuration file could not be parsed or validated."""
