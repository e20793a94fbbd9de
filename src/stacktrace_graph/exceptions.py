"""Error types raised while building stack trace graphs."""

from __future__ import annotations


class StackGraphError(Exception):
    """Root exception for all stacktrace-graph errors."""


class InvalidArgumentError(StackGraphError, ValueError):
    """A required input is absent or out of range (policy, frame, weight)."""


class InvalidFrameError(StackGraphError, ValueError):
    """A frame lacks the metadata the active granularity needs.

    Attributes:
        frame: The offending frame.
        missing: Name of the absent field (``method``, ``type`` or ``package``).
    """

    def __init__(self, frame: object, missing: str) -> None:
        self.frame = frame
        self.missing = missing
        super().__init__(f"Frame {frame!r} has no {missing}")


__all__ = ["StackGraphError", "InvalidArgumentError", "InvalidFrameError"]
