"""Configuration primitives for graph builds."""

from __future__ import annotations

import math
from dataclasses import dataclass

from stacktrace_graph.analysis.identity import DEFAULT_GRANULARITY, FrameIdentity, Granularity
from stacktrace_graph.exceptions import InvalidArgumentError


@dataclass(frozen=True, slots=True)
class BuildConfig:
    """Settings for a single graph build."""

    granularity: Granularity = DEFAULT_GRANULARITY
    default_weight: float = 1.0
    workers: int = 1

    def __post_init__(self) -> None:
        if not isinstance(self.granularity, Granularity):
            raise InvalidArgumentError(f"Unsupported granularity: {self.granularity!r}")
        if self.workers < 1:
            raise InvalidArgumentError(f"workers must be >= 1, got {self.workers}")
        if not math.isfinite(self.default_weight) or self.default_weight < 0:
            raise InvalidArgumentError(f"default_weight must be a finite non-negative number, got {self.default_weight}")

    @property
    def identity(self) -> FrameIdentity:
        return FrameIdentity(self.granularity)

    @classmethod
    def from_names(
        cls,
        granularity: str | Granularity = DEFAULT_GRANULARITY,
        *,
        default_weight: float = 1.0,
        workers: int = 1,
    ) -> "BuildConfig":
        """Factory helper accepting command-line style granularity names."""

        try:
            parsed = Granularity.parse(granularity)
        except ValueError as exc:
            raise InvalidArgumentError(str(exc)) from exc
        return cls(granularity=parsed, default_weight=default_weight, workers=workers)


__all__ = ["BuildConfig"]
