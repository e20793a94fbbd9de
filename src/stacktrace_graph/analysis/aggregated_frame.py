"""A stack frame viewed through a granularity policy, usable as a mapping key."""

from __future__ import annotations

from typing import Optional

from stacktrace_graph.analysis.identity import FrameIdentity, FrameKey, Granularity
from stacktrace_graph.exceptions import InvalidArgumentError
from stacktrace_graph.model.frames import StackFrame


def _fmt(value: Optional[int]) -> str:
    return "?" if value is None else str(value)


class AggregatedFrame:
    """
    Wraps a raw frame together with the policy deciding its equivalence class.

    Equality and hashing delegate to the policy: two instances are equal when the
    policy does not separate their frames. The first frame seen for a class is the
    representative used for labels.
    """

    __slots__ = ("identity", "frame", "_key", "_hash")

    def __init__(self, identity: FrameIdentity, frame: StackFrame) -> None:
        if identity is None:
            raise InvalidArgumentError("Identity policy must not be None")
        if frame is None:
            raise InvalidArgumentError("Frame must not be None")
        self.identity = identity
        self.frame = frame
        self._key = identity.key(frame)
        self._hash = hash(self._key)

    @classmethod
    def _with_key(cls, identity: FrameIdentity, frame: StackFrame, key: FrameKey) -> "AggregatedFrame":
        """Internal to the builder: ``key`` must be ``identity.key_function()(frame)``."""

        instance = cls.__new__(cls)
        instance.identity = identity
        instance.frame = frame
        instance._key = key
        instance._hash = hash(key)
        return instance

    @property
    def key(self) -> FrameKey:
        return self._key

    def __hash__(self) -> int:
        return self._hash

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, AggregatedFrame):
            return NotImplemented
        return self.identity == other.identity and self._key == other._key

    def __repr__(self) -> str:
        return f"AggregatedFrame({self.label()!r}, {self.identity.granularity.name})"

    def __str__(self) -> str:
        return f"{self._method_label()}:{self.identity.granularity.name}"

    def _method_label(self) -> str:
        method = self.frame.method
        return method.qualified_name if method is not None else "<unknown>"

    def label(self, granularity: Granularity | None = None) -> str:
        """Best human-readable name for this call-site at ``granularity``.

        Defaults to the granularity of the frame's own policy.
        """

        granularity = granularity or self.identity.granularity
        frame = self.frame
        if granularity is Granularity.METHOD:
            return self._method_label()
        if granularity is Granularity.LINE:
            return f"{self._method_label()}:{_fmt(frame.line)}"
        declaring_type = frame.method.declaring_type if frame.method is not None else None
        if granularity is Granularity.CLASS and declaring_type is not None:
            return declaring_type.full_name
        if granularity is Granularity.PACKAGE and declaring_type is not None and declaring_type.package is not None:
            return declaring_type.package.name
        return f"{self._method_label()}:{_fmt(frame.line)}({_fmt(frame.bci)})"


__all__ = ["AggregatedFrame"]
