"""Value objects describing sampled stack traces.

These types form the input contract for the graph builder. An event source
(a profiler recording reader, a JSON loader, a test fixture) produces
``StackTrace`` objects whose frames run from the sampled leaf frame at index 0
down to the root of the stack.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True, slots=True)
class PackageRef:
    name: str


@dataclass(frozen=True, slots=True)
class TypeRef:
    name: str
    package: Optional[PackageRef] = None

    @property
    def full_name(self) -> str:
        if self.package is None or not self.package.name:
            return self.name
        return f"{self.package.name}.{self.name}"


@dataclass(frozen=True, slots=True)
class MethodRef:
    name: str
    declaring_type: Optional[TypeRef] = None
    descriptor: Optional[str] = None

    @property
    def qualified_name(self) -> str:
        if self.declaring_type is None:
            return self.name
        return f"{self.declaring_type.full_name}#{self.name}"


@dataclass(frozen=True, slots=True)
class StackFrame:
    """One stack entry: a method plus an optional source line and bytecode index."""

    method: Optional[MethodRef]
    line: Optional[int] = None
    bci: Optional[int] = None

    @classmethod
    def of(
        cls,
        package: str,
        type_name: str,
        method: str,
        *,
        line: int | None = None,
        bci: int | None = None,
        descriptor: str | None = None,
    ) -> "StackFrame":
        """Shorthand for building a fully populated frame from plain names."""

        declaring_type = TypeRef(type_name, PackageRef(package))
        return cls(MethodRef(method, declaring_type, descriptor), line=line, bci=bci)


@dataclass(frozen=True, slots=True)
class StackTrace:
    """A captured stack, leaf first, with an optional per-trace weight."""

    frames: Sequence[StackFrame]
    value: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "frames", tuple(self.frames))

    def __len__(self) -> int:
        return len(self.frames)


__all__ = ["PackageRef", "TypeRef", "MethodRef", "StackFrame", "StackTrace"]
