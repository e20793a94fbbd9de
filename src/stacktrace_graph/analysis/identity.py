"""Granularity policies deciding when two stack frames are the same call-site."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Hashable

from stacktrace_graph.exceptions import InvalidFrameError
from stacktrace_graph.model.frames import MethodRef, StackFrame, TypeRef

FrameKey = Hashable
KeyFunction = Callable[[StackFrame], FrameKey]


class Granularity(Enum):
    """Level at which frames from different traces are merged into one node."""

    LINE = "line"
    METHOD = "method"
    CLASS = "class"
    PACKAGE = "package"
    BYTECODE_INDEX = "bci"

    @classmethod
    def parse(cls, value: "str | Granularity") -> "Granularity":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for member in cls:
            if text in (member.value, member.name.lower()):
                return member
        choices = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown granularity {value!r} (expected one of: {choices})")


def _method(frame: StackFrame) -> MethodRef:
    method = frame.method
    if method is None:
        raise InvalidFrameError(frame, "method")
    return method


def _declaring_type(frame: StackFrame) -> TypeRef:
    declaring_type = _method(frame).declaring_type
    if declaring_type is None:
        raise InvalidFrameError(frame, "type")
    return declaring_type


def _type_key(declaring_type: TypeRef) -> tuple:
    package = declaring_type.package.name if declaring_type.package is not None else None
    return (package or None, declaring_type.name)


def _method_key(frame: StackFrame) -> tuple:
    method = _method(frame)
    return (_type_key(_declaring_type(frame)), method.name, method.descriptor)


def _line_key(frame: StackFrame) -> tuple:
    return (_method_key(frame), frame.line)


def _class_key(frame: StackFrame) -> tuple:
    return _type_key(_declaring_type(frame))


def _package_key(frame: StackFrame) -> str:
    package = _declaring_type(frame).package
    if package is None:
        raise InvalidFrameError(frame, "package")
    return package.name


def _bci_key(frame: StackFrame) -> tuple:
    return (_method_key(frame), frame.line, frame.bci)


_KEY_FUNCTIONS: dict[Granularity, KeyFunction] = {
    Granularity.LINE: _line_key,
    Granularity.METHOD: _method_key,
    Granularity.CLASS: _class_key,
    Granularity.PACKAGE: _package_key,
    Granularity.BYTECODE_INDEX: _bci_key,
}


@dataclass(frozen=True, slots=True)
class FrameIdentity:
    """
    Equivalence policy over stack frames for one granularity.

    ``is_separate`` is defined through ``key``, so frames that are not separate
    always produce equal keys (and equal hashes) for every granularity.
    """

    granularity: Granularity = Granularity.BYTECODE_INDEX

    @classmethod
    def for_method(cls, line_sensitive: bool) -> "FrameIdentity":
        """Method-level policy; ``line_sensitive`` splits call-sites by source line."""

        return cls(Granularity.LINE if line_sensitive else Granularity.METHOD)

    def key_function(self) -> KeyFunction:
        return _KEY_FUNCTIONS[self.granularity]

    def key(self, frame: StackFrame) -> FrameKey:
        return _KEY_FUNCTIONS[self.granularity](frame)

    def is_separate(self, first: StackFrame, second: StackFrame) -> bool:
        key = self.key_function()
        return key(first) != key(second)


DEFAULT_GRANULARITY = Granularity.BYTECODE_INDEX
DEFAULT_IDENTITY = FrameIdentity(DEFAULT_GRANULARITY)

__all__ = ["DEFAULT_GRANULARITY", "DEFAULT_IDENTITY", "FrameIdentity", "FrameKey", "Granularity", "KeyFunction"]
