"""Load stack traces from the JSON interchange document used by the CLI.

Expected layout::

    {
      "traces": [
        {"value": 2.5, "frames": [
            {"package": "java.util", "type": "HashMap", "method": "get", "line": 12, "bci": 4},
            ...
        ]}
      ]
    }

Frames are listed leaf first. ``value``, ``line``, ``bci`` and ``descriptor`` are optional.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator, List

from stacktrace_graph.exceptions import InvalidArgumentError
from stacktrace_graph.model.frames import MethodRef, PackageRef, StackFrame, StackTrace, TypeRef


def _optional_int(value: Any, field: str, where: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{where}: '{field}' must be an integer, got {value!r}")
    return value


def _optional_str(entry: dict, field: str, where: str) -> str | None:
    value = entry.get(field)
    if value is not None and not isinstance(value, str):
        raise InvalidArgumentError(f"{where}: '{field}' must be a string, got {value!r}")
    return value


def parse_frame(entry: dict, where: str = "frame") -> StackFrame:
    """Convert one JSON frame object into a :class:`StackFrame`."""

    if not isinstance(entry, dict):
        raise InvalidArgumentError(f"{where}: expected an object, got {type(entry).__name__}")
    method_name = entry.get("method")
    if not isinstance(method_name, str) or not method_name:
        raise InvalidArgumentError(f"{where}: 'method' is required")

    declaring_type = None
    type_name = _optional_str(entry, "type", where)
    package_name = _optional_str(entry, "package", where)
    if type_name is not None:
        if not type_name:
            raise InvalidArgumentError(f"{where}: 'type' must not be empty")
        package = PackageRef(package_name) if package_name is not None else None
        declaring_type = TypeRef(type_name, package)

    return StackFrame(
        MethodRef(method_name, declaring_type, _optional_str(entry, "descriptor", where)),
        line=_optional_int(entry.get("line"), "line", where),
        bci=_optional_int(entry.get("bci"), "bci", where),
    )


def parse_traces(payload: dict) -> List[StackTrace]:
    """Convert a decoded trace document into :class:`StackTrace` objects."""

    if not isinstance(payload, dict):
        raise InvalidArgumentError("Trace document must be a JSON object")
    entries = payload.get("traces")
    if not isinstance(entries, list):
        raise InvalidArgumentError("Trace document requires a 'traces' list")

    traces: List[StackTrace] = []
    for index, entry in enumerate(entries):
        where = f"traces[{index}]"
        if isinstance(entry, list):
            entry = {"frames": entry}
        if not isinstance(entry, dict):
            raise InvalidArgumentError(f"{where}: expected an object or a list of frames")
        frames = entry.get("frames", [])
        if not isinstance(frames, list):
            raise InvalidArgumentError(f"{where}: 'frames' must be a list")
        value = entry.get("value")
        if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
            raise InvalidArgumentError(f"{where}: 'value' must be a number, got {value!r}")
        traces.append(
            StackTrace(
                [parse_frame(frame, f"{where}.frames[{pos}]") for pos, frame in enumerate(frames)],
                value=value,
            )
        )
    return traces


def load_traces(path: Path) -> List[StackTrace]:
    """Read a trace document from ``path``."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Trace file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InvalidArgumentError(f"{path}: invalid JSON document ({exc})") from exc
    return parse_traces(payload)


def iter_traces(paths: List[Path]) -> Iterator[StackTrace]:
    for path in paths:
        yield from load_traces(path)


__all__ = ["iter_traces", "load_traces", "parse_frame", "parse_traces"]
