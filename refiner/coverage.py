"""
Line and arc coverage for code executed by a test case.

`ArcTracer` installs a `sys.settrace` hook that only follows frames running one
of a fixed set of code objects. Like an edge in a JIT trace, an arc is the pair
(previous line, current line); function entry and exit are recorded with the
negated first line number of the code object, so `(-first, line)` is an entry
arc and `(line, -first)` an exit arc.
"""

from __future__ import annotations

import sys
from types import CodeType, FrameType
from typing import Any, Callable, Iterable


def executable_lines(code: CodeType) -> frozenset[int]:
    """Return the line numbers of `code` that carry instructions, minus the def line."""
    return frozenset(
        line
        for _, _, line in code.co_lines()
        if line is not None and line != code.co_firstlineno
    )


def code_of(target: Callable[..., Any]) -> CodeType | None:
    """Return the code object behind a Python callable, unwrapping methods."""
    func = getattr(target, "__func__", target)
    return getattr(func, "__code__", None)


class ArcTracer:
    """Collect the lines and arcs executed inside a set of code objects."""

    def __init__(self, codes: Iterable[CodeType]):
        self.codes = frozenset(codes)
        self.lines: set[int] = set()
        self.arcs: set[tuple[int, int]] = set()
        self._previous_tracer: Callable[..., Any] | None = None

    def _global_trace(self, frame: FrameType, event: str, arg: Any):
        if event != "call" or frame.f_code not in self.codes:
            return None
        entry = -frame.f_code.co_firstlineno
        previous = entry

        def _local_trace(frame: FrameType, event: str, arg: Any):
            nonlocal previous
            if event == "line":
                self.lines.add(frame.f_lineno)
                self.arcs.add((previous, frame.f_lineno))
                previous = frame.f_lineno
            elif event == "return":
                self.arcs.add((previous, entry))
            return _local_trace

        return _local_trace

    def __enter__(self) -> "ArcTracer":
        self._previous_tracer = sys.gettrace()
        if self.codes:
            sys.settrace(self._global_trace)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        sys.settrace(self._previous_tracer)
        self._previous_tracer = None
