"""
The test case model refined by local search.

A `TestCase` is an ordered list of statements. `PrimitiveStatement`s hold one
concrete value of a fixed `ValueKind`; `CallStatement`s invoke a Python
callable on the values of earlier statements. The test case also carries the
snapshot of its last execution and a flag telling whether it was modified
since then.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from refiner.execution import ExecutionResult


class ValueKind(str, Enum):
    """The closed set of value kinds a primitive statement can hold."""

    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    CHAR = "char"


def _accepts(kind: ValueKind, value: Any) -> bool:
    """Return True if `value` is a valid raw value for `kind`."""
    if kind is ValueKind.STRING:
        return isinstance(value, str)
    if kind is ValueKind.CHAR:
        return isinstance(value, str) and len(value) == 1
    if kind is ValueKind.BOOLEAN:
        return isinstance(value, bool)
    if kind is ValueKind.INTEGER:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, float)


class PrimitiveStatement:
    """A statement holding a single value of a fixed kind."""

    def __init__(self, kind: ValueKind | str, value: Any, name: str | None = None):
        self.kind = ValueKind(kind)
        self.name = name
        self._value: Any = None
        self.value = value

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, new_value: Any) -> None:
        if not _accepts(self.kind, new_value):
            raise TypeError(
                f"{type(new_value).__name__} value {new_value!r} is not a valid {self.kind.value}"
            )
        self._value = new_value

    def code(self) -> str:
        """Render the statement as a line of Python."""
        target = self.name or "_"
        return f"{target} = {self._value!r}"

    def __repr__(self) -> str:
        return f"PrimitiveStatement({self.kind.value}, {self._value!r})"


@dataclass
class CallStatement:
    """A statement calling `target` with the values of earlier statements."""

    target: Callable[..., Any]
    args: list[int] = field(default_factory=list)
    name: str | None = None

    def code(self, names: list[str]) -> str:
        """Render the call using the variable names of the argument statements."""
        arg_list = ", ".join(names[i] for i in self.args)
        call = f"{getattr(self.target, '__name__', repr(self.target))}({arg_list})"
        return f"{self.name} = {call}" if self.name else call


Statement = PrimitiveStatement | CallStatement


class TestCase:
    """An ordered sequence of statements plus its last execution snapshot."""

    __test__ = False  # Not a unittest/pytest class

    def __init__(self, statements: list[Statement] | None = None):
        self.statements: list[Statement] = []
        self.last_execution_result: ExecutionResult | None = None
        self.changed = True
        for statement in statements or []:
            self.add_statement(statement)

    def __len__(self) -> int:
        return len(self.statements)

    def add_statement(self, statement: Statement) -> int:
        """Append a statement and return its index."""
        if isinstance(statement, CallStatement):
            for arg in statement.args:
                if not 0 <= arg < len(self.statements):
                    raise IndexError(
                        f"Call argument refers to statement {arg}, "
                        f"but only {len(self.statements)} precede it"
                    )
        self.statements.append(statement)
        self.changed = True
        return len(self.statements) - 1

    def add_primitive(self, kind: ValueKind | str, value: Any) -> int:
        """Append a named primitive statement and return its index."""
        index = len(self.statements)
        return self.add_statement(PrimitiveStatement(kind, value, name=f"v{index}"))

    def add_call(self, target: Callable[..., Any], args: list[int]) -> int:
        """Append a call to `target` and return its index."""
        index = len(self.statements)
        return self.add_statement(CallStatement(target, list(args), name=f"r{index}"))

    def get_statement(self, index: int) -> Statement:
        """Return the statement at `index`. Negative indices are rejected."""
        if not 0 <= index < len(self.statements):
            raise IndexError(
                f"Statement index {index} out of range for a test of length {len(self.statements)}"
            )
        return self.statements[index]

    def primitive_indices(self) -> list[int]:
        """Return the indices of all value-holding statements."""
        return [
            i for i, statement in enumerate(self.statements)
            if isinstance(statement, PrimitiveStatement)
        ]

    def to_code(self) -> str:
        """Render the whole test case as Python source lines."""
        names = [s.name or f"_{i}" for i, s in enumerate(self.statements)]
        lines = []
        for statement in self.statements:
            if isinstance(statement, CallStatement):
                lines.append(statement.code(names))
            else:
                lines.append(statement.code())
        return "\n".join(lines)
