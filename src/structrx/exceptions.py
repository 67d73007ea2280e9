"""structrx exceptions."""

from __future__ import annotations


class StructRxError(Exception):
    """Base exception for structrx errors."""

    pass


class InvalidStateInput(StructRxError, TypeError):
    """Raised when a value written to the tree has an unsupported shape.

    Only None, atomics (bool, int, float, str, callables), lists and plain
    dicts with str keys are accepted, nested arbitrarily.
    """

    def __init__(self, value: object, path: tuple = ()) -> None:
        self.value = value
        self.path = path
        where = ".".join(str(k) for k in path) or "<root>"
        super().__init__(
            f"Invalid state input at {where}: {type(value).__name__} {value!r}"
        )
