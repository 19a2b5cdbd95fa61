"""Error taxonomy for the contract checker."""

from __future__ import annotations

from typing import Any


class ContractCheckError(RuntimeError):
    """Base class for every error raised by the checker."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = {key: value for key, value in context.items() if value is not None}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class ExtractionError(ContractCheckError):
    """Raised when a service description cannot be turned into a shape."""

    def __init__(
        self,
        message: str,
        *,
        target: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message, target=target, operation=operation)
        self.target = target
        self.operation = operation


class ContractFormatError(ContractCheckError):
    """Raised when a baseline file is malformed."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        line: int | None = None,
        record: int | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message, source=source, line=line, record=record, operation=operation)
        self.source = source
        self.line = line
        self.record = record
        self.operation = operation


class DiffError(ContractCheckError):
    """Internal invariant violation inside the diff engine."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        expected: Any = None,
        actual: Any = None,
    ) -> None:
        super().__init__(message, operation=operation, expected=expected, actual=actual)
        self.operation = operation
        self.expected = expected
        self.actual = actual
