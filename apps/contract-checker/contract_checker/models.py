"""Pydantic models for signatures, shapes and diff results."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import CheckPolicy

_CONTAINER_MARKERS = ("<", "[")


class TypeRef(BaseModel):
    """Nominal reference to a type. Two references are equal iff their names match."""

    model_config = ConfigDict(frozen=True)

    name: str
    container: bool = False

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("type name cannot be empty")
        return value

    @classmethod
    def of(cls, name: str) -> "TypeRef":
        """Build a reference from its textual name, flagging generic wrappers."""

        return cls(name=name, container=any(marker in name for marker in _CONTAINER_MARKERS))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TypeRef):
            return self.name == other.name
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return self.name


class Signature(BaseModel):
    """Shape of a single exposed operation."""

    model_config = ConfigDict(frozen=True)

    operation: str
    parameters: tuple[TypeRef, ...] = ()
    returns: TypeRef
    optional_return: bool = False

    @field_validator("operation")
    @classmethod
    def _strip_operation(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("operation name cannot be empty")
        return value

    @classmethod
    def build(
        cls,
        operation: str,
        parameters: Iterable[str],
        returns: str,
        optional_return: bool = False,
    ) -> "Signature":
        return cls(
            operation=operation,
            parameters=tuple(TypeRef.of(param) for param in parameters),
            returns=TypeRef.of(returns),
            optional_return=optional_return,
        )

    @property
    def arity(self) -> int:
        return len(self.parameters)

    @property
    def key(self) -> tuple[str, tuple[str, ...]]:
        """Identity of the operation inside an overload set."""

        return self.operation, tuple(param.name for param in self.parameters)

    def as_record(self) -> dict[str, Any]:
        """Return the baseline record for this signature, keys in file order."""

        return {
            "operation": self.operation,
            "parameters": [param.name for param in self.parameters],
            "returns": self.returns.name,
            "optionalReturn": self.optional_return,
        }

    def __str__(self) -> str:
        params = ", ".join(param.name for param in self.parameters)
        returns = self.returns.name
        if self.optional_return and not returns.startswith("Optional"):
            returns = f"{returns}?"
        return f"{self.operation}({params}) -> {returns}"


class Shape(BaseModel):
    """Set of signatures exposed by a service at one point in time."""

    model_config = ConfigDict(frozen=True)

    service: str | None = None
    version: str | None = None
    signatures: tuple[Signature, ...] = ()

    @field_validator("signatures")
    @classmethod
    def _order_by_name(cls, value: tuple[Signature, ...]) -> tuple[Signature, ...]:
        # stable: overloads keep their declared order
        return tuple(sorted(value, key=lambda sig: sig.operation))

    def operations(self) -> dict[str, tuple[Signature, ...]]:
        """Map operation name to its overload set, ordered by name."""

        grouped: dict[str, list[Signature]] = {}
        for signature in self.signatures:
            grouped.setdefault(signature.operation, []).append(signature)
        return {name: tuple(overloads) for name, overloads in grouped.items()}

    def names(self) -> list[str]:
        return list(self.operations())

    def __len__(self) -> int:
        return len(self.signatures)


class ContractBaseline(Shape):
    """Previously recorded, expected shape of a service."""


class CurrentShape(Shape):
    """Shape freshly derived from the live API."""

    def to_baseline(self, *, service: str | None = None, version: str | None = None) -> ContractBaseline:
        return ContractBaseline(
            service=service or self.service,
            version=version or self.version,
            signatures=self.signatures,
        )


class DiffKind(str, Enum):
    """Classification of a single difference between baseline and current shape."""

    UNCHANGED = "Unchanged"
    PARAMETER_TYPE_CHANGED = "ParameterTypeChanged"
    RETURN_TYPE_CHANGED = "ReturnTypeChanged"
    OPERATION_REMOVED = "OperationRemoved"
    OPERATION_ADDED = "OperationAdded"
    ARITY_CHANGED = "ArityChanged"


class Severity(str, Enum):
    NONE = "none"
    NON_BREAKING = "non_breaking"
    BREAKING = "breaking"


def severity_of(kind: DiffKind) -> Severity:
    """Severity is a function of the kind alone."""

    if kind is DiffKind.UNCHANGED:
        return Severity.NONE
    if kind is DiffKind.OPERATION_ADDED:
        return Severity.NON_BREAKING
    return Severity.BREAKING


def is_breaking(kind: DiffKind) -> bool:
    return severity_of(kind) is Severity.BREAKING


class DiffResult(BaseModel):
    """One classified difference for an operation."""

    model_config = ConfigDict(frozen=True)

    kind: DiffKind
    operation: str
    baseline: Signature | None = None
    current: Signature | None = None
    position: int | None = None
    detail: str | None = None

    @property
    def severity(self) -> Severity:
        return severity_of(self.kind)

    @property
    def breaking(self) -> bool:
        return is_breaking(self.kind)

    def as_serializable(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "operation": self.operation,
            "position": self.position,
            "detail": self.detail,
            "baseline": self.baseline.as_record() if self.baseline else None,
            "current": self.current.as_record() if self.current else None,
            "baseline_signature": str(self.baseline) if self.baseline else None,
            "current_signature": str(self.current) if self.current else None,
        }


class DiffReport(BaseModel):
    """Full outcome of a check, suitable for CI gating."""

    service: str | None = None
    baseline_version: str | None = None
    current_version: str | None = None
    baseline_source: str | None = None
    target: str | None = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    policy: CheckPolicy = Field(default_factory=CheckPolicy)
    results: list[DiffResult] = Field(default_factory=list)

    def counts(self) -> dict[str, int]:
        totals = {kind.value: 0 for kind in DiffKind}
        for result in self.results:
            totals[result.kind.value] += 1
        return totals

    def gate_failures(self) -> list[DiffResult]:
        """Results that fail the check once the policy is applied."""

        failures = []
        for result in self.results:
            if result.operation in self.policy.ignore:
                continue
            if result.breaking or (self.policy.fail_on_added and result.kind is DiffKind.OPERATION_ADDED):
                failures.append(result)
        return failures

    @property
    def breaking(self) -> bool:
        return any(result.breaking for result in self.results)

    @property
    def passed(self) -> bool:
        return not self.gate_failures()

    def as_serializable(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""

        return {
            "service": self.service,
            "baseline_version": self.baseline_version,
            "current_version": self.current_version,
            "baseline_source": self.baseline_source,
            "target": self.target,
            "generated_at": self.generated_at.isoformat(),
            "policy": self.policy.model_dump(mode="json"),
            "passed": self.passed,
            "breaking": self.breaking,
            "summary": self.counts(),
            "results": [result.as_serializable() for result in self.results],
        }
