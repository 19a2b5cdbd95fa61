"""Structural diff between a baseline contract and the current shape."""

from __future__ import annotations

from typing import Sequence

import structlog

from .exceptions import DiffError
from .models import DiffKind, DiffResult, Shape, Signature

LOGGER = structlog.get_logger("contract_checker")


def diff(baseline: Shape, current: Shape) -> list[DiffResult]:
    """Classify every difference between ``baseline`` and ``current``.

    Operations are visited in name order. Within a name, matched pairs come
    first in baseline declared order, then unmatched baseline signatures
    (removed), then unmatched current signatures (added). The output depends
    only on the inputs, so repeated calls yield identical lists.
    """

    before = baseline.operations()
    after = current.operations()
    results: list[DiffResult] = []

    for name in sorted(set(before) | set(after)):
        old = before.get(name, ())
        new = after.get(name, ())
        results.extend(_diff_operation(name, old, new))

    _check_accounting(before, after, results)
    LOGGER.info(
        "diff_completed",
        operations=len(set(before) | set(after)),
        results=len(results),
        breaking=sum(1 for result in results if result.breaking),
    )
    return results


def _diff_operation(
    name: str,
    old: Sequence[Signature],
    new: Sequence[Signature],
) -> list[DiffResult]:
    if len(old) == 1 and len(new) == 1:
        return compare_pair(old[0], new[0])

    pairs = match_overloads(old, new)
    matched_old = {i for i, _ in pairs}
    matched_new = {j for _, j in pairs}

    results: list[DiffResult] = []
    for i, j in sorted(pairs):
        results.extend(compare_pair(old[i], new[j]))
    for i, signature in enumerate(old):
        if i not in matched_old:
            results.append(
                DiffResult(
                    kind=DiffKind.OPERATION_REMOVED,
                    operation=name,
                    baseline=signature,
                    detail=f"{signature} is no longer exposed",
                )
            )
    for j, signature in enumerate(new):
        if j not in matched_new:
            results.append(
                DiffResult(
                    kind=DiffKind.OPERATION_ADDED,
                    operation=name,
                    current=signature,
                    detail=f"{signature} was added",
                )
            )
    return results


def match_overloads(old: Sequence[Signature], new: Sequence[Signature]) -> list[tuple[int, int]]:
    """Pair overloads of equal arity, preferring the most positional type matches.

    Ties go to the earliest baseline signature, then the earliest current one.
    """

    candidates = []
    for i, before in enumerate(old):
        for j, after in enumerate(new):
            if before.arity != after.arity:
                continue
            score = sum(1 for a, b in zip(before.parameters, after.parameters) if a == b)
            candidates.append((-score, i, j))
    candidates.sort()

    pairs: list[tuple[int, int]] = []
    used_old: set[int] = set()
    used_new: set[int] = set()
    for _, i, j in candidates:
        if i in used_old or j in used_new:
            continue
        pairs.append((i, j))
        used_old.add(i)
        used_new.add(j)
    return pairs


def compare_pair(before: Signature, after: Signature) -> list[DiffResult]:
    """Compare two signatures of the same operation.

    Parameter and return changes are reported separately so a single pair can
    yield both a parameter-level and a return-level result.
    """

    name = before.operation
    results: list[DiffResult] = []

    if before.arity != after.arity:
        results.append(
            DiffResult(
                kind=DiffKind.ARITY_CHANGED,
                operation=name,
                baseline=before,
                current=after,
                detail=f"expected {before.arity} parameter(s), found {after.arity}",
            )
        )
    else:
        position = first_mismatch(before.parameters, after.parameters)
        if position is not None:
            results.append(
                DiffResult(
                    kind=DiffKind.PARAMETER_TYPE_CHANGED,
                    operation=name,
                    baseline=before,
                    current=after,
                    position=position,
                    detail=(
                        f"parameter {position}: expected {before.parameters[position]}, "
                        f"found {after.parameters[position]}"
                    ),
                )
            )

    if before.returns != after.returns or before.optional_return != after.optional_return:
        results.append(
            DiffResult(
                kind=DiffKind.RETURN_TYPE_CHANGED,
                operation=name,
                baseline=before,
                current=after,
                detail=_return_detail(before, after),
            )
        )

    if not results:
        results.append(DiffResult(kind=DiffKind.UNCHANGED, operation=name, baseline=before, current=after))
    return results


def first_mismatch(before: Sequence[object], after: Sequence[object]) -> int | None:
    """Index of the first positional difference between two equal-length sequences."""

    if len(before) != len(after):
        raise DiffError("Positional comparison needs equal arity", expected=len(before), actual=len(after))
    for position, (a, b) in enumerate(zip(before, after)):
        if a != b:
            return position
    return None


def _return_detail(before: Signature, after: Signature) -> str:
    if before.returns != after.returns:
        return f"expected return {before.returns}, found {after.returns}"
    expected = "optional" if before.optional_return else "required"
    found = "optional" if after.optional_return else "required"
    return f"return of {before.returns} changed from {expected} to {found}"


def _check_accounting(
    before: dict[str, tuple[Signature, ...]],
    after: dict[str, tuple[Signature, ...]],
    results: list[DiffResult],
) -> None:
    """Every signature on either side must show up in the results."""

    for side, operations in (("baseline", before), ("current", after)):
        expected = {sig.key for overloads in operations.values() for sig in overloads}
        covered = {getattr(result, side).key for result in results if getattr(result, side) is not None}
        if covered != expected:
            raise DiffError(
                f"Diff does not account for every {side} signature",
                expected=len(expected),
                actual=len(covered),
            )
