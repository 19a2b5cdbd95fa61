"""Human-readable and machine-readable renderings of diff results."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterable

from .config import CheckPolicy
from .models import DiffKind, DiffReport, DiffResult, Shape, Signature

_MISSING = "<none>"


def format_signature(signature: Signature | None) -> str:
    return str(signature) if signature is not None else _MISSING


def format_result(result: DiffResult) -> str:
    """``<kind>: <operation> (<baseline> -> <current>)``."""

    return (
        f"{result.kind.value}: {result.operation} "
        f"({format_signature(result.baseline)} -> {format_signature(result.current)})"
    )


def render_text(results: Iterable[DiffResult], *, include_non_breaking: bool = False) -> list[str]:
    """One line per breaking result, optionally followed by the rest."""

    lines = []
    for result in results:
        if result.breaking or include_non_breaking:
            lines.append(format_result(result))
    return lines


def build_report(
    results: list[DiffResult],
    *,
    baseline: Shape | None = None,
    current: Shape | None = None,
    baseline_source: str | None = None,
    target: str | None = None,
    policy: CheckPolicy | None = None,
) -> DiffReport:
    service = None
    if baseline is not None:
        service = baseline.service
    if service is None and current is not None:
        service = current.service
    return DiffReport(
        service=service,
        baseline_version=baseline.version if baseline is not None else None,
        current_version=current.version if current is not None else None,
        baseline_source=baseline_source,
        target=target,
        policy=policy or CheckPolicy(),
        results=results,
    )


def write_json_report(report: DiffReport, destination: Path) -> Path:
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(json.dumps(report.as_serializable(), indent=2) + "\n", encoding="utf-8")
    return destination


def write_junit(report: DiffReport, destination: Path) -> Path:
    """Write a JUnit XML file with one testcase per diff result."""

    failures = report.gate_failures()
    suite = ET.Element(
        "testsuite",
        attrib={
            "name": f"contract-check.{report.service or 'service'}",
            "tests": str(len(report.results)),
            "failures": str(len(failures)),
            "skipped": "0",
        },
    )
    for result in report.results:
        case = ET.SubElement(
            suite,
            "testcase",
            attrib={
                "classname": report.service or "service",
                "name": format_signature(result.baseline or result.current),
            },
        )
        if result in failures:
            failure = ET.SubElement(
                case,
                "failure",
                attrib={"message": format_result(result), "type": result.kind.value},
            )
            failure.text = result.detail or ""
        elif result.kind is not DiffKind.UNCHANGED:
            ET.SubElement(case, "system-out").text = format_result(result)
    destination.parent.mkdir(parents=True, exist_ok=True)
    ET.ElementTree(suite).write(destination, encoding="utf-8", xml_declaration=True)
    return destination
