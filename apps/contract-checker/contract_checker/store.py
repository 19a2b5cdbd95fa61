"""Reading and writing baseline contract files."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from .exceptions import ContractFormatError
from .models import ContractBaseline, Signature

LOGGER = structlog.get_logger("contract_checker")

_RECORD_KEYS = {"operation", "parameters", "returns", "optionalReturn"}


def format_for(path: Path) -> str:
    """Pick the serialization from the file suffix."""

    suffix = path.suffix.lower()
    if suffix == ".json":
        return "json"
    if suffix in {".yaml", ".yml"}:
        return "yaml"
    raise ContractFormatError(f"Unsupported baseline format: {suffix or '<none>'}", source=str(path))


def dumps(baseline: ContractBaseline, fmt: str = "yaml") -> str:
    """Serialize a baseline; the output is byte-stable for equal baselines."""

    payload = {
        "service": baseline.service,
        "version": baseline.version,
        "operations": [signature.as_record() for signature in baseline.signatures],
    }
    if fmt == "json":
        return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
    if fmt == "yaml":
        return yaml.safe_dump(payload, sort_keys=False, default_flow_style=False, allow_unicode=True)
    raise ContractFormatError(f"Unsupported baseline format: {fmt}")


def loads(text: str, fmt: str = "yaml", *, source: str | None = None) -> ContractBaseline:
    """Parse baseline text, raising ContractFormatError with the offending line or record."""

    if fmt == "json":
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ContractFormatError(f"Invalid JSON: {exc.msg}", source=source, line=exc.lineno) from exc
    elif fmt == "yaml":
        try:
            payload = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            mark = getattr(exc, "problem_mark", None)
            line = mark.line + 1 if mark is not None else None
            raise ContractFormatError(f"Invalid YAML: {exc}", source=source, line=line) from exc
    else:
        raise ContractFormatError(f"Unsupported baseline format: {fmt}", source=source)

    service: str | None = None
    version: str | None = None
    if isinstance(payload, list):
        records = payload
    elif isinstance(payload, dict):
        records = payload.get("operations")
        if not isinstance(records, list):
            raise ContractFormatError("Baseline needs an 'operations' list", source=source)
        raw_service = payload.get("service")
        service = str(raw_service) if raw_service is not None else None
        raw_version = payload.get("version")
        version = str(raw_version) if raw_version is not None else None
    else:
        raise ContractFormatError("Baseline must be a list of records or a mapping", source=source, line=1)

    lines: list[int] | None = None
    signatures: list[Signature] = []
    seen: set[tuple[str, tuple[str, ...]]] = set()
    for index, record in enumerate(records):
        try:
            signature = _parse_record(record)
        except ValueError as exc:
            if lines is None:
                lines = _record_lines(text)
            raise ContractFormatError(
                str(exc),
                source=source,
                record=index,
                line=lines[index] if index < len(lines) else None,
                operation=record.get("operation") if isinstance(record, dict) else None,
            ) from exc
        if signature.key in seen:
            raise ContractFormatError(
                "Duplicate signature", source=source, record=index, operation=signature.operation
            )
        seen.add(signature.key)
        signatures.append(signature)

    return ContractBaseline(service=service, version=version, signatures=tuple(signatures))


def load_baseline(source: Path) -> ContractBaseline:
    """Load a baseline file."""

    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise ContractFormatError(f"Cannot read baseline: {exc}", source=str(source)) from exc
    baseline = loads(text, format_for(source), source=str(source))
    LOGGER.info("baseline_loaded", source=str(source), operations=len(baseline))
    return baseline


def save_baseline(baseline: ContractBaseline, destination: Path) -> Path:
    """Write a baseline file, creating parent directories as needed."""

    text = dumps(baseline, format_for(destination))
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(text, encoding="utf-8")
    LOGGER.info("baseline_saved", destination=str(destination), operations=len(baseline))
    return destination


def _parse_record(record: Any) -> Signature:
    if not isinstance(record, dict):
        raise ValueError("Record must be a mapping")
    unknown = set(record) - _RECORD_KEYS
    if unknown:
        raise ValueError(f"Unexpected keys: {', '.join(sorted(map(str, unknown)))}")

    operation = record.get("operation")
    if not isinstance(operation, str) or not operation.strip():
        raise ValueError("Record has no operation name")
    parameters = record.get("parameters", [])
    if not isinstance(parameters, list) or not all(isinstance(param, str) for param in parameters):
        raise ValueError("'parameters' must be a list of type names")
    returns = record.get("returns")
    if not isinstance(returns, str) or not returns.strip():
        raise ValueError("Record has no return type")
    optional = record.get("optionalReturn", False)
    if not isinstance(optional, bool):
        raise ValueError("'optionalReturn' must be a boolean")

    try:
        return Signature.build(operation, parameters, returns, optional_return=optional)
    except ValidationError as exc:
        raise ValueError(f"Invalid record: {exc}") from exc


def _record_lines(text: str) -> list[int]:
    """1-based starting line of every record, best effort."""

    try:
        node = yaml.compose(text)
    except yaml.YAMLError:
        return []
    if isinstance(node, yaml.MappingNode):
        for key, value in node.value:
            if getattr(key, "value", None) == "operations":
                node = value
                break
    if isinstance(node, yaml.SequenceNode):
        return [item.start_mark.line + 1 for item in node.value]
    return []
