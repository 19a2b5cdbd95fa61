"""Check policy and environment-driven settings."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

LOG_LEVEL_ENV_VAR = "CONTRACT_CHECK_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"


class PolicyError(ValueError):
    """Raised when a policy file cannot be used."""


class CheckPolicy(BaseModel):
    """Gate settings applied on top of the diff classification."""

    ignore: list[str] = Field(default_factory=list)
    fail_on_added: bool = False


def load_policy(policy_path: Path | None) -> CheckPolicy:
    """Load a YAML/JSON policy file; no path yields the default policy."""

    if policy_path is None:
        return CheckPolicy()
    if not policy_path.exists():
        raise PolicyError(f"Policy file {policy_path} does not exist")
    text = policy_path.read_text(encoding="utf-8")
    try:
        if policy_path.suffix.lower() == ".json":
            payload: Any = json.loads(text)
        else:
            payload = yaml.safe_load(text) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise PolicyError(f"Policy file {policy_path} cannot be parsed: {exc}") from exc
    if not isinstance(payload, dict):
        raise PolicyError("Policy file must deserialize into a mapping")
    try:
        return CheckPolicy.model_validate(payload)
    except ValidationError as exc:
        raise PolicyError(f"Invalid policy file {policy_path}: {exc}") from exc


def get_log_level(cli_override: str | None = None) -> str:
    """Resolve the log level: CLI parameter > environment variable > default."""

    if cli_override:
        return cli_override.upper()
    env_value = os.environ.get(LOG_LEVEL_ENV_VAR)
    if env_value:
        return env_value.upper()
    return DEFAULT_LOG_LEVEL
