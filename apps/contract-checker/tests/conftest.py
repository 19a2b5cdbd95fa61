"""Test bootstrap for contract-check."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

APP_ROOT = Path(__file__).resolve().parents[1]
APPS_DIR = APP_ROOT.parent
DEPENDENCIES = [APP_ROOT, APPS_DIR / "sample-library"]

for path in DEPENDENCIES:
    path_str = str(path)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


@pytest.fixture
def user_service_baseline() -> Path:
    """The recorded 1.0.0 contract of the sample UserService."""

    return APPS_DIR.parent / "artifacts" / "contracts" / "user-service" / "1.0.0.yaml"
