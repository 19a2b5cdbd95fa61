import json
import xml.etree.ElementTree as ET
from pathlib import Path

import yaml
from typer.testing import CliRunner

from contract_checker.main import app

runner = CliRunner()

V1_TARGET = "sample_library.service:UserService"
V2_TARGET = "sample_library.service_v2:UserService"


def _check(baseline: Path, target: str, *extra: str):
    return runner.invoke(
        app,
        ["check", "--baseline", str(baseline), "--target", target, "--output-format", "plain", *extra],
    )


def test_check_passes_against_unchanged_library(user_service_baseline: Path) -> None:
    result = _check(user_service_baseline, V1_TARGET)

    assert result.exit_code == 0, result.output
    assert "✓ CONTRACT COMPATIBLE" in result.output


def test_check_fails_on_breaking_change(user_service_baseline: Path) -> None:
    result = _check(user_service_baseline, V2_TARGET)

    assert result.exit_code == 1, result.output
    lines = result.output.splitlines()
    assert "ParameterTypeChanged: find_by_id (find_by_id(int) -> User -> find_by_id(str) -> Optional[User])" in lines
    assert "ReturnTypeChanged: find_by_id (find_by_id(int) -> User -> find_by_id(str) -> Optional[User])" in lines
    assert not any(line.startswith("Unchanged:") for line in lines)


def test_check_writes_machine_readable_reports(tmp_path: Path, user_service_baseline: Path) -> None:
    report_path = tmp_path / "reports" / "contract.json"
    junit_path = tmp_path / "reports" / "contract.junit.xml"

    result = _check(user_service_baseline, V2_TARGET, "--report", str(report_path), "--junit", str(junit_path))

    assert result.exit_code == 1, result.output
    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["passed"] is False
    assert report["baseline_version"] == "1.0.0"
    assert report["current_version"] == "2.0.0"
    assert report["summary"]["Unchanged"] == 2
    assert report["summary"]["ParameterTypeChanged"] == 1
    assert report["summary"]["ReturnTypeChanged"] == 1
    changed = [entry for entry in report["results"] if entry["kind"] == "ParameterTypeChanged"][0]
    assert changed["position"] == 0
    assert changed["baseline"] == {
        "operation": "find_by_id",
        "parameters": ["int"],
        "returns": "User",
        "optionalReturn": False,
    }
    assert changed["current"]["optionalReturn"] is True

    suite = ET.parse(junit_path).getroot()
    assert suite.attrib["tests"] == "4"
    assert suite.attrib["failures"] == "2"


def test_policy_can_ignore_an_operation(tmp_path: Path, user_service_baseline: Path) -> None:
    policy = tmp_path / "policy.yaml"
    policy.write_text(yaml.safe_dump({"ignore": ["find_by_id"]}), encoding="utf-8")

    result = _check(user_service_baseline, V2_TARGET, "--policy", str(policy))

    assert result.exit_code == 0, result.output


def test_policy_can_gate_on_added_operations(tmp_path: Path, user_service_baseline: Path) -> None:
    description = tmp_path / "user-service.json"
    description.write_text(
        json.dumps(
            {
                "service": "UserService",
                "operations": [
                    {"name": "create_user", "parameters": ["str", "str"], "returns": "User"},
                    {"name": "find_all", "returns": "list[User]"},
                    {"name": "find_by_id", "parameters": ["int"], "returns": "User"},
                    {"name": "find_by_email", "parameters": ["str"], "returns": "User"},
                ],
            }
        ),
        encoding="utf-8",
    )
    policy = tmp_path / "policy.json"
    policy.write_text(json.dumps({"fail_on_added": True}), encoding="utf-8")

    relaxed = _check(user_service_baseline, str(description), "--show-all")
    strict = _check(user_service_baseline, str(description), "--policy", str(policy))

    assert relaxed.exit_code == 0, relaxed.output
    assert "OperationAdded: find_by_email (<none> -> find_by_email(str) -> User)" in relaxed.output
    assert strict.exit_code == 1, strict.output


def test_snapshot_then_check_round_trip(tmp_path: Path) -> None:
    baseline = tmp_path / "contracts" / "user-service.json"

    recorded = runner.invoke(app, ["snapshot", "--target", V1_TARGET, "--output", str(baseline), "--version", "1.0.1"])

    assert recorded.exit_code == 0, recorded.output
    assert json.loads(baseline.read_text(encoding="utf-8"))["version"] == "1.0.1"
    assert _check(baseline, V1_TARGET).exit_code == 0
    assert _check(baseline, V2_TARGET).exit_code == 1


def test_malformed_baseline_is_a_usage_error(tmp_path: Path) -> None:
    baseline = tmp_path / "broken.yaml"
    baseline.write_text("operations:\n- operation: find_all\n", encoding="utf-8")

    result = _check(baseline, V1_TARGET)

    assert result.exit_code == 2


def test_unsupported_target_is_a_usage_error(user_service_baseline: Path) -> None:
    result = _check(user_service_baseline, "does-not-exist.txt")

    assert result.exit_code == 2


def test_show_lists_signatures() -> None:
    result = runner.invoke(app, ["show", "--target", V2_TARGET])

    assert result.exit_code == 0, result.output
    assert "UserService 2.0.0" in result.output
    assert "find_by_id(str) -> Optional[User]" in result.output
