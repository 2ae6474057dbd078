"""Shape a ValidationReport into the JSON report and the SARIF document."""

import json
from pathlib import Path
from typing import Any

from cdmconfig.constants import (
    OUTPUT,
    SARIF_SCHEMA,
    SARIF_TOOL_NAME,
    SARIF_TOOL_VERSION,
    SARIF_VERSION,
)
from cdmconfig.models import PolicyResult, PolicySeverity, ValidationReport

SARIF_LEVELS = {
    PolicySeverity.FAILURE: "error",
    PolicySeverity.WARNING: "warning",
}


def build_json_report(report: ValidationReport) -> dict[str, Any]:
    return {
        "sys_id": report.sys_id,
        "name": report.name,
        "deployableName": report.deployable_name,
        "published": report.published,
        "validation": report.validation.value,
        "result": [row.to_report_row() for row in report.results],
    }


def build_sarif_report(report: ValidationReport) -> dict[str, Any]:
    """
    SARIF 2.1.0 document with one rule per failed or warning policy and one
    result per offending row.
    """
    rules: dict[str, dict[str, Any]] = {}
    results: list[dict[str, Any]] = []

    for groups in (report.failed, report.warning):
        for policy_name, rows in groups.items():
            offending = [row for row in rows if row.severity in SARIF_LEVELS]
            if not offending:
                continue
            level = SARIF_LEVELS[_worst(offending)]
            rule_id = _rule_id(report, offending[0])
            rules[rule_id] = {
                "id": rule_id,
                "name": policy_name,
                "shortDescription": {"text": rule_id},
                "fullDescription": {
                    "text": f"application.name: {offending[0].application_name}, "
                    f"snapshot.name: {_snapshot_name(report, offending[0])}"
                },
                "defaultConfiguration": {"level": level},
            }
            for row in offending:
                results.append(
                    {
                        "ruleId": rule_id,
                        "kind": "fail",
                        "level": SARIF_LEVELS[row.severity],
                        "message": {"text": row.output or f"Policy '{policy_name}' did not pass."},
                        "locations": [
                            {
                                "physicalLocation": {
                                    "artifactLocation": {"uri": _snapshot_name(report, row)}
                                }
                            }
                        ],
                    }
                )

    return {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": SARIF_TOOL_NAME,
                        "version": SARIF_TOOL_VERSION,
                        "fullName": SARIF_TOOL_NAME,
                        "rules": list(rules.values()),
                    }
                },
                "results": results,
            }
        ],
    }


def write_reports(report: ValidationReport, output_dir: Path) -> tuple[Path, Path]:
    """Write validation-results.json and validation-results.sarif into ``output_dir``."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / OUTPUT.VALIDATION_RESULTS_JSON_FILE
    sarif_path = output_dir / OUTPUT.VALIDATION_RESULTS_SARIF_FILE

    with open(sarif_path, "w", encoding="utf-8") as f:
        json.dump(build_sarif_report(report), f, indent=2, ensure_ascii=False)
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(build_json_report(report), f, indent=2, ensure_ascii=False)

    return json_path, sarif_path


def _snapshot_name(report: ValidationReport, row: PolicyResult) -> str:
    return row.snapshot_name or report.name


def _rule_id(report: ValidationReport, row: PolicyResult) -> str:
    return f"{_snapshot_name(report, row)}:{row.policy_name}"


def _worst(rows: list[PolicyResult]) -> PolicySeverity:
    if any(row.severity == PolicySeverity.FAILURE for row in rows):
        return PolicySeverity.FAILURE
    return PolicySeverity.WARNING
