"""Fetch per-policy validation results and group them by outcome."""

import json
from pathlib import Path
from typing import Any, Iterable

from cdmconfig.actions import ActionConsole
from cdmconfig.cdm.client import CdmClient
from cdmconfig.constants import API, ORDER_BY, OUTPUT
from cdmconfig.models import (
    PolicyDecision,
    PolicyResult,
    PolicySeverity,
    SnapshotRecord,
    ValidationReport,
    ValidationState,
)
from cdmconfig.pipeline.report import build_json_report, write_reports
from cdmconfig.pipeline.snapshot import encoded_query

RESULT_FIELDS = (
    "snapshot.application_id.name,policy.name,snapshot.name,"
    "impacted_node.name,node_path,policy_execution.output"
)

PolicyGroups = dict[str, list[PolicyResult]]


def fetch_validation_results(
    client: CdmClient,
    console: ActionConsole,
    *,
    deployable_name: str,
    validation_state: ValidationState,
    publish_state: bool,
    snapshot: SnapshotRecord,
    app_name: str | None = None,
    output_dir: Path = Path("."),
) -> ValidationReport:
    """
    Build the validation report of a snapshot and write the JSON and SARIF files.

    An empty result set is not an error: the report is written with no rows.
    """
    console.info("FetchValidationResults begins....")
    if app_name:
        console.debug(f"Fetching policy results of {app_name}/{deployable_name}")
    rows = fetch_policy_rows(client, console, snapshot, deployable_name)

    failed, warning, passed = aggregate_policy_results(
        (PolicyResult.from_row(row) for row in rows), console
    )
    report = ValidationReport(
        sys_id=snapshot.sys_id,
        name=snapshot.name,
        deployable_name=deployable_name,
        # An already published snapshot stays published even when auto-publish is off
        published=snapshot.published or publish_state,
        validation=validation_state,
        failed=failed,
        warning=warning,
        passed=passed,
    )

    console.set_output(OUTPUT.VALIDATION_RESULTS, json.dumps(build_json_report(report)))
    json_path, sarif_path = write_reports(report, output_dir)
    console.info(f"Validation results written to {json_path} and {sarif_path}")
    return report


def fetch_policy_rows(
    client: CdmClient,
    console: ActionConsole,
    snapshot: SnapshotRecord,
    deployable_name: str,
) -> list[dict[str, Any]]:
    """Rows of the latest policy evaluation of the snapshot, ordered by policy name."""
    params = {
        "sysparm_query": encoded_query(
            f"snapshot.sys_id={snapshot.sys_id}",
            "is_latest=true",
            f"{ORDER_BY}policy.name",
        ),
        "sysparm_fields": RESULT_FIELDS,
    }
    response = client.get(API.CDM_POLICY_VALIDATION_RESULT, params=params)
    rows = (response or {}).get("result") or []
    if not rows:
        console.warning(
            "Validation results are empty. No policy validation results found for "
            f"deployable '{deployable_name}'."
        )
    return rows


def aggregate_policy_results(
    results: Iterable[PolicyResult],
    console: ActionConsole | None = None,
) -> tuple[PolicyGroups, PolicyGroups, PolicyGroups]:
    """
    Group results by policy name and split the groups into failed, warning and passed.

    A policy lands in ``failed`` if any of its rows is a failure, else in
    ``warning`` if any row is a warning, else in ``passed``. Each map keeps the
    order in which policies first appeared; every input row ends up in exactly
    one group.
    """
    groups: PolicyGroups = {}
    for result in results:
        groups.setdefault(result.policy_name, []).append(result)

    failed: PolicyGroups = {}
    warning: PolicyGroups = {}
    passed: PolicyGroups = {}
    for policy_name, rows in groups.items():
        severities = {row.severity for row in rows}
        if PolicySeverity.FAILURE in severities:
            failed[policy_name] = rows
        elif PolicySeverity.WARNING in severities:
            warning[policy_name] = rows
        else:
            passed[policy_name] = rows
        if console:
            _annotate_policy(console, policy_name, rows)

    return failed, warning, passed


def _annotate_policy(console: ActionConsole, policy_name: str, rows: list[PolicyResult]) -> None:
    """At most one annotation per level for a policy: error, warning, info."""
    failures = [row for row in rows if row.severity == PolicySeverity.FAILURE]
    if failures:
        if all(row.decision == PolicyDecision.NOT_EXECUTED for row in failures):
            console.error(
                f"Policy '{policy_name}' is not executed properly. No execution output found."
            )
        else:
            message = f"Policy '{policy_name}' is found non_compliant."
            count = sum(row.failure_count for row in failures)
            if count:
                message += f" Total number of failures messages : {count}."
            console.error(message + " Check the validation results for details.")

    if any(row.severity == PolicySeverity.WARNING for row in rows):
        console.warning(
            f"Policy '{policy_name}' reported warnings. Check the validation results for details."
        )

    if any(row.decision == PolicyDecision.COMPLIANT_WITH_EXCEPTION for row in rows):
        console.info(f"Policy '{policy_name}' is compliant with exception.")
