from __future__ import annotations

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from cdmconfig.models.snapshot import ValidationState


class PolicyDecision(str, Enum):
    COMPLIANT = "compliant"
    COMPLIANT_WITH_EXCEPTION = "compliant_with_exception"
    NON_COMPLIANT = "non_compliant"
    NOT_EXECUTED = "not_executed"
    OTHER = "other"


class PolicySeverity(str, Enum):
    FAILURE = "failure"
    WARNING = "warning"
    INFO = "info"


class PolicyResult(BaseModel):
    """One row of ``sn_cdm_policy_validation_result``."""

    model_config = ConfigDict(frozen=True)

    policy_name: str
    decision: PolicyDecision
    severity: PolicySeverity
    output: str = ""
    snapshot_name: str | None = None
    application_name: str | None = None
    impacted_node: str | None = None
    node_path: str | None = None
    failure_count: int = 0

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> PolicyResult:
        """
        Map a raw table row into a classified result.

        The decision and severity come from the JSON execution payload in
        ``policy_execution.output``. A non_compliant decision is always a failure;
        otherwise the payload's own ``type`` (failure/warning) wins; anything else
        is informational. A row with no execution payload counts as a failure.
        """
        raw_output = row.get("policy_execution.output")
        payload = _parse_payload(raw_output)

        if not payload:
            decision = PolicyDecision.NOT_EXECUTED
        else:
            decision = _parse_decision(payload.get("decision"))

        payload_type = str(payload.get("type") or "").strip().lower()
        if decision in (PolicyDecision.NON_COMPLIANT, PolicyDecision.NOT_EXECUTED):
            severity = PolicySeverity.FAILURE
        elif payload_type == PolicySeverity.FAILURE.value:
            severity = PolicySeverity.FAILURE
        elif payload_type == PolicySeverity.WARNING.value:
            severity = PolicySeverity.WARNING
        else:
            severity = PolicySeverity.INFO

        failures = payload.get("failures")
        if isinstance(raw_output, (dict, list)):
            raw_output = json.dumps(raw_output)

        return cls(
            policy_name=str(row.get("policy.name") or ""),
            decision=decision,
            severity=severity,
            output=raw_output or "",
            snapshot_name=row.get("snapshot.name"),
            application_name=row.get("snapshot.application_id.name"),
            impacted_node=row.get("impacted_node.name"),
            node_path=row.get("node_path"),
            failure_count=len(failures) if isinstance(failures, list) else 0,
        )

    def to_report_row(self) -> dict[str, Any]:
        return {
            "policyName": self.policy_name,
            "decision": self.decision.value,
            "type": self.severity.value,
            "applicationName": self.application_name,
            "snapshotName": self.snapshot_name,
            "impactedNode": self.impacted_node,
            "nodePath": self.node_path,
            "output": self.output,
        }


class ValidationReport(BaseModel):
    """Policy results of one snapshot, grouped by policy name and ordered by severity."""

    sys_id: str
    name: str
    deployable_name: str
    published: bool
    validation: ValidationState
    failed: dict[str, list[PolicyResult]] = Field(default_factory=dict)
    warning: dict[str, list[PolicyResult]] = Field(default_factory=dict)
    passed: dict[str, list[PolicyResult]] = Field(default_factory=dict)

    @property
    def results(self) -> list[PolicyResult]:
        """All rows: failed groups, then warning groups, then the rest."""
        ordered: list[PolicyResult] = []
        for groups in (self.failed, self.warning, self.passed):
            for rows in groups.values():
                ordered.extend(rows)
        return ordered

    @property
    def offending(self) -> list[PolicyResult]:
        """Rows of failed and warning policies, in report order."""
        rows: list[PolicyResult] = []
        for groups in (self.failed, self.warning):
            for group in groups.values():
                rows.extend(group)
        return rows


def _parse_payload(raw: Any) -> dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _parse_decision(value: Any) -> PolicyDecision:
    try:
        return PolicyDecision(str(value).strip().lower())
    except ValueError:
        return PolicyDecision.OTHER
