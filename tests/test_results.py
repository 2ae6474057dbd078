"""Unit tests for policy result classification, aggregation and reports."""

import json

import pytest

from cdmconfig.constants import API, OUTPUT, SARIF_VERSION
from cdmconfig.models import PolicyDecision, PolicyResult, PolicySeverity, SnapshotRecord, ValidationState
from cdmconfig.pipeline.report import build_json_report, build_sarif_report
from cdmconfig.pipeline.results import aggregate_policy_results, fetch_validation_results

SNAPSHOT = SnapshotRecord.from_row(
    {"sys_id": "snap-1", "name": "Production-v2.dpl", "validation": "failed", "published": "false"}
)


def row(policy, decision="compliant", type_=None, failures=None, node="node-1"):
    payload = {"decision": decision}
    if type_:
        payload["type"] = type_
    if failures is not None:
        payload["failures"] = failures
    return {
        "policy.name": policy,
        "snapshot.name": "Production-v2.dpl",
        "snapshot.application_id.name": "PaymentDemo",
        "impacted_node.name": node,
        "node_path": f"/{node}",
        "policy_execution.output": json.dumps(payload),
    }


def result(policy, severity):
    decisions = {
        PolicySeverity.FAILURE: PolicyDecision.NON_COMPLIANT,
        PolicySeverity.WARNING: PolicyDecision.COMPLIANT,
        PolicySeverity.INFO: PolicyDecision.COMPLIANT,
    }
    return PolicyResult(policy_name=policy, decision=decisions[severity], severity=severity)


class TestPolicyResultFromRow:
    """Tests for PolicyResult.from_row() classification."""

    def test_non_compliant_is_a_failure(self):
        parsed = PolicyResult.from_row(row("A", "non_compliant", failures=["x", "y"]))
        assert parsed.severity == PolicySeverity.FAILURE
        assert parsed.decision == PolicyDecision.NON_COMPLIANT
        assert parsed.failure_count == 2

    def test_non_compliant_wins_over_payload_type(self):
        parsed = PolicyResult.from_row(row("A", "non_compliant", type_="warning"))
        assert parsed.severity == PolicySeverity.FAILURE

    @pytest.mark.parametrize("type_", ["failure", "warning"])
    def test_payload_type_is_used_otherwise(self, type_):
        parsed = PolicyResult.from_row(row("A", "compliant", type_=type_))
        assert parsed.severity == PolicySeverity(type_)

    def test_compliant_without_type_is_info(self):
        parsed = PolicyResult.from_row(row("A", "compliant_with_exception"))
        assert parsed.severity == PolicySeverity.INFO
        assert parsed.decision == PolicyDecision.COMPLIANT_WITH_EXCEPTION

    @pytest.mark.parametrize("output", [None, "", "not json"])
    def test_missing_payload_counts_as_not_executed(self, output):
        raw = row("A")
        raw["policy_execution.output"] = output
        parsed = PolicyResult.from_row(raw)
        assert parsed.decision == PolicyDecision.NOT_EXECUTED
        assert parsed.severity == PolicySeverity.FAILURE

    def test_unknown_decision_is_other(self):
        parsed = PolicyResult.from_row(row("A", "skipped"))
        assert parsed.decision == PolicyDecision.OTHER
        assert parsed.severity == PolicySeverity.INFO

    def test_report_row_fields(self):
        parsed = PolicyResult.from_row(row("A", "non_compliant"))
        assert parsed.to_report_row() == {
            "policyName": "A",
            "decision": "non_compliant",
            "type": "failure",
            "applicationName": "PaymentDemo",
            "snapshotName": "Production-v2.dpl",
            "impactedNode": "node-1",
            "nodePath": "/node-1",
            "output": '{"decision": "non_compliant"}',
        }


class TestAggregatePolicyResults:
    """Tests for aggregate_policy_results()."""

    def test_groups_by_policy_in_first_seen_order(self):
        """A(fail), B(pass), A(pass), C(warn) -> failed {A: 2 rows}, warning {C}, passed {B}."""
        rows = [
            result("A", PolicySeverity.FAILURE),
            result("B", PolicySeverity.INFO),
            result("A", PolicySeverity.INFO),
            result("C", PolicySeverity.WARNING),
        ]

        failed, warning, passed = aggregate_policy_results(rows)

        assert list(failed) == ["A"]
        assert [r.severity for r in failed["A"]] == [PolicySeverity.FAILURE, PolicySeverity.INFO]
        assert list(warning) == ["C"]
        assert list(passed) == ["B"]

    def test_every_row_lands_in_exactly_one_group(self):
        rows = [result(p, s) for p, s in [("Z", PolicySeverity.INFO), ("Y", PolicySeverity.WARNING)] * 3]

        failed, warning, passed = aggregate_policy_results(rows)

        total = sum(len(g) for groups in (failed, warning, passed) for g in groups.values())
        assert total == len(rows)
        assert list(passed) == ["Z"]
        assert list(warning) == ["Y"]

    def test_order_follows_input_not_alphabet(self):
        rows = [result(p, PolicySeverity.FAILURE) for p in ["zeta", "alpha", "mid"]]

        failed, _, _ = aggregate_policy_results(rows)

        assert list(failed) == ["zeta", "alpha", "mid"]

    def test_annotates_once_per_policy(self, console):
        rows = [
            PolicyResult.from_row(row("A", "non_compliant", failures=["x"])),
            PolicyResult.from_row(row("A", "non_compliant", failures=["y"], node="node-2")),
            PolicyResult.from_row(row("C", "compliant", type_="warning")),
            PolicyResult.from_row(row("D", "compliant_with_exception")),
        ]

        aggregate_policy_results(rows, console)

        (error,) = console.of("error")
        assert "Policy 'A' is found non_compliant" in error
        assert "Total number of failures messages : 2" in error
        (warning,) = console.of("warning")
        assert "Policy 'C'" in warning
        assert "Policy 'D' is compliant with exception." in console.of("info")

    def test_policy_with_failures_and_exceptions_gets_both_annotations(self, console):
        rows = [
            PolicyResult.from_row(row("A", "non_compliant")),
            PolicyResult.from_row(row("A", "compliant_with_exception", node="node-2")),
            PolicyResult.from_row(row("A", "compliant", type_="warning", node="node-3")),
        ]

        failed, _, _ = aggregate_policy_results(rows, console)

        assert list(failed) == ["A"]
        assert len(console.of("error")) == 1
        assert len(console.of("warning")) == 1
        assert "Policy 'A' is compliant with exception." in console.of("info")

    def test_empty_input(self):
        assert aggregate_policy_results([]) == ({}, {}, {})


class TestFetchValidationResults:
    """Tests for fetch_validation_results() and the written reports."""

    @pytest.fixture
    def rows(self):
        return [
            row("A", "non_compliant", failures=["x"]),
            row("B", "compliant"),
            row("A", "compliant", node="node-2"),
            row("C", "compliant", type_="warning"),
        ]

    def fetch(self, client, console, tmp_path, publish_state=False):
        return fetch_validation_results(
            client,
            console,
            deployable_name="Production",
            validation_state=ValidationState.FAILED,
            publish_state=publish_state,
            snapshot=SNAPSHOT,
            app_name="PaymentDemo",
            output_dir=tmp_path,
        )

    def test_queries_latest_results_of_the_snapshot(self, client, console, tmp_path, rows):
        client.on("GET", API.CDM_POLICY_VALIDATION_RESULT, {"result": rows})

        self.fetch(client, console, tmp_path)

        (call,) = client.calls
        assert call.params["sysparm_query"] == "snapshot.sys_id=snap-1^is_latest=true^ORDERBYpolicy.name"

    def test_json_report_lists_rows_failed_first(self, client, console, tmp_path, rows):
        client.on("GET", API.CDM_POLICY_VALIDATION_RESULT, {"result": rows})

        report = self.fetch(client, console, tmp_path)

        written = json.loads((tmp_path / OUTPUT.VALIDATION_RESULTS_JSON_FILE).read_text())
        assert written == build_json_report(report)
        assert written["sys_id"] == "snap-1"
        assert written["deployableName"] == "Production"
        assert written["validation"] == "failed"
        assert written["published"] is False
        assert [r["policyName"] for r in written["result"]] == ["A", "A", "C", "B"]
        assert json.loads(console.outputs[OUTPUT.VALIDATION_RESULTS]) == written

    def test_sarif_has_a_rule_per_policy_and_a_result_per_offending_row(
        self, client, console, tmp_path, rows
    ):
        client.on("GET", API.CDM_POLICY_VALIDATION_RESULT, {"result": rows})

        self.fetch(client, console, tmp_path)

        sarif = json.loads((tmp_path / OUTPUT.VALIDATION_RESULTS_SARIF_FILE).read_text())
        assert sarif["version"] == SARIF_VERSION
        (run,) = sarif["runs"]
        rules = run["tool"]["driver"]["rules"]
        assert [r["id"] for r in rules] == ["Production-v2.dpl:A", "Production-v2.dpl:C"]
        assert [r["defaultConfiguration"]["level"] for r in rules] == ["error", "warning"]
        assert [(r["ruleId"], r["level"]) for r in run["results"]] == [
            ("Production-v2.dpl:A", "error"),
            ("Production-v2.dpl:C", "warning"),
        ]
        location = run["results"][0]["locations"][0]["physicalLocation"]["artifactLocation"]
        assert location["uri"] == "Production-v2.dpl"

    def test_publish_state_marks_report_published(self, client, console, tmp_path, rows):
        client.on("GET", API.CDM_POLICY_VALIDATION_RESULT, {"result": rows})

        assert self.fetch(client, console, tmp_path, publish_state=True).published is True

    def test_empty_results_warn_and_still_write(self, client, console, tmp_path):
        client.on("GET", API.CDM_POLICY_VALIDATION_RESULT, {"result": []})

        report = self.fetch(client, console, tmp_path)

        assert report.results == []
        assert any("Validation results are empty" in w for w in console.of("warning"))
        assert (tmp_path / OUTPUT.VALIDATION_RESULTS_JSON_FILE).exists()
        sarif = build_sarif_report(report)
        assert sarif["runs"][0]["results"] == []

    def test_mixed_policies_end_to_end(self, client, console, tmp_path):
        """A fails, B warns, A fails again, C passes: A, A, B, C with two rules and three results."""
        client.on(
            "GET",
            API.CDM_POLICY_VALIDATION_RESULT,
            {
                "result": [
                    row("A", "non_compliant"),
                    row("B", "compliant", type_="warning"),
                    row("A", "non_compliant", node="node-2"),
                    row("C", "compliant"),
                ]
            },
        )

        report = self.fetch(client, console, tmp_path)

        assert [r.policy_name for r in report.results] == ["A", "A", "B", "C"]
        run = build_sarif_report(report)["runs"][0]
        assert len(run["tool"]["driver"]["rules"]) == 2
        assert len(run["results"]) == 3
