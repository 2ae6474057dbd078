"""Trigger snapshot validation and wait for its outcome."""

import time
from typing import Any

from cdmconfig.actions import ActionConsole
from cdmconfig.cdm.client import JSON_HEADERS, CdmClient, require_field
from cdmconfig.config import PollingConfig, PollingPolicy
from cdmconfig.constants import API, OUTPUT
from cdmconfig.errors import PollExhaustedError
from cdmconfig.models import SnapshotRecord, ValidationState
from cdmconfig.pipeline.polling import SleepFn, poll_with_policy


def validate_snapshot(
    client: CdmClient,
    console: ActionConsole,
    snapshot: SnapshotRecord,
    timeout_minutes: float,
    polling: PollingPolicy = PollingConfig().validation,
    sleep: SleepFn = time.sleep,
) -> ValidationState:
    """
    Validate a snapshot and return its terminal validation state.

    A published snapshot is not validated again; its current state is returned
    without any remote call. Otherwise validation is triggered and the snapshot
    is polled for at most ``timeout_minutes``.

    Raises:
        PollExhaustedError: the snapshot did not reach a terminal state in time
    """
    console.info("ValidateSnapshot begins....")
    if snapshot.published:
        console.info(
            f"Snapshot {snapshot.name} is already published. No new validation will be performed."
        )
        console.set_output(OUTPUT.VALIDATION_STATUS, snapshot.validation.value)
        return snapshot.validation

    trigger_snapshot_validation(client, console, snapshot)
    state = wait_for_snapshot_validation(client, console, snapshot, timeout_minutes, polling, sleep)
    console.info(f"Validation status for snapshot {snapshot.name} is {state.value}")
    console.set_output(OUTPUT.VALIDATION_STATUS, state.value)
    return state


def trigger_snapshot_validation(
    client: CdmClient, console: ActionConsole, snapshot: SnapshotRecord
) -> None:
    console.debug("triggerSnapshotValidation begins...")
    response = client.post(
        API.CDM_SNAPSHOT_VALIDATE.format(sys_id=snapshot.sys_id), headers=JSON_HEADERS
    )
    console.debug(f"API response : {response}")
    console.info(f"Validation triggered successfully for snapshot {snapshot.name}")


def wait_for_snapshot_validation(
    client: CdmClient,
    console: ActionConsole,
    snapshot: SnapshotRecord,
    timeout_minutes: float,
    polling: PollingPolicy = PollingConfig().validation,
    sleep: SleepFn = time.sleep,
) -> ValidationState:
    """Poll the snapshot's validation field within the timeout budget."""
    console.debug("waitForSnapshotValidation begins...")
    endpoint = f"{API.CDM_SNAPSHOT_TABLE}/{snapshot.sys_id}"
    attempts = polling.attempts_for_timeout(timeout_minutes)

    response = poll_with_policy(
        lambda: client.get(endpoint, params={"sysparm_fields": "validation"}),
        lambda r: _validation_state(r).is_terminal,
        polling,
        max_attempts=attempts,
        sleep=sleep,
        console=console,
    )
    console.debug(f"API response : {response}")
    if response is None:
        raise PollExhaustedError(
            "Maximum polling attempts reached. Snapshot record with sys id "
            f"{snapshot.sys_id} is not validated yet."
        )
    return _validation_state(response)


def _validation_state(response: Any) -> ValidationState:
    return ValidationState(require_field(response, "result.validation"))
