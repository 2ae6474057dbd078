"""Resolve the snapshot produced by a changeset."""

import time
from typing import Any

from pydantic import ValidationError

from cdmconfig.actions import ActionConsole
from cdmconfig.cdm.client import CdmClient, require_field
from cdmconfig.config import PollingConfig, PollingPolicy
from cdmconfig.constants import API, OUTPUT, ORDER_BY_DESC, QUERY_SEPARATOR
from cdmconfig.errors import NotFoundError, PollExhaustedError, RemoteStateError
from cdmconfig.models import SNAPSHOT_TERMINAL_STATES, SnapshotRecord, SnapshotStatus
from cdmconfig.pipeline.polling import SleepFn, poll_with_policy

SNAPSHOT_FIELDS = "sys_id,name,validation,published,sys_created_on"


def encoded_query(*clauses: str) -> str:
    """Join Table API query clauses with the encoded-query separator."""
    return QUERY_SEPARATOR.join(clause for clause in clauses if clause)


def fetch_snapshot(
    client: CdmClient,
    console: ActionConsole,
    *,
    app_name: str,
    deployable_name: str,
    changeset_number: str,
    polling: PollingPolicy = PollingConfig().snapshot,
    sleep: SleepFn = time.sleep,
) -> SnapshotRecord:
    """
    Find the snapshot that reflects ``changeset_number`` for the deployable.

    Flow:
    1. Check whether the changeset impacted the deployable
    2. If so, wait for snapshot generation to reach created, error or none
    3. created: fetch the snapshot of this changeset
    4. not impacted or none: fall back to the latest snapshot of the deployable

    Raises:
        RemoteStateError: snapshot generation failed
        PollExhaustedError: snapshot generation never finished
        NotFoundError: no matching snapshot exists
    """
    console.info("FetchSnapshot begins....")
    if is_deployable_impacted(client, console, changeset_number, deployable_name):
        status = wait_for_snapshot_generation(client, console, changeset_number, polling, sleep)
        if status == SnapshotStatus.CREATED:
            console.info(f"Snapshot created successfully for {changeset_number}")
            console.info("Fetching the snapshot with changesetNumber..")
            return get_snapshot_by_changeset(client, console, app_name, deployable_name, changeset_number)
        console.info(f"No new snapshot created for changeset : {changeset_number}")

    console.info("Fetching the latest snapshot..")
    return get_latest_snapshot(client, console, app_name, deployable_name)


def is_deployable_impacted(
    client: CdmClient,
    console: ActionConsole,
    changeset_number: str,
    deployable_name: str,
) -> bool:
    """Return True when the changeset changed ``deployable_name``; warn about any others."""
    console.debug("isDeployableImpacted begins...")
    response = client.get(
        API.IMPACTED_DEPLOYABLES,
        params={"changesetNumber": changeset_number, "returnFields": "sys_id,name,state"},
    )
    console.debug(f"API response : {response}")

    target = deployable_name.lower()
    names = [
        str(item["name"])
        for item in (response or {}).get("result") or []
        if str(item.get("name") or "").strip()
    ]
    others = [name for name in names if name.lower() != target]
    impacted = any(name.lower() == target for name in names)

    if others:
        joined = ", ".join(others)
        if impacted:
            console.warning(
                f"The config data was uploaded and will be validated against the deployable "
                f"'{deployable_name}'. However the impacted deployables are "
                f"'{deployable_name}, {joined}'."
            )
        else:
            console.warning(
                f"Deployable '{deployable_name}' was not impacted with the changeset "
                f"{changeset_number}. However the impacted deployables are '{joined}' and "
                "no validation will be performed on them."
            )

    if impacted:
        console.info(f"Deployable {deployable_name} is impacted..")
        return True

    console.info(f"Deployable {deployable_name} is not impacted for {changeset_number}..")
    return False


def wait_for_snapshot_generation(
    client: CdmClient,
    console: ActionConsole,
    changeset_number: str,
    polling: PollingPolicy = PollingConfig().snapshot,
    sleep: SleepFn = time.sleep,
) -> SnapshotStatus:
    """Poll the changeset record until snapshot generation is created, error or none."""
    console.debug("waitForSnapshotGeneration begins...")
    params = {
        "sysparm_query": f"number={changeset_number}",
        "sysparm_fields": "number,sys_id,snapshot_status",
    }

    response = poll_with_policy(
        lambda: client.get(API.CDM_CHANGESET_TABLE, params=params),
        lambda r: _snapshot_status(r) in SNAPSHOT_TERMINAL_STATES,
        polling,
        sleep=sleep,
        console=console,
    )
    console.debug(f"API response : {response}")
    if response is None or not response.get("result"):
        raise PollExhaustedError(
            "Maximum polling attempts reached. Snapshot process request of changeset : "
            f"{changeset_number} is not yet completed."
        )

    status = _snapshot_status(response)
    if status == SnapshotStatus.ERROR:
        raise RemoteStateError(f"The snapshot generation failed for changeset : {changeset_number}.")
    return status


def get_latest_snapshot(
    client: CdmClient,
    console: ActionConsole,
    app_name: str,
    deployable_name: str,
) -> SnapshotRecord:
    """Most recently created snapshot of the deployable."""
    console.debug("getLatestSnapshot begins...")
    params = {
        "sysparm_query": encoded_query(
            f"cdm_application_id.name={app_name}",
            f"cdm_deployable_id.name={deployable_name}",
            f"{ORDER_BY_DESC}sys_created_on",
        ),
        "sysparm_fields": SNAPSHOT_FIELDS,
        "sysparm_limit": "1",
    }
    rows = _get_rows(client, console, params)
    if not rows:
        raise NotFoundError(
            f"The latest snapshot of deployable {deployable_name} in the application "
            f"{app_name} is not found."
        )
    return _resolved(console, rows[0])


def get_snapshot_by_changeset(
    client: CdmClient,
    console: ActionConsole,
    app_name: str,
    deployable_name: str,
    changeset_number: str,
) -> SnapshotRecord:
    """Snapshot of the deployable whose parent changeset is ``changeset_number``."""
    console.debug("getSnapshotByChangesetNumber begins...")
    params = {
        "sysparm_query": encoded_query(
            f"changeset_id.number={changeset_number}",
            f"cdm_deployable_id.name={deployable_name}",
        ),
        "sysparm_fields": SNAPSHOT_FIELDS,
    }
    rows = _get_rows(client, console, params)
    if not rows:
        raise NotFoundError(
            f"The snapshot with changeset number : {changeset_number} of deployable : "
            f"{deployable_name} in the application {app_name} is not found."
        )
    return _resolved(console, rows[0])


def _get_rows(client: CdmClient, console: ActionConsole, params: dict[str, str]) -> list[dict[str, Any]]:
    response = client.get(API.CDM_SNAPSHOT_TABLE, params=params)
    console.debug(f"API response : {response}")
    return (response or {}).get("result") or []


def _resolved(console: ActionConsole, row: dict[str, Any]) -> SnapshotRecord:
    try:
        snapshot = SnapshotRecord.from_row(row)
    except ValidationError as e:
        raise RemoteStateError(f"Unexpected snapshot record {row}: {e}") from e
    console.info(
        f"Snapshot found with sys_id : {snapshot.sys_id}, name : {snapshot.name}, "
        f"validation status: {snapshot.validation.value}, published status: {snapshot.published}."
    )
    console.set_output(OUTPUT.SNAPSHOT_NAME, snapshot.name)
    return snapshot


def _snapshot_status(response: Any) -> SnapshotStatus | None:
    rows = (response or {}).get("result") or []
    if not rows:
        return None
    return SnapshotStatus(require_field(rows[0], "snapshot_status"))
