"""Publish a validated snapshot."""

from cdmconfig.actions import ActionConsole
from cdmconfig.cdm.client import JSON_HEADERS, CdmClient
from cdmconfig.constants import API
from cdmconfig.models import SnapshotRecord, ValidationState


def publish_snapshot(
    client: CdmClient,
    console: ActionConsole,
    validation_state: ValidationState,
    snapshot: SnapshotRecord,
) -> bool:
    """
    Publish the snapshot when its validation passed.

    Returns:
        True if the snapshot is published (now or already), False if publishing
        was skipped because validation did not pass
    """
    console.info("PublishSnapshot begins....")

    if snapshot.published:
        console.info(f"No action required as snapshot '{snapshot.name}' is already published.")
        return True

    if not ValidationState(validation_state).is_pass:
        console.warning(
            f"Snapshot '{snapshot.name}' cannot be published as the validation status is not "
            f"'passed' or 'passed_with_exception'. The validation status is "
            f"{ValidationState(validation_state).value}."
        )
        return False

    console.debug("publishValidatedSnapshot begins...")
    response = client.post(
        API.CDM_SNAPSHOT_PUBLISH.format(sys_id=snapshot.sys_id), headers=JSON_HEADERS
    )
    console.debug(f"API response : {response}")
    console.info(f"Snapshot '{snapshot.name}' published successfully.")
    return True
