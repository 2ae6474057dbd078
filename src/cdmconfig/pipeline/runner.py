"""Run the upload -> snapshot -> validate -> publish -> report workflow."""

import time
from pathlib import Path
from typing import Callable, TypeVar

from cdmconfig.actions import ActionConsole
from cdmconfig.cdm.client import CdmClient
from cdmconfig.config import ActionInputs, PollingConfig
from cdmconfig.errors import CdmError, PolicyValidationError
from cdmconfig.models import SnapshotRecord, ValidationState
from cdmconfig.pipeline._shared import Err, Ok, PipelineResult, StageFailure, StageResult
from cdmconfig.pipeline.polling import SleepFn
from cdmconfig.pipeline.publish import publish_snapshot
from cdmconfig.pipeline.results import fetch_validation_results
from cdmconfig.pipeline.snapshot import fetch_snapshot
from cdmconfig.pipeline.upload import upload_config
from cdmconfig.pipeline.validate import validate_snapshot

T = TypeVar("T")


def run_stage(stage: str, func: Callable[..., T], *args, **kwargs) -> StageResult[T]:
    """Call a stage, turning any workflow error into an Err value."""
    try:
        return Ok(func(*args, **kwargs))
    except CdmError as e:
        return Err(StageFailure(stage=stage, kind=e.kind, message=str(e)))


def ensure_validation_passed(snapshot: SnapshotRecord, validation_state: ValidationState) -> None:
    if not validation_state.is_pass:
        raise PolicyValidationError(
            f"Validation failed for the snapshot '{snapshot.name}'. "
            f"The validation status of the snapshot is {validation_state.value}."
        )


def run_pipeline(
    inputs: ActionInputs,
    client: CdmClient,
    console: ActionConsole,
    polling: PollingConfig | None = None,
    output_dir: Path = Path("."),
    sleep: SleepFn = time.sleep,
) -> PipelineResult:
    """
    Run every stage in order and stop at the first failure.

    Flow:
    1. Upload config files (stop here unless auto-commit and auto-validate are on)
    2. Resolve the snapshot of the changeset
    3. Validate the snapshot
    4. Publish it when auto-publish is on
    5. Fetch policy results and write the reports
    6. Fail on a non-passing validation if asked to

    A failure is reported once through ``console.set_failed``. Nothing is rolled
    back: uploads that were committed stay committed.
    """
    polling = polling or PollingConfig()
    result = PipelineResult()

    def stop(outcome: Err) -> PipelineResult:
        result.failure = outcome.failure
        console.set_failed(outcome.failure.message)
        return result

    outcome = run_stage(
        "upload",
        upload_config,
        client,
        console,
        config_file_path=inputs.config_file_path,
        target=inputs.target,
        app_name=inputs.application_name,
        deployable_name=inputs.deployable_name,
        collection_name=inputs.collection_name,
        data_format=inputs.data_format,
        auto_commit=inputs.auto_commit,
        name_path=inputs.name_path,
        changeset_number=inputs.changeset,
        data_format_attributes=inputs.data_format_attributes,
        polling=polling.upload,
        sleep=sleep,
    )
    if isinstance(outcome, Err):
        return stop(outcome)
    result.changeset_number = outcome.value
    result.completed_stages.append("upload")

    if not inputs.auto_commit:
        console.info(
            "The auto-commit input argument is set to false. "
            "Further evaluation of the action was stopped."
        )
        result.stopped_after = "upload"
        return result
    if not inputs.auto_validate:
        console.info(
            "The auto-validate input argument is set to false. "
            "Further evaluation of the action was stopped."
        )
        result.stopped_after = "upload"
        return result

    outcome = run_stage(
        "snapshot",
        fetch_snapshot,
        client,
        console,
        app_name=inputs.application_name,
        deployable_name=inputs.deployable_name,
        changeset_number=result.changeset_number,
        polling=polling.snapshot,
        sleep=sleep,
    )
    if isinstance(outcome, Err):
        return stop(outcome)
    snapshot = result.snapshot = outcome.value
    result.completed_stages.append("snapshot")

    outcome = run_stage(
        "validate",
        validate_snapshot,
        client,
        console,
        snapshot,
        inputs.snapshot_validation_timeout,
        polling=polling.validation,
        sleep=sleep,
    )
    if isinstance(outcome, Err):
        return stop(outcome)
    validation_state = result.validation_state = outcome.value
    result.completed_stages.append("validate")

    if inputs.auto_publish:
        outcome = run_stage("publish", publish_snapshot, client, console, validation_state, snapshot)
        if isinstance(outcome, Err):
            return stop(outcome)
        result.published = outcome.value
        result.completed_stages.append("publish")
    else:
        console.info(
            "The auto-publish input argument is set to false. "
            "No snapshot will be published in this action."
        )

    outcome = run_stage(
        "report",
        fetch_validation_results,
        client,
        console,
        app_name=inputs.application_name,
        deployable_name=inputs.deployable_name,
        validation_state=validation_state,
        publish_state=result.published,
        snapshot=snapshot,
        output_dir=output_dir,
    )
    if isinstance(outcome, Err):
        return stop(outcome)
    result.report = outcome.value
    result.completed_stages.append("report")

    if inputs.terminate_on_policy_validation_failures:
        outcome = run_stage("policy", ensure_validation_passed, snapshot, validation_state)
        if isinstance(outcome, Err):
            return stop(outcome)

    return result
