"""Upload config files to the CDM repository and wait for each upload to finish."""

import glob
import time
from pathlib import Path
from typing import Any

from tqdm import tqdm

from cdmconfig.actions import ActionConsole
from cdmconfig.cdm.client import CdmClient, require_field
from cdmconfig.config import PollingConfig, PollingPolicy, Target
from cdmconfig.constants import API, OUTPUT
from cdmconfig.errors import ConfigurationError, PollExhaustedError, RemoteStateError
from cdmconfig.models import UPLOAD_TERMINAL_STATES, UploadState
from cdmconfig.name_path import join_name_path
from cdmconfig.pipeline._shared import UploadJob
from cdmconfig.pipeline.polling import SleepFn, poll_with_policy


def upload_config(
    client: CdmClient,
    console: ActionConsole,
    *,
    config_file_path: str,
    target: Target | str,
    app_name: str,
    data_format: str,
    auto_commit: bool,
    deployable_name: str | None = None,
    collection_name: str | None = None,
    name_path: Any = None,
    changeset_number: str | None = None,
    data_format_attributes: str | None = None,
    polling: PollingPolicy = PollingConfig().upload,
    sleep: SleepFn = time.sleep,
) -> str:
    """
    Upload every file matching ``config_file_path`` and return the resulting changeset.

    Flow:
    1. Resolve the glob to an ordered, non-empty file list
    2. Upload each file, requesting auto-commit only on the last one
    3. Poll the upload status until completed, error or expired
    4. Carry the changeset number into the next upload

    Raises:
        ConfigurationError: unknown target, no matching files, unreadable file
        RemoteStateError: an upload ended in error or expired
        PollExhaustedError: an upload never reached a terminal state
    """
    console.info("UploadConfig begins....")
    endpoint = upload_endpoint_for_target(target)
    files = find_config_files(config_file_path)
    if not files:
        raise ConfigurationError(f"No files found for configFilePath: {config_file_path}")

    base_params = build_upload_params(
        app_name, deployable_name, collection_name, data_format, data_format_attributes
    )
    jobs = plan_upload_jobs(files, base_params, name_path, auto_commit)

    current_changeset = changeset_number
    for job in tqdm(jobs, desc="Uploading config files", disable=len(jobs) < 2):
        console.info(f"Effective namePath: {job.params['namePath']}")
        params = {**job.params, "changesetNumber": current_changeset}
        upload_id = upload(client, console, endpoint, read_config_file(job.path), params)
        current_changeset = check_upload_status(client, console, upload_id, polling, sleep)

    console.set_output(OUTPUT.CHANGESET_NUMBER, current_changeset)
    return current_changeset


def upload_endpoint_for_target(target: Target | str) -> str:
    """Return the upload endpoint path for a component, collection or deployable."""
    try:
        kind = Target(target)
    except ValueError:
        raise ConfigurationError(
            "The input parameter target should be one of: component, collection, "
            f"or deployable. The target provided is {target}."
        ) from None
    return f"{API.UPLOAD_CONFIG_DATA}/{kind.endpoint_suffix}"


def build_upload_params(
    app_name: str,
    deployable_name: str | None,
    collection_name: str | None,
    data_format: str,
    data_format_attributes: str | None,
) -> dict[str, Any]:
    return {
        "appName": app_name,
        "dataFormat": data_format,
        "autoValidate": "false",
        "publishOption": "publish_none",
        "collectionName": collection_name,
        "deployableName": deployable_name,
        "dataFormatAttributes": data_format_attributes,
        "autoDelete": "true",
        "deleteRedundantOverrides": "false",
        "ignoreAttributes": "false",
    }


def plan_upload_jobs(
    files: list[Path],
    base_params: dict[str, Any],
    name_path: Any,
    auto_commit: bool,
) -> list[UploadJob]:
    """Build one job per file; only the last job may auto-commit."""
    jobs = []
    for index, path in enumerate(files):
        is_last = index == len(files) - 1
        params = {
            **base_params,
            "autoCommit": bool(auto_commit) and is_last,
            "namePath": join_name_path(name_path, path.name),
        }
        jobs.append(UploadJob(path=path, params=params, is_last_in_batch=is_last))
    return jobs


def find_config_files(pattern: str) -> list[Path]:
    """Expand a glob pattern to the matching files, skipping node_modules."""
    try:
        matches = glob.glob(pattern, recursive=True)
    except (OSError, ValueError) as e:
        raise ConfigurationError(
            f"Error while trying to fetch the files matching the pattern {pattern} : {e}"
        ) from e

    files = []
    for match in sorted(matches):
        path = Path(match)
        if not path.is_file():
            continue
        if "node_modules" in path.parts:
            continue
        files.append(path)
    return files


def read_config_file(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Error while reading the content from the file {path} : {e}"
        ) from e


def upload(
    client: CdmClient,
    console: ActionConsole,
    endpoint: str,
    content: str,
    params: dict[str, Any],
) -> str:
    """Post one file and return the id of the upload job."""
    console.debug("upload begins...")
    response = client.post(endpoint, data=content, params=params)
    console.debug(f"API response : {response}")
    upload_id = require_field(response, "result.upload_id")
    console.info(f"uploadId: {upload_id}")
    return upload_id


def check_upload_status(
    client: CdmClient,
    console: ActionConsole,
    upload_id: str,
    polling: PollingPolicy = PollingConfig().upload,
    sleep: SleepFn = time.sleep,
) -> str:
    """Wait for an upload job to finish and return its changeset number."""
    console.debug("checkUploadStatus begins...")
    status_endpoint = f"{API.UPLOAD_STATUS}/{upload_id}"

    response = poll_with_policy(
        lambda: client.get(status_endpoint),
        lambda r: _upload_state(r) in UPLOAD_TERMINAL_STATES,
        polling,
        sleep=sleep,
        console=console,
    )
    console.debug(f"API response : {response}")
    if response is None:
        raise PollExhaustedError(
            f"Maximum polling attempts reached. Upload request with id {upload_id} "
            "is not processed yet."
        )

    state = _upload_state(response)
    console.info(f"uploadStatus for uploadId {upload_id}: {state.value}")

    if state == UploadState.COMPLETED:
        return require_field(response, "result.output.number")
    if state == UploadState.EXPIRED:
        raise RemoteStateError(
            f"Upload request with id {upload_id} is taking longer time causing it to expire."
        )
    raise RemoteStateError(f"Upload failed due to : {response['result'].get('output')}")


def _upload_state(response: Any) -> UploadState:
    return UploadState(require_field(response, "result.state"))
