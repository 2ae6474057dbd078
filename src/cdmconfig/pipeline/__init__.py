"""Workflow stages: upload, resolve snapshot, validate, publish, report."""

from .polling import poll
from .publish import publish_snapshot
from .results import aggregate_policy_results, fetch_validation_results
from .runner import run_pipeline
from .snapshot import fetch_snapshot
from .upload import upload_config
from .validate import validate_snapshot

__all__ = [
    "aggregate_policy_results",
    "fetch_snapshot",
    "fetch_validation_results",
    "poll",
    "publish_snapshot",
    "run_pipeline",
    "upload_config",
    "validate_snapshot",
]
