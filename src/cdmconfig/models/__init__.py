"""Typed records read from the CDM tables."""

from cdmconfig.models.policy import PolicyDecision, PolicyResult, PolicySeverity, ValidationReport
from cdmconfig.models.snapshot import (
    SNAPSHOT_TERMINAL_STATES,
    UPLOAD_TERMINAL_STATES,
    VALIDATION_PASS_STATES,
    VALIDATION_TERMINAL_STATES,
    SnapshotRecord,
    SnapshotStatus,
    UploadState,
    ValidationState,
)

__all__ = [
    "PolicyDecision",
    "PolicyResult",
    "PolicySeverity",
    "SNAPSHOT_TERMINAL_STATES",
    "SnapshotRecord",
    "SnapshotStatus",
    "UPLOAD_TERMINAL_STATES",
    "UploadState",
    "VALIDATION_PASS_STATES",
    "VALIDATION_TERMINAL_STATES",
    "ValidationReport",
    "ValidationState",
]
