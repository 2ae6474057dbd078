from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _RemoteState(str, Enum):
    """String enum that maps unrecognized remote values to UNKNOWN."""

    @classmethod
    def _missing_(cls, value: object) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return cls("unknown")


class UploadState(_RemoteState):
    """State of an upload job (``upload-status`` endpoint)."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"
    EXPIRED = "expired"
    UNKNOWN = "unknown"


UPLOAD_TERMINAL_STATES = frozenset(
    {UploadState.COMPLETED, UploadState.ERROR, UploadState.EXPIRED}
)


class SnapshotStatus(_RemoteState):
    """Snapshot generation status of a changeset (``snapshot_status`` column)."""

    REQUESTED = "requested"
    IN_PROGRESS = "in_progress"
    CREATED = "created"
    ERROR = "error"
    NONE = "none"
    UNKNOWN = "unknown"


SNAPSHOT_TERMINAL_STATES = frozenset(
    {SnapshotStatus.CREATED, SnapshotStatus.ERROR, SnapshotStatus.NONE}
)


class ValidationState(_RemoteState):
    """Validation field of a snapshot record."""

    REQUESTED = "requested"
    NOT_VALIDATED = "not_validated"
    IN_PROGRESS = "in_progress"
    PASSED = "passed"
    PASSED_WITH_EXCEPTION = "passed_with_exception"
    FAILED = "failed"
    EXECUTION_ERROR = "execution_error"
    UNKNOWN = "unknown"

    @property
    def is_terminal(self) -> bool:
        return self in VALIDATION_TERMINAL_STATES

    @property
    def is_pass(self) -> bool:
        return self in VALIDATION_PASS_STATES


VALIDATION_TERMINAL_STATES = frozenset(
    {
        ValidationState.NOT_VALIDATED,
        ValidationState.PASSED,
        ValidationState.PASSED_WITH_EXCEPTION,
        ValidationState.FAILED,
        ValidationState.EXECUTION_ERROR,
    }
)
VALIDATION_PASS_STATES = frozenset(
    {ValidationState.PASSED, ValidationState.PASSED_WITH_EXCEPTION}
)


class SnapshotRecord(BaseModel):
    """A snapshot row as read from ``sn_cdm_snapshot``. Re-fetched, never mutated."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    sys_id: str
    name: str
    published: bool = False
    validation: ValidationState = ValidationState.NOT_VALIDATED
    created_on: str | None = Field(default=None, alias="sys_created_on")

    @field_validator("published", mode="before")
    @classmethod
    def _parse_published(cls, v: Any) -> bool:
        # The Table API returns booleans as "true"/"false"
        if isinstance(v, bool):
            return v
        return str(v).strip().lower() == "true"

    @field_validator("validation", mode="before")
    @classmethod
    def _parse_validation(cls, v: Any) -> ValidationState:
        if v is None or v == "":
            return ValidationState.NOT_VALIDATED
        return ValidationState(v)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> SnapshotRecord:
        return cls.model_validate(row)
