"""Shared types for the workflow stages."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, TypeVar

from cdmconfig.errors import ErrorKind
from cdmconfig.models import SnapshotRecord, ValidationReport, ValidationState

T = TypeVar("T")


@dataclass(frozen=True)
class UploadJob:
    """One config file to upload, with the query attributes of its request."""

    path: Path
    params: dict[str, Any]
    is_last_in_batch: bool = False


@dataclass(frozen=True)
class StageFailure:
    """Why a stage stopped the pipeline."""

    stage: str
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    failure: StageFailure


StageResult = Ok[T] | Err


@dataclass
class PipelineResult:
    """Everything a pipeline run produced, up to the stage that stopped it."""

    changeset_number: str | None = None
    snapshot: SnapshotRecord | None = None
    validation_state: ValidationState | None = None
    published: bool = False
    report: ValidationReport | None = None
    stopped_after: str | None = None
    failure: StageFailure | None = None
    completed_stages: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.failure is None
