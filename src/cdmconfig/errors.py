"""Error types raised by the workflow stages."""

from enum import Enum


class ErrorKind(str, Enum):
    """Broad category of a pipeline failure."""

    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    REMOTE_STATE = "remote_state"
    POLL_EXHAUSTED = "poll_exhausted"
    POLICY = "policy"


class CdmError(Exception):
    """Base class for every error the workflow reports as a failure."""

    kind: ErrorKind = ErrorKind.REMOTE_STATE


class ConfigurationError(CdmError, ValueError):
    """Invalid or missing input, detected before any remote call."""

    kind = ErrorKind.CONFIGURATION


class TransportError(CdmError):
    """A request failed: non-2xx status, no response, or a local request error."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RemoteStateError(CdmError):
    """The remote entity reached an explicit failure state."""

    kind = ErrorKind.REMOTE_STATE


class NotFoundError(RemoteStateError):
    """An expected remote record does not exist."""


class PollExhaustedError(CdmError):
    """A terminal state was not reached within the polling budget."""

    kind = ErrorKind.POLL_EXHAUSTED


class PolicyValidationError(CdmError):
    """The snapshot did not pass policy validation."""

    kind = ErrorKind.POLICY
