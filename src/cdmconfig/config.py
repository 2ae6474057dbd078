"""Configuration loading and validation."""

import math
import os
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

from cdmconfig.errors import ConfigurationError


class Target(str, Enum):
    """Upload endpoint kind."""

    COMPONENT = "component"
    COLLECTION = "collection"
    DEPLOYABLE = "deployable"

    @property
    def endpoint_suffix(self) -> str:
        return f"{self.value}s"


class PollMode(str, Enum):
    FIXED = "fixed"
    EXPONENTIAL = "exponential"


class Credentials(BaseModel):
    """Basic-auth credentials for the ServiceNow instance."""

    model_config = ConfigDict(frozen=True)

    username: str
    password: SecretStr


class PollingPolicy(BaseModel):
    """How often and how long a single remote state is polled."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=10, ge=0)
    interval: float = Field(gt=0)  # seconds
    mode: PollMode = PollMode.FIXED

    def attempts_for_timeout(self, timeout_minutes: float) -> int:
        """
        Number of attempts that keep the total wait within ``timeout_minutes``.

        Used for snapshot validation in place of ``max_attempts``.
        """
        return math.ceil(timeout_minutes * 60 / self.interval)


class PollingConfig(BaseModel):
    """Polling policies per remote state machine."""

    upload: PollingPolicy = PollingPolicy(max_attempts=70, interval=7.0)
    snapshot: PollingPolicy = PollingPolicy(
        max_attempts=10, interval=1.0, mode=PollMode.EXPONENTIAL
    )
    validation: PollingPolicy = PollingPolicy(interval=60.0)


def _as_bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    return str(v).strip().lower() == "true"


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class ActionInputs(BaseModel):
    """Inputs of a single pipeline run."""

    instance_url: str
    username: str
    password: SecretStr
    target: Target
    application_name: str
    deployable_name: str
    collection_name: str | None = None
    data_format: str
    auto_commit: bool = True
    auto_validate: bool = True
    auto_publish: bool = False
    config_file_path: str
    name_path: str | None = None
    data_format_attributes: str | None = None
    snapshot_validation_timeout: float = 90
    changeset: str | None = None
    terminate_on_policy_validation_failures: bool = False

    @field_validator("instance_url", mode="before")
    @classmethod
    def trim_url(cls, v: str) -> str:
        """Strip whitespace and a trailing slash."""
        url = str(v).strip()
        if url.endswith("/"):
            url = url[:-1]
        return url

    @field_validator(
        "auto_commit",
        "auto_validate",
        "auto_publish",
        "terminate_on_policy_validation_failures",
        mode="before",
    )
    @classmethod
    def parse_flag(cls, v: Any) -> bool:
        return _as_bool(v)

    @field_validator(
        "collection_name", "name_path", "data_format_attributes", "changeset", mode="before"
    )
    @classmethod
    def blank_optional(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("target", mode="before")
    @classmethod
    def parse_target(cls, v: Any) -> Target:
        try:
            return Target(str(v).strip().lower())
        except ValueError:
            raise ValueError(
                "The input parameter target should be one of: component, collection, "
                f"or deployable. The target provided is {v}."
            ) from None

    @field_validator("snapshot_validation_timeout", mode="before")
    @classmethod
    def parse_timeout(cls, v: Any) -> float:
        try:
            timeout = float(str(v).strip())
        except ValueError:
            timeout = math.nan
        if math.isnan(timeout) or timeout <= 0:
            raise ValueError(
                "The value of snapshot-validation-timeout flag should be a number greater "
                f"than 0. Value is {v}. Further evaluation of the action is stopped."
            )
        return timeout

    @property
    def credentials(self) -> Credentials:
        return Credentials(username=self.username, password=self.password)


# action.yml input names -> ActionInputs fields
INPUT_NAMES = {
    "instance-url": "instance_url",
    "devops-integration-username": "username",
    "devops-integration-user-password": "password",
    "target": "target",
    "application-name": "application_name",
    "collection-name": "collection_name",
    "deployable-name": "deployable_name",
    "data-format": "data_format",
    "auto-validate": "auto_validate",
    "auto-commit": "auto_commit",
    "auto-publish": "auto_publish",
    "config-file-path": "config_file_path",
    "name-path": "name_path",
    "data-format-attributes": "data_format_attributes",
    "snapshot-validation-timeout": "snapshot_validation_timeout",
    "changeset": "changeset",
    "terminate-on-policy-validation-failures": "terminate_on_policy_validation_failures",
}


def input_env_var(name: str) -> str:
    """GitHub Actions exposes input ``foo-bar`` as ``INPUT_FOO-BAR``."""
    return f"INPUT_{name.replace(' ', '_').upper()}"


def build_inputs(values: Mapping[str, Any]) -> ActionInputs:
    """Validate raw input values, raising ConfigurationError on the first problem."""
    try:
        return ActionInputs(**{k: v for k, v in values.items() if v is not None})
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        message = err["msg"].removeprefix("Value error, ")
        raise ConfigurationError(f"Invalid input '{field}': {message}") from e


def load_local_env() -> bool:
    """Load a .env file from the working directory without overriding set variables."""
    return load_dotenv(find_dotenv(usecwd=True), override=False)


def load_inputs_from_env(environ: Mapping[str, str] | None = None) -> ActionInputs:
    """Load action inputs from ``INPUT_*`` environment variables (and a local .env)."""
    if environ is None:
        load_local_env()
        environ = os.environ

    values = {}
    for input_name, field in INPUT_NAMES.items():
        raw = environ.get(input_env_var(input_name))
        if raw is None:
            raw = environ.get(input_env_var(input_name).replace("-", "_"))
        if raw is not None and raw != "":
            values[field] = raw
    return build_inputs(values)


def load_polling_config(config_path: Path | None) -> PollingConfig:
    """Load polling policies, falling back to defaults when no file is given."""
    if config_path is None or not Path(config_path).exists():
        return PollingConfig()

    with open(config_path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid polling config {config_path}: {e}") from e

    try:
        return PollingConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid polling config {config_path}: {e}") from e
