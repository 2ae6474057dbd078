"""Shared fakes for the pipeline tests."""

import io
from dataclasses import dataclass
from typing import Any

import pytest
from rich.console import Console

from cdmconfig.actions import ActionConsole
from cdmconfig.config import PollingConfig, PollingPolicy, PollMode


@dataclass
class Call:
    method: str
    path: str
    params: dict[str, Any] | None = None
    data: Any = None


class FakeClient:
    """
    Scripted stand-in for CdmClient.

    Responses are queued per (method, path). Each call pops the next response;
    the last one keeps being returned. Exceptions in the queue are raised.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], list[Any]] = {}
        self.calls: list[Call] = []

    def on(self, method: str, path: str, *responses: Any) -> "FakeClient":
        self.routes.setdefault((method, path), []).extend(responses)
        return self

    def get(self, path, params=None):
        return self._dispatch(Call("GET", path, params=params))

    def post(self, path, data=None, params=None, headers=None):
        return self._dispatch(Call("POST", path, params=params, data=data))

    def calls_to(self, method: str, path: str) -> list[Call]:
        return [c for c in self.calls if c.method == method and c.path == path]

    def _dispatch(self, call: Call) -> Any:
        self.calls.append(call)
        queue = self.routes.get((call.method, call.path))
        if not queue:
            raise AssertionError(f"Unexpected request {call.method} {call.path}")
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response


class RecordingConsole(ActionConsole):
    """ActionConsole that keeps every message it was given."""

    def __init__(self):
        super().__init__(console=Console(file=io.StringIO()), verbose=True, environ={})
        self.messages: list[tuple[str, str]] = []

    def info(self, message):
        self.messages.append(("info", message))

    def debug(self, message):
        self.messages.append(("debug", message))

    def warning(self, message):
        self.messages.append(("warning", message))

    def error(self, message):
        self.messages.append(("error", message))

    def of(self, level: str) -> list[str]:
        return [m for lvl, m in self.messages if lvl == level]


FAST_POLICY = PollingPolicy(max_attempts=3, interval=0.01)


def no_sleep(_seconds: float) -> None:
    pass


@pytest.fixture
def client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def console() -> RecordingConsole:
    return RecordingConsole()


@pytest.fixture
def fast_polling() -> PollingConfig:
    return PollingConfig(
        upload=FAST_POLICY,
        snapshot=PollingPolicy(max_attempts=3, interval=0.01, mode=PollMode.EXPONENTIAL),
        validation=PollingPolicy(interval=1.0),
    )
