"""Repeat a remote call until it reports a terminal state."""

import time
from typing import Callable, TypeVar

from cdmconfig.actions import ActionConsole
from cdmconfig.config import PollingPolicy, PollMode

R = TypeVar("R")

SleepFn = Callable[[float], None]


def poll(
    action: Callable[[], R],
    is_terminal: Callable[[R], bool],
    max_attempts: int,
    initial_interval: float,
    mode: PollMode = PollMode.FIXED,
    sleep: SleepFn = time.sleep,
    console: ActionConsole | None = None,
) -> R | None:
    """
    Call ``action`` until ``is_terminal`` accepts its result.

    Args:
        action: Remote call; an exception counts as a used attempt and polling continues
        is_terminal: Checked only against successful results
        max_attempts: Upper bound on calls to ``action``
        initial_interval: Seconds to wait between attempts
        mode: FIXED keeps the interval, EXPONENTIAL doubles it after every attempt
        sleep: Suspension function, injectable for tests
        console: Where attempt progress is reported

    Returns:
        The first terminal result, or None when attempts ran out
    """
    interval = initial_interval

    for attempt in range(1, max_attempts + 1):
        try:
            response = action()
        except Exception as e:
            if console:
                console.warning(f"Attempt {attempt}: Polling error - {e}")
        else:
            if is_terminal(response):
                if console:
                    console.debug("Polling successful. Condition met.")
                return response
            if console:
                console.debug(f"Attempt {attempt}: Condition not met yet. Continuing polling.")

        if attempt < max_attempts:
            if mode == PollMode.EXPONENTIAL:
                interval *= 2
            if console:
                console.debug(f"Next attempt in {interval} seconds.")
            sleep(interval)
        elif console:
            console.debug("Maximum polling attempts reached. Condition not met.")

    return None


def poll_with_policy(
    action: Callable[[], R],
    is_terminal: Callable[[R], bool],
    policy: PollingPolicy,
    max_attempts: int | None = None,
    sleep: SleepFn = time.sleep,
    console: ActionConsole | None = None,
) -> R | None:
    """Run ``poll`` with the interval and mode of a configured policy."""
    return poll(
        action,
        is_terminal,
        max_attempts=policy.max_attempts if max_attempts is None else max_attempts,
        initial_interval=policy.interval,
        mode=policy.mode,
        sleep=sleep,
        console=console,
    )
