import time
from typing import Callable


def wait_for(
        condition: Callable[[], bool],
        timeout: float = 5.0,
        interval: float = 0.01,
):
    """
    Wait until condition() returns True or timeout is reached.

    Raises AssertionError on timeout.
    """
    deadline = time.monotonic() + timeout

    while time.monotonic() < deadline:
        if condition():
            return
        time.sleep(interval)

    raise AssertionError("Condition not met before timeout")


class SleepRecorder:
    """Drop-in for time.sleep that records requested delays without waiting."""

    def __init__(self):
        self.delays = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
