"""
Client-side submission state machine with a rate-limit countdown.

Idle -> Pending on submit; Pending -> Success | RateLimited(n) | Error;
RateLimited(n) ticks down once per second to RateLimited(0) -> Ready;
Ready (and Idle, Success, Error) accept a new submission.
"""

import asyncio
from enum import Enum
from typing import Callable, List, Optional

from shared.logging import get_logger


class SubmissionState(str, Enum):
    """Submission states."""
    IDLE = "idle"
    PENDING = "pending"
    RATE_LIMITED = "rate_limited"
    READY = "ready"
    ERROR = "error"
    SUCCESS = "success"


SUBMITTABLE_STATES = {
    SubmissionState.IDLE,
    SubmissionState.READY,
    SubmissionState.SUCCESS,
    SubmissionState.ERROR,
}


class InvalidTransition(Exception):
    """Raised when an event is not allowed in the current state."""

    def __init__(self, state: SubmissionState, event: str):
        self.state = state
        self.event = event
        super().__init__(f"Cannot {event} while {state.value}")


class RetryStateMachine:
    """Mirrors a server-issued retry window and re-enables submission after it.

    The countdown runs on a single asyncio task owned by this object;
    ``close()`` cancels it so no timer outlives its owner.
    """

    def __init__(self, tick_interval: float = 1.0):
        self.tick_interval = tick_interval
        self.state = SubmissionState.IDLE
        self.remaining_seconds = 0
        self.last_error: Optional[str] = None
        self._countdown_task: Optional[asyncio.Task] = None
        self._listeners: List[Callable[["RetryStateMachine"], None]] = []
        self.logger = get_logger("client.retry_state")

    @property
    def can_submit(self) -> bool:
        return self.state in SUBMITTABLE_STATES

    def subscribe(self, listener: Callable[["RetryStateMachine"], None]) -> None:
        """Register a callback invoked after every transition."""
        self._listeners.append(listener)

    def _transition(self, state: SubmissionState, remaining: int = 0) -> None:
        self.state = state
        self.remaining_seconds = remaining
        for listener in list(self._listeners):
            listener(self)

    def submit(self) -> None:
        if not self.can_submit:
            raise InvalidTransition(self.state, "submit")
        self.last_error = None
        self._transition(SubmissionState.PENDING)

    def succeed(self) -> None:
        self._require_pending("succeed")
        self._transition(SubmissionState.SUCCESS)

    def fail(self, reason: Optional[str] = None) -> None:
        self._require_pending("fail")
        self.last_error = reason
        self._transition(SubmissionState.ERROR)

    def rate_limit(self, retry_after_seconds: int) -> None:
        """Enter RateLimited(n) and start the countdown when running in a loop."""
        self._require_pending("rate_limit")
        remaining = max(0, int(retry_after_seconds))
        if remaining == 0:
            self._transition(SubmissionState.READY)
            return
        self._transition(SubmissionState.RATE_LIMITED, remaining)
        self._start_countdown()

    def tick(self) -> None:
        """Advance the countdown by one step; RateLimited(0) becomes Ready."""
        if self.state != SubmissionState.RATE_LIMITED:
            return
        remaining = max(0, self.remaining_seconds - 1)
        if remaining == 0:
            self._transition(SubmissionState.READY)
        else:
            self._transition(SubmissionState.RATE_LIMITED, remaining)

    def _require_pending(self, event: str) -> None:
        if self.state != SubmissionState.PENDING:
            raise InvalidTransition(self.state, event)

    def _start_countdown(self) -> None:
        self._cancel_countdown()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: the owner drives tick() itself.
            return
        self._countdown_task = loop.create_task(self._run_countdown())

    async def _run_countdown(self) -> None:
        while self.state == SubmissionState.RATE_LIMITED:
            await asyncio.sleep(self.tick_interval)
            self.tick()

    async def wait_until_ready(self) -> None:
        """Wait for a running countdown to finish."""
        if self._countdown_task is not None:
            await asyncio.shield(self._countdown_task)

    def _cancel_countdown(self) -> None:
        if self._countdown_task is not None and not self._countdown_task.done():
            self._countdown_task.cancel()
        self._countdown_task = None

    async def close(self) -> None:
        """Cancel the countdown; called when the owning context goes away."""
        task = self._countdown_task
        self._cancel_countdown()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
