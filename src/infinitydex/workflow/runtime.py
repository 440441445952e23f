"""In-process workflow runtime.

Supplies what the orchestrator needs from a durable-execution engine:
bounded activity retries with exponential backoff, per-attempt timeouts,
timers, named signal channels, a first-event-wins selector and an
append-only event journal. State lives in memory only; a crash loses
in-flight workflows.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, TypeVar

from infinitydex.errors import ActivityTimeout, SwapError
from infinitydex.models import utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded exponential backoff for activity calls."""

    initial_interval: float = 1.0
    backoff_coefficient: float = 2.0
    maximum_interval: float = 10.0
    maximum_attempts: int = 3

    def backoff(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        interval = self.initial_interval * (self.backoff_coefficient ** (attempt - 1))
        return min(interval, self.maximum_interval)


@dataclass(frozen=True)
class ActivityOptions:
    start_to_close_timeout: float = 30.0
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)


def is_retryable(error: BaseException) -> bool:
    """Non-retryable swap errors short-circuit the retry loop."""
    if isinstance(error, SwapError):
        return error.retryable
    return True


async def execute_activity(
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    options: ActivityOptions,
    name: Optional[str] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Run an activity under a retry policy.

    Each attempt is bounded by ``start_to_close_timeout``. Retryable
    failures are retried up to ``maximum_attempts``; the last failure is
    re-raised unchanged.

    Args:
        fn: Coroutine function to call
        *args: Positional arguments for ``fn``
        options: Timeout and retry policy
        name: Activity name for logging (defaults to ``fn.__name__``)
        sleep: Backoff sleep (overridable in tests)
    """
    name = name or getattr(fn, "__name__", "activity")
    policy = options.retry_policy
    attempts = max(policy.maximum_attempts, 1)

    for attempt in range(1, attempts + 1):
        try:
            return await asyncio.wait_for(fn(*args), timeout=options.start_to_close_timeout)
        except asyncio.TimeoutError as e:
            error: Exception = ActivityTimeout(
                f"{name} timed out after {options.start_to_close_timeout}s", cause=e
            )
        except Exception as e:
            error = e

        if not is_retryable(error):
            logger.debug(f"{name} failed with non-retryable error: {error}")
            raise error

        if attempt >= attempts:
            logger.warning(f"{name} failed after {attempt} attempt(s): {error}")
            raise error

        delay = policy.backoff(attempt)
        logger.info(f"{name} attempt {attempt}/{attempts} failed ({error}); retrying in {delay:.1f}s")
        await sleep(delay)

    raise RuntimeError("unreachable")  # pragma: no cover


class SignalChannel:
    """A named, buffered signal channel.

    Signals sent before anyone waits are buffered. Once closed, further
    sends are rejected.
    """

    def __init__(self, name: str):
        self.name = name
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, payload: Any = True) -> bool:
        """Deliver a signal. Returns False if the channel is closed."""
        if self._closed:
            return False
        self._queue.put_nowait(payload)
        return True

    async def receive(self) -> Any:
        return await self._queue.get()

    def close(self) -> None:
        self._closed = True


class Timer:
    """A one-shot timer."""

    def __init__(self, seconds: float):
        self.seconds = seconds

    async def wait(self) -> None:
        await asyncio.sleep(self.seconds)


async def select(cases: list[tuple[str, Callable[[], Awaitable[Any]]]]) -> tuple[str, Any]:
    """
    Wait for the first of several events.

    Args:
        cases: (name, awaitable factory) pairs in priority order

    Returns:
        (name, value) of the winning case. If several complete in the same
        loop iteration the earliest case in ``cases`` wins. All other cases
        are cancelled.
    """
    tasks = [(name, asyncio.ensure_future(factory())) for name, factory in cases]
    try:
        await asyncio.wait([task for _, task in tasks], return_when=asyncio.FIRST_COMPLETED)
    finally:
        for _, task in tasks:
            if not task.done():
                task.cancel()

    for name, task in tasks:
        if task.done() and not task.cancelled():
            return name, task.result()

    raise RuntimeError("select finished without a winning case")  # pragma: no cover


@dataclass(frozen=True)
class WorkflowEvent:
    sequence: int
    kind: str
    data: dict
    timestamp: datetime


class EventJournal:
    """Append-only record of a workflow's transitions and stage outcomes.

    Events are written before the workflow acts on them.
    """

    def __init__(self, workflow_id: str):
        self.workflow_id = workflow_id
        self._events: list[WorkflowEvent] = []

    def record(self, kind: str, **data: Any) -> WorkflowEvent:
        event = WorkflowEvent(
            sequence=len(self._events) + 1,
            kind=kind,
            data=data,
            timestamp=utcnow(),
        )
        self._events.append(event)
        logger.debug(f"[{self.workflow_id}] event #{event.sequence} {kind} {data}")
        return event

    @property
    def events(self) -> list[WorkflowEvent]:
        return list(self._events)

    def kinds(self) -> list[str]:
        return [event.kind for event in self._events]

    def __len__(self) -> int:
        return len(self._events)
