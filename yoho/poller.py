"""Condition polling.

``poll_until`` re-runs an async query on a fixed cadence until a classifier
says the snapshot is terminal, a bound is hit, or the caller cancels.

A query is always awaited before the next tick, so ticks never overlap. When a
query overruns the interval, the ticks it covered are skipped and the next
query starts on the following cadence boundary. An exception raised by the
query aborts polling and propagates; it is never turned into a ``failed``
outcome.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from yoho.models import Classification, PollOutcome, PollState, PollStatus
from yoho.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_POLL_INTERVAL = 3.0

Query = Callable[[], Awaitable[T]]
Classifier = Callable[[T], Classification]
ProgressCallback = Callable[[T, int], None]


async def _wait_for_cancel(cancel_event: Optional[asyncio.Event], delay: float) -> bool:
    """Sleep for ``delay`` seconds; return True if cancelled in the meantime."""
    delay = max(delay, 0.0)
    if cancel_event is None:
        await asyncio.sleep(delay)
        return False
    if cancel_event.is_set():
        return True
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return False
    return True


async def poll_until(
    query: Query,
    classify: Classifier,
    interval: float = DEFAULT_POLL_INTERVAL,
    *,
    max_attempts: Optional[int] = None,
    timeout: Optional[float] = None,
    failure_grace: int = 0,
    on_progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> PollOutcome:
    """Poll ``query`` until ``classify`` reports success or failure.

    Args:
        query: Zero-argument coroutine function returning a snapshot
        classify: Pure function mapping a snapshot to a Classification
        interval: Seconds between the starts of consecutive queries
        max_attempts: Stop with TIMED_OUT after this many pending queries
        timeout: Stop with TIMED_OUT once this many seconds have elapsed
        failure_grace: Consecutive failures treated as pending before FAILED
        on_progress: Called once per tick with (snapshot, attempt)
        cancel_event: Stop with CANCELLED once set

    Returns:
        Terminal PollOutcome

    Raises:
        Exception: Whatever ``query`` raises
    """
    if interval < 0:
        raise ValueError("Polling interval cannot be negative")
    if failure_grace < 0:
        raise ValueError("Failure grace cannot be negative")

    loop = asyncio.get_running_loop()
    started = loop.time()
    deadline = started + timeout if timeout is not None else None
    next_tick = started
    attempts = 0
    consecutive_failures = 0

    def outcome(status: PollStatus, value=None, reason: Optional[str] = None) -> PollOutcome:
        return PollOutcome(
            status=status,
            value=value,
            reason=reason,
            attempts=attempts,
            elapsed=loop.time() - started,
        )

    def timed_out() -> PollOutcome:
        if max_attempts is not None and attempts >= max_attempts:
            return outcome(PollStatus.TIMED_OUT, reason=f"gave up after {attempts} attempts")
        return outcome(PollStatus.TIMED_OUT, reason=f"gave up after {timeout:g}s")

    try:
        while True:
            if cancel_event is not None and cancel_event.is_set():
                return outcome(PollStatus.CANCELLED, reason="cancelled")

            attempts += 1
            if deadline is None:
                snapshot = await query()
            else:
                try:
                    snapshot = await asyncio.wait_for(query(), timeout=max(deadline - loop.time(), 0))
                except asyncio.TimeoutError:
                    return timed_out()

            verdict = classify(snapshot)
            if on_progress is not None:
                on_progress(snapshot, attempts)

            if verdict.state == PollState.SUCCESS:
                return outcome(PollStatus.RESOLVED, value=verdict.value)

            if verdict.state == PollState.FAILURE:
                consecutive_failures += 1
                if consecutive_failures > failure_grace:
                    return outcome(PollStatus.FAILED, reason=verdict.reason)
                logger.debug(
                    f"Failure observed ({consecutive_failures}/{failure_grace} tolerated): "
                    f"{verdict.reason}"
                )
            else:
                consecutive_failures = 0

            if max_attempts is not None and attempts >= max_attempts:
                return timed_out()

            next_tick += interval
            now = loop.time()
            if interval > 0 and next_tick < now:
                skipped = int((now - next_tick) // interval) + 1
                next_tick += skipped * interval
                logger.debug(f"Query overran the interval; skipped {skipped} tick(s)")

            if deadline is not None and next_tick >= deadline:
                # Next tick lands on or past the deadline
                if await _wait_for_cancel(cancel_event, deadline - now):
                    return outcome(PollStatus.CANCELLED, reason="cancelled")
                return timed_out()

            if await _wait_for_cancel(cancel_event, next_tick - loop.time()):
                return outcome(PollStatus.CANCELLED, reason="cancelled")
    finally:
        logger.debug(f"Polling stopped after {attempts} attempt(s)")
