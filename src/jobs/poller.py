# src/jobs/poller.py — v1
"""Poll-until-terminal driver for asynchronous provider jobs.

The poller owns one GenerationJob at a time. Transport errors raised by
the probe are logged and retried after the normal interval; only an
explicit terminal probe result (or the max-wait deadline) ends the job.
Time is read from an injectable clock so tests can simulate hours of
waiting without sleeping.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Protocol

from labgen.core.errors import JobFailed, JobStateError, JobTimedOut
from labgen.jobs.models import GenerationJob, ProbeResult

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_S = 15.0
DEFAULT_MAX_WAIT_S = 3600.0

Probe = Callable[[str], Awaitable[ProbeResult]]


class Clock(Protocol):
    """Time source used by the poller."""

    def monotonic(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Real wall-clock time."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class AsyncJobPoller:
    """Drive a submitted job to a terminal state.

    Args:
        probe: Coroutine returning the job's status for an operation handle.
            Exceptions it raises are treated as transient transport errors.
        adaptor_id: Owner name used in errors and logs.
        poll_interval_s: Delay between probes.
        max_wait_s: Budget measured from submission.
        clock: Time source (defaults to SystemClock).
    """

    def __init__(
        self,
        probe: Probe,
        adaptor_id: str,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        max_wait_s: float = DEFAULT_MAX_WAIT_S,
        clock: Clock | None = None,
    ) -> None:
        if poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be > 0")
        if max_wait_s <= 0:
            raise ValueError("max_wait_s must be > 0")
        self._probe = probe
        self._adaptor_id = adaptor_id
        self._poll_interval_s = poll_interval_s
        self._max_wait_s = max_wait_s
        self._clock = clock or SystemClock()

    def start(self, operation_handle: str) -> GenerationJob:
        """Create a job for an accepted submission and enter ``polling``."""
        job = GenerationJob(
            operation_handle=operation_handle,
            submitted_at=self._clock.monotonic(),
            poll_interval_s=self._poll_interval_s,
            max_wait_s=self._max_wait_s,
        )
        job.transition("polling")
        logger.info(
            "%s job submitted: %s (interval %.0fs, max wait %.0fs)",
            self._adaptor_id, operation_handle, self._poll_interval_s, self._max_wait_s,
        )
        return job

    async def run(self, job: GenerationJob) -> Any:
        """Poll ``job`` until it completes.

        Returns:
            The completed probe payload.

        Raises:
            JobFailed: The provider reported a terminal error.
            JobTimedOut: The max-wait budget elapsed first.
            JobStateError: The job is already terminal.
        """
        if job.is_terminal:
            raise JobStateError(
                f"Job {job.operation_handle} is already {job.status}; not polling"
            )

        while True:
            now = self._clock.monotonic()
            elapsed = now - job.submitted_at
            if elapsed >= job.max_wait_s:
                job.transition("timed_out", at=now)
                logger.warning(
                    "%s job %s timed out after %.0fs (%d probes)",
                    self._adaptor_id, job.operation_handle, elapsed, job.poll_count,
                )
                raise JobTimedOut(
                    self._adaptor_id, job.operation_handle, elapsed, job.max_wait_s
                )

            try:
                status = await self._probe(job.operation_handle)
            except Exception as e:
                job.last_error = str(e)
                logger.warning(
                    "%s job %s: probe error (will retry in %.0fs): %s",
                    self._adaptor_id, job.operation_handle, job.poll_interval_s, e,
                )
                await self._clock.sleep(job.poll_interval_s)
                continue

            job.poll_count += 1
            if status.done:
                now = self._clock.monotonic()
                if status.error:
                    job.transition("failed", at=now, error=status.error)
                    logger.warning(
                        "%s job %s failed: %s",
                        self._adaptor_id, job.operation_handle, status.error,
                    )
                    raise JobFailed(self._adaptor_id, job.operation_handle, status.error)
                job.transition("completed", at=now, result=status.payload)
                logger.info(
                    "%s job %s completed after %d probes (%.0fs)",
                    self._adaptor_id, job.operation_handle, job.poll_count,
                    now - job.submitted_at,
                )
                return status.payload

            logger.debug(
                "%s job %s still running (probe %d, %.0fs elapsed)",
                self._adaptor_id, job.operation_handle, job.poll_count, elapsed,
            )
            await self._clock.sleep(job.poll_interval_s)

    async def wait(self, operation_handle: str) -> Any:
        """Start and run a job in one call."""
        return await self.run(self.start(operation_handle))
