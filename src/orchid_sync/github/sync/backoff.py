"""Retry scheduling for unmet sync preconditions.

When an entity is not yet visible (replication lag) or a reply's parent
issue is not linked yet, the enqueue guard hands the entity to the
``RetryScheduler``. Each retry is a delayed task that re-runs the guard
from scratch; after ``max_attempts`` the scheduler gives up quietly.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from orchid_sync.config import RetryConfig
from orchid_sync.logging import get_logger

from .enums import EntityKind

logger = get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]
RetryCallback = Callable[[EntityKind, str, int], Awaitable[object]]


@dataclass(frozen=True)
class BackoffPolicy:
    """Linear backoff capped at ``max_delay_ms`` plus uniform jitter."""

    base_delay_ms: int = 250
    max_delay_ms: int = 2000
    jitter_ms: int = 150
    max_attempts: int = 30

    @classmethod
    def from_config(cls, config: RetryConfig) -> BackoffPolicy:
        """Build a policy from retry settings."""
        return cls(
            base_delay_ms=config.base_delay_ms,
            max_delay_ms=config.max_delay_ms,
            jitter_ms=config.jitter_ms,
            max_attempts=config.max_attempts,
        )

    def base_delay(self, attempt: int) -> int:
        """Delay before jitter, in milliseconds."""
        return min(self.max_delay_ms, self.base_delay_ms * (attempt + 1))

    def delay_ms(self, attempt: int, rng: Callable[[], float] = random.random) -> float:
        """Full delay for an attempt: base delay plus jitter in ``[0, jitter_ms)``."""
        return self.base_delay(attempt) + rng() * self.jitter_ms

    def exhausted(self, attempt: int) -> bool:
        """Check if ``attempt`` is past the ceiling."""
        return attempt >= self.max_attempts


class RetryScheduler:
    """Dispatches delayed re-runs of the enqueue guard.

    The scheduler has no queue: every reschedule is an independent asyncio
    task that sleeps, then calls back into the guard with the attempt
    number. Tasks are tracked so callers can wait for or cancel them.

    Usage:
        scheduler = RetryScheduler(policy, callback=engine.retry)
        scheduler.reschedule(EntityKind.REPLY, reply_id, attempt=0)
        await scheduler.wait_idle()
    """

    def __init__(
        self,
        policy: BackoffPolicy,
        callback: RetryCallback,
        *,
        sleep: SleepFunc = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        """Initialize the scheduler.

        Args:
            policy: Backoff policy (delays and attempt ceiling)
            callback: Coroutine re-running the guard for (kind, id, attempt)
            sleep: Sleep function (tests inject a no-op)
            rng: Jitter source returning floats in ``[0, 1)``
        """
        self._policy = policy
        self._callback = callback
        self._sleep = sleep
        self._rng = rng
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def policy(self) -> BackoffPolicy:
        """Backoff policy in use."""
        return self._policy

    @property
    def pending(self) -> int:
        """Number of retries currently waiting or running."""
        return len(self._tasks)

    def reschedule(self, kind: EntityKind, entity_id: str, attempt: int) -> bool:
        """Schedule a retry of the guard for an entity.

        Args:
            kind: Kind of sync to retry
            entity_id: Local id of the entity
            attempt: Zero-based attempt number for this retry

        Returns:
            True if a retry was scheduled, False if the ceiling was reached
        """
        if self._policy.exhausted(attempt):
            logger.info(
                "Giving up on {} {} after {} attempts",
                kind.value,
                entity_id,
                attempt,
            )
            return False

        delay_ms = self._policy.delay_ms(attempt, self._rng)
        logger.debug(
            "Retrying {} {} in {:.0f}ms (attempt {})",
            kind.value,
            entity_id,
            delay_ms,
            attempt,
        )
        task = asyncio.create_task(
            self._run(kind, entity_id, attempt, delay_ms / 1000),
            name=f"retry-{kind.value}-{entity_id}-{attempt}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _run(self, kind: EntityKind, entity_id: str, attempt: int, delay: float) -> None:
        await self._sleep(delay)
        try:
            await self._callback(kind, entity_id, attempt)
        except Exception:
            logger.exception("Retry of {} {} failed (attempt {})", kind.value, entity_id, attempt)

    async def wait_idle(self) -> None:
        """Wait until no retries are pending, including ones scheduled meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        """Cancel every pending retry."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
