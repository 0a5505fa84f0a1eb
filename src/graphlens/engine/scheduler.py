"""Background computation with last-request-wins semantics.

Analytics and layout runs are submitted to a ``ThreadPoolExecutor``. Each
submission receives a monotonically increasing generation number.
Submitting a new request for the same key cancels the previous one: its
future is cancelled if it has not started yet, and its
:class:`CancellationToken` is set so a running computation stops at the
next checkpoint. A finished result is only published when its generation
is still the latest for its key.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class ComputationCancelled(Exception):
    """Raised at a checkpoint when the owning request was superseded."""


class CancellationToken:
    """Cooperative cancellation flag checked by engine loops."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ComputationCancelled


def checkpoint(token: CancellationToken | None) -> None:
    """Abort the current computation if *token* has been cancelled."""
    if token is not None:
        token.raise_if_cancelled()


@dataclass
class _Pending:
    generation: int
    token: CancellationToken
    future: Future[Any]


@dataclass
class Ticket:
    """Handle returned by :meth:`ComputationScheduler.submit`."""

    key: str
    generation: int
    future: Future[Any] = field(repr=False)

    def result(self, timeout: float | None = None) -> Any:
        """Block for the computation's return value.

        Raises ``CancelledError`` when the request was superseded before
        or during execution.
        """
        return self.future.result(timeout=timeout)


class ComputationScheduler:
    """Run engine computations off the caller's thread.

    Usage::

        scheduler = ComputationScheduler(max_workers=2)
        ticket = scheduler.submit("analytics", lambda token: analyze(n, l, cancel=token))
        scheduler.latest("analytics")  # newest *published* result, or None
    """

    def __init__(
        self,
        *,
        max_workers: int = 2,
        on_result: Callable[[str, int, Any], None] | None = None,
    ) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="graphlens-compute",
        )
        self._lock = threading.Lock()
        self._generation = 0
        self._pending: dict[str, _Pending] = {}
        self._published: dict[str, tuple[int, Any]] = {}
        self._on_result = on_result

    def submit(self, key: str, fn: Callable[[CancellationToken], Any]) -> Ticket:
        """Schedule *fn* and cancel any earlier request under *key*.

        *fn* receives the request's :class:`CancellationToken`.
        """
        token = CancellationToken()
        with self._lock:
            self._generation += 1
            generation = self._generation
            previous = self._pending.get(key)
            if previous is not None:
                previous.token.cancel()
                previous.future.cancel()
                logger.debug("scheduler.superseded", key=key, generation=previous.generation)
            future = self._executor.submit(self._run, key, generation, token, fn)
            self._pending[key] = _Pending(generation=generation, token=token, future=future)
        return Ticket(key=key, generation=generation, future=future)

    def _run(
        self,
        key: str,
        generation: int,
        token: CancellationToken,
        fn: Callable[[CancellationToken], Any],
    ) -> Any:
        token.raise_if_cancelled()
        try:
            value = fn(token)
        except ComputationCancelled:
            logger.debug("scheduler.cancelled", key=key, generation=generation)
            raise CancelledError from None
        if not self._publish(key, generation, value):
            raise CancelledError
        return value

    def _publish(self, key: str, generation: int, value: Any) -> bool:
        with self._lock:
            current = self._pending.get(key)
            if current is None or current.generation != generation:
                logger.debug("scheduler.stale_result", key=key, generation=generation)
                return False
            self._published[key] = (generation, value)
            del self._pending[key]
        if self._on_result is not None:
            self._on_result(key, generation, value)
        return True

    def latest(self, key: str) -> Any | None:
        """Return the most recently published result for *key*."""
        with self._lock:
            published = self._published.get(key)
        return None if published is None else published[1]

    def latest_generation(self, key: str) -> int | None:
        with self._lock:
            published = self._published.get(key)
        return None if published is None else published[0]

    @property
    def generation(self) -> int:
        """The most recently issued generation number."""
        return self._generation

    def cancel(self, key: str) -> bool:
        """Cancel the outstanding request under *key*, if any."""
        with self._lock:
            pending = self._pending.pop(key, None)
        if pending is None:
            return False
        pending.token.cancel()
        pending.future.cancel()
        return True

    def shutdown(self, *, wait: bool = True) -> None:
        with self._lock:
            for pending in self._pending.values():
                pending.token.cancel()
            self._pending.clear()
        self._executor.shutdown(wait=wait, cancel_futures=True)

    def __enter__(self) -> ComputationScheduler:
        return self

    def __exit__(self, *exc: object) -> None:
        self.shutdown()
