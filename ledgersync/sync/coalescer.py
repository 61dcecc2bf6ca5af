from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Hashable, TypeVar
from ledgersync.errors import SupersededError

logger = logging.getLogger(__name__)

T = TypeVar('T')

FetchKey = Hashable # usually (collection, address) or (collection, filter)

class RequestCoalescer:
    """Keeps at most one outstanding operation per key.

    The guard for a key is set synchronously, before the first suspension point of the caller, and
    released by a done-callback of the operation's task. The callback runs on success, failure, and
    cancellation, so a key can never get stuck.

    Callers await the shared task through asyncio.shield: cancelling one caller does not cancel the
    operation for the others.
    """
    _in_flight:dict[FetchKey, asyncio.Task]

    def __init__(self):
        self._in_flight = {}

    def in_flight(self, key:FetchKey) -> bool:
        return key in self._in_flight

    def pending_keys(self) -> list[FetchKey]:
        return list(self._in_flight.keys())

    def _start(self, key:FetchKey, factory:Callable[[], Awaitable[T]]) -> asyncio.Task:
        task = asyncio.ensure_future(factory())
        self._in_flight[key] = task
        task.add_done_callback(lambda t: self._release(key, t))
        return task

    def _release(self, key:FetchKey, task:asyncio.Task):
        # only release if the guard still belongs to this task, a newer one might own it already
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        # retrieve the exception so that abandoned tasks do not log "exception was never retrieved"
        if not task.cancelled():
            task.exception()

    async def join(self, key:FetchKey, factory:Callable[[], Awaitable[T]]) -> T:
        """Runs the operation, or, if one is already in flight for the key, waits for its result."""
        task = self._in_flight.get(key)
        if task is None:
            task = self._start(key, factory)
        else:
            logger.debug(f"Joining in-flight operation for {key}")
        return await asyncio.shield(task)

    async def fresh(self, key:FetchKey, factory:Callable[[], Awaitable[T]]) -> T:
        """Like join, but never shares an operation that was already in flight when called.

        A result of an earlier operation may predate a write the caller just made. Waits for that
        operation to finish (ignoring its outcome) and then joins or starts a new one.
        """
        previous = self._in_flight.get(key)
        if previous is not None:
            logger.debug(f"Waiting for earlier operation for {key} before starting a fresh one")
            await asyncio.wait([previous])
        return await self.join(key, factory)

    async def skip_if_busy(self, key:FetchKey, factory:Callable[[], Awaitable[T]]) -> T | None:
        """Runs the operation unless one is already in flight for the key, in which case it returns None."""
        if key in self._in_flight:
            logger.debug(f"Skipping operation for {key}, already in flight")
            return None
        return await asyncio.shield(self._start(key, factory))

    async def latest(self, key:FetchKey, factory:Callable[[], Awaitable[T]]) -> T:
        """Runs the operation and supersedes (cancels) any operation still in flight for the key."""
        previous = self._in_flight.get(key)
        task = self._start(key, factory)
        if previous is not None and not previous.done():
            logger.debug(f"Superseding in-flight operation for {key}")
            previous.cancel()
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError as e:
            # the task itself was cancelled (not this caller), a newer call took over the key
            if task.cancelled():
                raise SupersededError(f"Operation for {key} was superseded by a newer call.") from e
            raise

    async def wait_all(self) -> None:
        """Waits until nothing is in flight. Failures of the operations are not raised here."""
        while self._in_flight:
            await asyncio.gather(*self._in_flight.values(), return_exceptions=True)
