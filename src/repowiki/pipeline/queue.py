"""WorkQueue: bounded FIFO hand-off between the recovery scan and the workers."""

from __future__ import annotations

import asyncio

from repowiki.db.models import RepositoryRecord
from repowiki.observability import get_logger

log = get_logger(__name__)

DEFAULT_CAPACITY = 100


class WorkQueue:
    """Bounded FIFO of repository records.

    ``write`` blocks while the queue is full and ``read`` suspends while it is
    empty. Ordering is whatever the single writer produced; nothing is
    reordered inside the queue. Safe for many concurrent readers; the design
    assumes one writer (the orchestrator's recovery scan).
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"WorkQueue capacity must be >= 1, got {capacity}")
        self.capacity = capacity
        self._queue: asyncio.Queue[RepositoryRecord] = asyncio.Queue(maxsize=capacity)

    async def write(self, record: RepositoryRecord) -> None:
        """Enqueue *record*, waiting for a free slot when full."""
        await self._queue.put(record)

    async def read(self, cancel: asyncio.Event | None = None) -> RepositoryRecord | None:
        """Dequeue the next record, waiting while the queue is empty.

        Args:
            cancel: Optional event; once set, a waiting read gives up.

        Returns:
            The next record, or None if *cancel* fired before one arrived.
            A record that was already handed over is never dropped: if the
            reading task is cancelled after dequeuing it, the record is put
            back (or, when the queue refilled meanwhile, marked done so
            ``join`` cannot hang).
        """
        if cancel is None:
            return await self._queue.get()
        if cancel.is_set():
            return None

        getter = asyncio.ensure_future(self._queue.get())
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({getter, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            if getter.done() and not getter.cancelled():
                self._give_back(getter.result())
            raise
        finally:
            waiter.cancel()
            if not getter.done():
                getter.cancel()
        if getter.done() and not getter.cancelled():
            return getter.result()
        return None

    def _give_back(self, record: RepositoryRecord) -> None:
        try:
            self._queue.put_nowait(record)
        except asyncio.QueueFull:
            # Still runnable in the store; the next recovery scan picks it up.
            log.warning("queue_record_released", repository_id=record.id)
        # Balances the original write; the re-put carries its own count.
        self._queue.task_done()

    def done(self) -> None:
        """Mark one previously read record as fully processed."""
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every written record has been read and marked done."""
        await self._queue.join()

    def qsize(self) -> int:
        return self._queue.qsize()

    def empty(self) -> bool:
        return self._queue.empty()
