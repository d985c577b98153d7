"""Orchestrator: startup recovery plus supervision of the worker pool.

Recovery is a single scan at start-up: every Pending or Processing record is
written to the WorkQueue once, Processing first, so work interrupted by a
crash resumes before new work begins. There is no periodic re-scan; a record
stuck in Processing is only picked up again by the next process start.
"""

from __future__ import annotations

import asyncio

from repowiki.db.models import RepositoryRecord, RepositoryStatus
from repowiki.db.store import RecordStore
from repowiki.generate.generator import DocumentGenerator
from repowiki.observability import get_logger
from repowiki.pipeline.queue import DEFAULT_CAPACITY, WorkQueue
from repowiki.pipeline.results import Outcome
from repowiki.pipeline.worker import Worker
from repowiki.sources.base import RepositorySource

log = get_logger(__name__)


class Orchestrator:
    """Populate the WorkQueue from the store and run N workers over it."""

    def __init__(
        self,
        store: RecordStore,
        source: RepositorySource,
        generator: DocumentGenerator,
        *,
        parallel_count: int = 1,
        queue_capacity: int = DEFAULT_CAPACITY,
        startup_delay: float = 0.0,
    ) -> None:
        """Wire the pipeline.

        Args:
            store: Record store shared by all workers (one session per record).
            source: Repository source used for git records.
            generator: Document generator run on every ingested record.
            parallel_count: Number of concurrent workers; values below 1 mean 1.
            queue_capacity: WorkQueue capacity.
            startup_delay: Seconds to wait before the recovery scan.
        """
        self.store = store
        self.source = source
        self.generator = generator
        self.parallel_count = max(1, parallel_count)
        self.queue_capacity = queue_capacity
        self.startup_delay = startup_delay

    def recover(self) -> list[RepositoryRecord]:
        """Return unfinished records in hand-off order, each identifier once."""
        with self.store.session() as repo:
            records = repo.list_runnable()
        seen: set[str] = set()
        ordered: list[RepositoryRecord] = []
        for record in records:
            if record.id not in seen:
                seen.add(record.id)
                ordered.append(record)
        return ordered

    async def enqueue_recovered(self, queue: WorkQueue) -> int:
        """Run the recovery scan and write its records to *queue* in order."""
        records = await asyncio.to_thread(self.recover)
        for record in records:
            await queue.write(record)
        log.info(
            "recovery_enqueued",
            total=len(records),
            resumed=sum(1 for r in records if r.status == RepositoryStatus.PROCESSING),
        )
        return len(records)

    async def run(
        self,
        cancel: asyncio.Event | None = None,
        *,
        until_idle: bool = False,
    ) -> list[Outcome]:
        """Run recovery and the worker pool.

        Args:
            cancel: Stops the pool when set. Workers finish their current
                record first; records still queued stay Pending/Processing
                in the store and are recovered on the next start. The event
                is also set when the run ends on its own.
            until_idle: Stop on its own once every recovered record is done.

        Returns:
            Outcomes of all records processed during this run.
        """
        stop = cancel if cancel is not None else asyncio.Event()
        queue = WorkQueue(self.queue_capacity)
        workers = [
            Worker(f"worker-{n}", queue, self.store, self.source, self.generator)
            for n in range(1, self.parallel_count + 1)
        ]
        log.info("orchestrator_starting", workers=len(workers), queue_capacity=queue.capacity)

        # Workers start first so a backlog larger than the queue cannot block the scan.
        tasks = [asyncio.create_task(w.run(stop), name=w.name) for w in workers]
        try:
            if self.startup_delay > 0 and not stop.is_set():
                await _until_stopped(asyncio.sleep(self.startup_delay), stop)
            if not stop.is_set():
                await _until_stopped(self.enqueue_recovered(queue), stop)
            if until_idle and not stop.is_set():
                await _until_stopped(queue.join(), stop)
                stop.set()
            await stop.wait()
            log.info("orchestrator_stopping", queued=queue.qsize())
        finally:
            stop.set()
            results = await asyncio.gather(*tasks, return_exceptions=True)

        outcomes: list[Outcome] = []
        for worker, result in zip(workers, results):
            if isinstance(result, BaseException):
                log.error("worker_crashed", worker=worker.name, error=repr(result))
                outcomes.extend(worker.outcomes)
            else:
                outcomes.extend(result)
        log.info("orchestrator_stopped", processed=len(outcomes))
        return outcomes


async def _until_stopped(aw, stop: asyncio.Event) -> None:
    """Await *aw* unless *stop* is set first, in which case *aw* is cancelled."""
    task = asyncio.ensure_future(aw)
    stopper = asyncio.ensure_future(stop.wait())
    try:
        await asyncio.wait({task, stopper}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stopper.cancel()
        if not task.done():
            task.cancel()
    if task.done() and not task.cancelled():
        task.result()
