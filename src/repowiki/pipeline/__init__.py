"""Ingestion orchestration pipeline: work queue, workers, startup recovery."""

from repowiki.pipeline.orchestrator import Orchestrator
from repowiki.pipeline.queue import WorkQueue
from repowiki.pipeline.results import ErrorKind, Failure, Outcome
from repowiki.pipeline.worker import Worker

__all__ = ["ErrorKind", "Failure", "Orchestrator", "Outcome", "WorkQueue", "Worker"]
