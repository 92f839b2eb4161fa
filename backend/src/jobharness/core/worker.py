"""Worker base class, execution pipeline and per-worker queue helpers.

Subclasses implement ``perform`` and are registered by name as soon as they
are defined, so a job record's ``class`` string can be resolved back to the
class that runs it.

Example usage:
    from jobharness import Worker

    class HardWorker(Worker):
        harness_options = {"queue": "critical"}

        def perform(self, name, count):
            ...

    HardWorker.perform_async("bob", 5)

In fake mode the job waits in the in-memory queue store and tests inspect
or run it through the class:

    assert len(HardWorker.jobs()) == 1
    assert HardWorker.jobs()[0]["args"] == ["bob", 5]
    HardWorker.drain()
    assert HardWorker.jobs() == []
"""

import time
from datetime import datetime, timedelta
from typing import Any, ClassVar

from .client import Client
from .config import get_settings_instance
from .exceptions import EmptyQueueError
from .job import JobRecord
from .logging import get_logger
from .modes import Testing
from .queues import Queues
from .registry import register_worker

logger = get_logger(__name__)

# Intervals below this are relative seconds, above it absolute epoch seconds
_RELATIVE_INTERVAL_LIMIT = 1_000_000_000


def _scheduled_at(interval: float | int | timedelta | datetime) -> float:
    if isinstance(interval, datetime):
        return interval.timestamp()
    if isinstance(interval, timedelta):
        interval = interval.total_seconds()
    value = float(interval)
    return time.time() + value if value < _RELATIVE_INTERVAL_LIMIT else value


class BatchAware:
    """Capability mixin for workers that take part in a batch.

    Instances of workers that inherit this mixin get the job's ``bid``
    assigned before ``perform`` runs; other workers never see it.
    """

    bid: str | None = None


class JobSetter:
    """Pushes jobs for one worker with per-call option overrides.

    Example:
        HardWorker.set(queue="low", retry=False).perform_async(1)
    """

    def __init__(self, worker_cls: type["Worker"], options: dict[str, Any]) -> None:
        self._worker_cls = worker_cls
        self._options = dict(options)

    def set(self, **options: Any) -> "JobSetter":
        self._options.update(options)
        return self

    def _push(self, args: tuple, extra: dict[str, Any] | None = None) -> str:
        item: dict[str, Any] = {**self._options, **(extra or {})}
        item["class"] = self._worker_cls
        item["args"] = list(args)
        return self._worker_cls.client_push(item)

    def perform_async(self, *args: Any) -> str:
        return self._push(args)

    def perform_in(self, interval: float | int | timedelta | datetime, *args: Any) -> str:
        at = _scheduled_at(interval)
        extra = {"at": at} if at > time.time() else None
        return self._push(args, extra)

    perform_at = perform_in


class Worker:
    """Base class for job logic.

    Attributes:
        harness_options: Per-class options merged down the class hierarchy.
            ``queue`` names the destination queue, ``retry`` is passed
            through to the job record untouched.
        jid: Id of the job being executed, set before ``perform`` runs.
    """

    harness_options: ClassVar[dict[str, Any]] = {}
    _worker_name: ClassVar[str]

    jid: str | None = None

    def __init_subclass__(cls, name: str | None = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._worker_name = register_worker(cls, name)

    def perform(self, *args: Any) -> Any:
        raise NotImplementedError(f"{type(self).__name__} must implement perform()")

    # -- configuration -----------------------------------------------------

    @classmethod
    def worker_name(cls) -> str:
        """Identifier stored in the ``class`` field of this worker's jobs."""
        return cls._worker_name

    @classmethod
    def get_options(cls) -> dict[str, Any]:
        settings = get_settings_instance()
        options: dict[str, Any] = {"queue": settings.default_queue, "retry": True}
        for klass in reversed(cls.__mro__):
            options.update(klass.__dict__.get("harness_options") or {})
        return options

    @classmethod
    def queue_name(cls) -> str:
        return str(cls.get_options()["queue"])

    # -- enqueueing --------------------------------------------------------

    @classmethod
    def set(cls, **options: Any) -> JobSetter:
        return JobSetter(cls, options)

    @classmethod
    def client_push(cls, item: dict[str, Any]) -> str:
        return Client().push(item)

    @classmethod
    def perform_async(cls, *args: Any) -> str:
        return JobSetter(cls, {}).perform_async(*args)

    @classmethod
    def perform_in(cls, interval: float | int | timedelta | datetime, *args: Any) -> str:
        return JobSetter(cls, {}).perform_in(interval, *args)

    perform_at = perform_in

    # -- fake queue view ---------------------------------------------------

    @classmethod
    def jobs(cls) -> list[JobRecord]:
        """Jobs queued for this worker, oldest first."""
        return Queues.jobs_for(cls.queue_name(), cls.worker_name())

    @classmethod
    def clear(cls) -> None:
        """Remove this worker's jobs; other workers on the same queue keep theirs."""
        Queues.clear_for(cls.queue_name(), cls.worker_name())

    @classmethod
    def drain(cls) -> int:
        """Run this worker's jobs until none are left.

        Jobs enqueued by the jobs being drained are picked up too. Returns
        the number of jobs executed; an exception from a job stops the drain
        and propagates.
        """
        processed = 0
        while cls.jobs():
            cls._pop_and_process()
            processed += 1
        return processed

    @classmethod
    def perform_one(cls) -> Any:
        """Remove the oldest job for this worker and run it.

        Raises:
            EmptyQueueError: If no job is queued for this worker.
        """
        if not cls.jobs():
            raise EmptyQueueError(
                "perform_one called with empty job queue",
                details={"worker": cls.worker_name(), "queue": cls.queue_name()},
            )
        return cls._pop_and_process()

    @classmethod
    def _pop_and_process(cls) -> Any:
        next_job = cls.jobs()[0]
        Queues.delete_for(next_job.get("jid"), cls.queue_name())
        return cls.process_job(next_job)

    # -- execution pipeline ------------------------------------------------

    @classmethod
    def process_job(cls, job: JobRecord) -> Any:
        """Build a worker for ``job`` and run it through the server middleware."""
        worker = cls()
        worker.jid = job.get("jid")
        if isinstance(worker, BatchAware):
            worker.bid = job.get("bid")

        logger.debug(
            "Executing job",
            extra={"jid": worker.jid, "queue": job.get("queue"), "worker": cls.worker_name()},
        )
        return Testing.server_middleware().invoke(
            worker,
            job,
            job.get("queue"),
            lambda: cls.execute_job(worker, job.get("args") or []),
        )

    @classmethod
    def execute_job(cls, worker: "Worker", args: list[Any]) -> Any:
        return worker.perform(*args)
