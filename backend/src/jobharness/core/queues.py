"""In-memory queue store used by the fake testing mode.

The data is a mapping of queue name to the list of job records waiting on
that queue, in insertion (FIFO) order:

    {
        "default": [
            {
                "class": "app.workers.HardWorker",
                "args": [1, 2],
                "retry": True,
                "queue": "default",
                "jid": "abc5b065c5c4b27fc1102833",
                "created_at": 1447445554.419934,
            }
        ]
    }

Example:
    from jobharness.testing import Queues

    assert len(Queues["default"]) == 0
    HardWorker.perform_async("something")
    assert len(Queues["default"]) == 1
    assert Queues["default"][0]["args"][0] == "something"

    Queues.clear_all()
    assert len(Queues["default"]) == 0

Limitations:
    - Data is NOT shared across processes and is lost on exit.
    - No locking: the store assumes one thread drives enqueue and drain.
"""

import logging
from collections import defaultdict
from collections.abc import Iterator
from typing import Any

from .job import JobRecord

logger = logging.getLogger(__name__)


class QueueStore:
    """Process-wide mapping of queue name to an ordered list of job records.

    Looking up an unknown queue name creates and returns an empty list, so
    callers never have to handle a missing queue. Queue names, once seen,
    stay known until :meth:`reset`.
    """

    def __init__(self) -> None:
        # queue_name -> list of job records (FIFO order)
        self._queues: dict[str, list[JobRecord]] = defaultdict(list)

    def __getitem__(self, queue_name: Any) -> list[JobRecord]:
        return self.get(queue_name)

    def __len__(self) -> int:
        return self.size()

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._queues))

    def __contains__(self, queue_name: object) -> bool:
        return str(queue_name) in self._queues

    @property
    def jobs(self) -> dict[str, list[JobRecord]]:
        """The underlying queue mapping."""
        return self._queues

    def get(self, queue_name: Any) -> list[JobRecord]:
        """Return the mutable job list for ``queue_name``, creating it if absent."""
        return self._queues[str(queue_name)]

    def push(self, record: JobRecord) -> None:
        """Append an already-normalised record to its queue."""
        queue_name = record["queue"]
        self.get(queue_name).append(record)
        logger.debug(
            "Job stored in fake queue",
            extra={"jid": record.get("jid"), "queue": queue_name, "worker": record.get("class")},
        )

    def jobs_for(self, queue_name: Any, worker: str) -> list[JobRecord]:
        """Jobs on ``queue_name`` whose ``class`` is ``worker``, oldest first."""
        return [job for job in self.get(queue_name) if job.get("class") == worker]

    def delete_for(self, jid: str | None, queue_name: Any) -> int:
        """Remove the oldest job with ``jid`` from ``queue_name``.

        Matching is by job id, never by position: executing a job may append
        new jobs to the same list. Only one record is removed, so records
        sharing a jid (or lacking one) are each run exactly once.

        Returns:
            Number of records removed (0 or 1).
        """
        queue = self.get(queue_name)
        for index, job in enumerate(queue):
            if job.get("jid") == jid:
                del queue[index]
                return 1
        return 0

    def pop_oldest(self) -> tuple[str, JobRecord] | None:
        """Remove and return the oldest job of the first non-empty queue.

        Returns ``(queue_name, record)`` for the queue the record actually sat
        in, which may differ from the record's own ``queue`` field.
        """
        for queue_name, queue in list(self._queues.items()):
            if queue:
                return queue_name, queue.pop(0)
        return None

    def clear_for(self, queue_name: Any, worker: str) -> int:
        """Remove only ``worker``'s jobs from ``queue_name``."""
        queue = self.get(queue_name)
        before = len(queue)
        queue[:] = [job for job in queue if job.get("class") != worker]
        return before - len(queue)

    def all_jobs(self) -> list[JobRecord]:
        """Every queued job across all queues, in queue creation order."""
        return [job for queue in list(self._queues.values()) for job in queue]

    def size(self) -> int:
        return sum(len(queue) for queue in self._queues.values())

    def clear_all(self) -> None:
        """Empty every queue. Queue names stay known."""
        for queue in self._queues.values():
            queue.clear()
        logger.debug("Cleared all fake queues", extra={"queues": len(self._queues)})

    def reset(self) -> None:
        """Forget every queue name (for testing only)."""
        self._queues.clear()


# Global queue store (singleton)
Queues = QueueStore()


def get_queue_store() -> QueueStore:
    """Return the process-wide queue store."""
    return Queues


def reset_queue_store() -> None:
    """Reset the process-wide queue store in place (for testing only).

    The instance is reused so modules holding a reference to ``Queues``
    observe the reset.
    """
    Queues.reset()
