"""Test-facing entry point for the job harness.

The harness overrides the enqueue path so that test suites never touch the
network. In the default ``fake`` mode jobs are stored in an in-memory queue
store whose presence/absence tests can assert on, similar to a mailer's test
delivery method collecting deliveries in a list.

Example:
    from jobharness import testing

    assert len(HardWorker.jobs()) == 0
    HardWorker.perform_async("something")
    assert len(HardWorker.jobs()) == 1
    assert HardWorker.jobs()[0]["args"][0] == "something"

Clear or drain every worker's jobs at once:

    MyMailer.perform_async("foo@example.com")
    MyModel.perform_async(42)

    testing.drain_all()   # or testing.clear_all()

    assert testing.jobs() == []

Keep jobs from lingering between tests with the bundled pytest plugin
(``job_queues`` fixture) or by hand:

    @pytest.fixture(autouse=True)
    def _clean_jobs():
        testing.clear_all()
"""

from .core.exceptions import EmptyQueueError, ResolutionError
from .core.job import JobRecord
from .core.logging import get_logger
from .core.modes import HarnessMode, ModeController, Testing
from .core.queues import Queues, QueueStore
from .core.registry import resolve_worker

logger = get_logger(__name__)

__all__ = [
    "EmptyQueueError",
    "HarnessMode",
    "ModeController",
    "QueueStore",
    "Queues",
    "ResolutionError",
    "Testing",
    "clear_all",
    "drain_all",
    "jobs",
    "reset",
]


def jobs() -> list[JobRecord]:
    """Every queued job across all queues and workers."""
    return Queues.all_jobs()


def clear_all() -> None:
    """Clear all queued jobs across all workers."""
    Queues.clear_all()


def drain_all() -> int:
    """Drain all queued jobs across all workers.

    Each pass collects the workers that currently have jobs and drains them
    one worker at a time; passes repeat until every queue is empty, so jobs
    enqueued for a worker not seen in the current pass are still run.

    Returns:
        Total number of jobs executed.

    Raises:
        ResolutionError: If a queued job names an unregistered worker.
    """
    processed = 0
    while jobs():
        worker_names = list(dict.fromkeys(job.get("class") for job in jobs()))
        ran = 0
        for name in worker_names:
            ran += resolve_worker(name).drain()
        if not ran:
            # Jobs pushed with a queue override (or seeded straight into a
            # queue list) sit outside their worker's configured queue; take
            # the oldest one from the queue that actually holds it.
            queue_name, job = Queues.pop_oldest()
            logger.debug(
                "Running job outside its worker's queue",
                extra={"jid": job.get("jid"), "queue": queue_name, "worker": job.get("class")},
            )
            resolve_worker(job.get("class")).process_job(job)
            ran = 1
        processed += ran
    logger.debug("Drained all queues", extra={"jobs": processed})
    return processed


def reset() -> None:
    """Clear every queue and return to the default mode (for testing only)."""
    clear_all()
    Testing.reset()
