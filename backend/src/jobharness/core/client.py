"""Job submission client and the testing-mode interceptor.

``Client.push`` turns a job item into a complete job record and hands a
batch of records to ``raw_push``, which decides where they go based on the
current testing mode:

- ``fake``: copied into the in-memory queue store.
- ``inline``: resolved to a worker class and executed immediately, one after
  another; an exception aborts the rest of the batch.
- ``disabled``: written to Redis by ``raw_push_real``.

Example usage:
    from jobharness.core.client import Client

    jid = Client().push({"class": HardWorker, "args": [1, 2]})
    jids = Client().push_bulk({"class": HardWorker, "args": [[1], [2], [3]]})
"""

import logging
import time
from typing import Any

import redis

from .config import get_settings_instance
from .exceptions import InvalidJobError, SubmissionError
from .job import JobRecord, dump_json, generate_jid, normalize, worker_name
from .modes import Testing
from .queues import Queues
from .redis_client import get_redis_client
from .registry import registered_workers, resolve_worker

logger = logging.getLogger(__name__)


class Client:
    """Pushes jobs toward the broker, subject to the current testing mode.

    Attributes:
        redis_client: Client used by the real submission path. Defaults to
            the shared client from :mod:`jobharness.core.redis_client`,
            looked up only when a job is actually submitted to Redis.
    """

    def __init__(self, redis_client: Any | None = None) -> None:
        self._redis = redis_client

    @property
    def redis_client(self) -> Any:
        if self._redis is None:
            self._redis = get_redis_client()
        return self._redis

    # -- public API --------------------------------------------------------

    def push(self, item: dict[str, Any]) -> str:
        """Submit a single job and return its jid.

        Raises:
            InvalidJobError: If ``class`` is missing or ``args`` is not a list.
        """
        self._validate(item)
        payload = self._normalize_item(item, item["args"])
        self.raw_push([payload])
        return payload["jid"]

    def push_bulk(self, items: dict[str, Any]) -> list[str]:
        """Submit one job per entry of ``items["args"]`` in a single batch.

        Example:
            Client().push_bulk({"class": HardWorker, "args": [[1, 2], [3, 4]]})
        """
        self._validate(items)
        batch = items["args"]
        if not all(isinstance(args, (list, tuple)) for args in batch):
            raise InvalidJobError(
                "Bulk arguments must be a list of lists",
                details={"class": worker_name(items["class"])},
            )
        if not batch:
            return []
        # Each job gets its own jid
        base = {key: value for key, value in items.items() if key != "jid"}
        payloads = [self._normalize_item(base, args) for args in batch]
        self.raw_push(payloads)
        return [payload["jid"] for payload in payloads]

    def raw_push(self, payloads: list[JobRecord]) -> bool:
        """Route a batch of complete job records according to the testing mode."""
        if Testing.is_fake():
            for job in payloads:
                record = normalize(job)
                if not record.get("jid"):
                    record["jid"] = generate_jid()
                Queues.push(record)
            return True

        if Testing.is_inline():
            for job in payloads:
                worker_cls = resolve_worker(job["class"])
                if not job.get("jid"):
                    job["jid"] = generate_jid()
                job_hash = normalize(job)
                logger.debug(
                    "Running job inline",
                    extra={"jid": job_hash["jid"], "queue": job_hash.get("queue"), "worker": job_hash["class"]},
                )
                worker_cls.process_job(job_hash)
            return True

        return self.raw_push_real(payloads)

    def raw_push_real(self, payloads: list[JobRecord]) -> bool:
        """Write job records to Redis.

        Immediate jobs are ``LPUSH``-ed onto ``queue:<name>`` and the queue
        name added to the ``queues`` set; jobs carrying ``at`` go into the
        ``schedule`` sorted set scored by their run time. All commands run in
        one MULTI/EXEC transaction.

        Raises:
            SubmissionError: If Redis rejects or cannot be reached.
        """
        now = time.time()
        try:
            pipe = self.redis_client.pipeline(transaction=True)
            for job in payloads:
                if "at" in job:
                    record = dict(job)
                    at = float(record.pop("at"))
                    pipe.zadd(self._key("schedule"), {dump_json(record): at})
                else:
                    record = {**job, "enqueued_at": now}
                    queue = str(record["queue"])
                    pipe.sadd(self._key("queues"), queue)
                    pipe.lpush(self._key(f"queue:{queue}"), dump_json(record))
            pipe.execute()
        except redis.RedisError as e:
            logger.error(
                f"Redis submission failed: {e}",
                extra={"jobs": len(payloads), "error": str(e)},
            )
            raise SubmissionError(
                "Failed to submit jobs to Redis",
                details={"jids": [job.get("jid") for job in payloads], "error": str(e)},
            ) from e

        logger.debug("Jobs submitted to Redis", extra={"jobs": len(payloads)})
        return True

    # -- helpers -----------------------------------------------------------

    def _key(self, key: str) -> str:
        namespace = get_settings_instance().redis_namespace
        return f"{namespace}:{key}" if namespace else key

    @staticmethod
    def _validate(item: Any) -> None:
        if not isinstance(item, dict):
            raise InvalidJobError("Job item must be a dict", details={"type": type(item).__name__})
        if not item.get("class"):
            raise InvalidJobError("Job item must include a 'class'", details={"keys": sorted(item)})
        if not isinstance(item.get("args"), (list, tuple)):
            raise InvalidJobError(
                "Job args must be a list",
                details={"class": worker_name(item["class"]), "args_type": type(item.get("args")).__name__},
            )

    def _normalize_item(self, item: dict[str, Any], args: Any) -> JobRecord:
        klass = item["class"]
        name = worker_name(klass)
        if isinstance(klass, str):
            klass = registered_workers().get(name)

        options: dict[str, Any]
        if klass is not None and hasattr(klass, "get_options"):
            options = klass.get_options()
        else:
            options = {"queue": get_settings_instance().default_queue, "retry": True}

        payload: JobRecord = {**options, **item}
        payload["class"] = name
        payload["args"] = list(args)
        payload["queue"] = str(payload["queue"])
        if not payload.get("jid"):
            payload["jid"] = generate_jid()
        payload.setdefault("created_at", time.time())
        return payload
