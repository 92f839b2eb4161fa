"""
Unit tests for the client and its testing-mode interceptor.

Each mode is exercised through the same entry points: fake stores a
normalised copy, inline runs the job before returning, disabled writes to
(a fake) Redis.
"""

import json

import pytest

from jobharness.core.client import Client
from jobharness.core.config import get_settings_instance
from jobharness.core.exceptions import InvalidJobError, ResolutionError, SubmissionError
from jobharness.core.job import load_json
from jobharness.core.modes import Testing
from jobharness.core.queues import Queues
from jobharness.core.worker import Worker

calls: list[tuple] = []


class EmailWorker(Worker):
    harness_options = {"queue": "mailers"}

    def perform(self, address, options=None):
        calls.append(("EmailWorker", self.jid, address, options))


class ExplodingWorker(Worker):
    def perform(self, n):
        calls.append(("ExplodingWorker", n))
        if n == 2:
            raise ValueError("job 2 failed")


class ChainWorker(Worker):
    def perform(self, depth):
        calls.append(("ChainWorker", depth, Testing.mode.value))
        if depth:
            ChainWorker.perform_async(depth - 1)


@pytest.fixture(autouse=True)
def _clear_calls():
    calls.clear()
    yield
    calls.clear()


# =============================================================================
# Item normalisation
# =============================================================================


class TestPush:
    def test_push_fills_defaults_from_worker_options(self):
        jid = Client().push({"class": EmailWorker, "args": ["a@example.com"]})

        [job] = Queues["mailers"]
        assert job["jid"] == jid
        assert job["class"] == EmailWorker.worker_name()
        assert job["queue"] == "mailers"
        assert job["retry"] is True
        assert job["args"] == ["a@example.com"]
        assert "created_at" in job

    def test_push_keeps_caller_supplied_fields(self):
        jid = Client().push(
            {"class": EmailWorker, "args": ("b@example.com",), "jid": "fixed", "queue": "bulk", "created_at": 10.0}
        )

        assert jid == "fixed"
        [job] = Queues["bulk"]
        assert job["created_at"] == 10.0
        assert job["args"] == ["b@example.com"]

    def test_push_accepts_registered_name(self):
        Client().push({"class": EmailWorker.worker_name(), "args": ["c@example.com"]})

        assert len(EmailWorker.jobs()) == 1

    def test_push_unknown_name_uses_default_queue(self):
        Client().push({"class": "legacy.Worker", "args": []})

        [job] = Queues[get_settings_instance().default_queue]
        assert job["class"] == "legacy.Worker"
        assert job["retry"] is True

    @pytest.mark.parametrize(
        "item,message",
        [
            ({"args": [1]}, "must include a 'class'"),
            ({"class": EmailWorker, "args": "x"}, "args must be a list"),
            ({"class": EmailWorker}, "args must be a list"),
            (["not", "a", "dict"], "must be a dict"),
        ],
    )
    def test_push_rejects_malformed_items(self, item, message):
        with pytest.raises(InvalidJobError, match=message):
            Client().push(item)

        assert len(Queues) == 0

    def test_push_bulk_creates_one_job_per_args_list(self):
        jids = Client().push_bulk({"class": EmailWorker, "args": [["a"], ["b"], ["c"]], "jid": "ignored"})

        assert len(set(jids)) == 3
        assert "ignored" not in jids
        assert [job["args"] for job in EmailWorker.jobs()] == [["a"], ["b"], ["c"]]
        assert [job["jid"] for job in EmailWorker.jobs()] == jids

    def test_push_bulk_requires_nested_lists(self):
        with pytest.raises(InvalidJobError, match="list of lists"):
            Client().push_bulk({"class": EmailWorker, "args": [1, 2]})

    def test_push_bulk_empty(self):
        assert Client().push_bulk({"class": EmailWorker, "args": []}) == []


# =============================================================================
# Fake mode
# =============================================================================


class TestFakeMode:
    def test_fake_stores_normalised_copy(self):
        options = {"tags": ("x", "y")}
        payload = {"class": "W", "args": [options], "queue": "default", "jid": "abc123"}

        assert Client().raw_push([payload]) is True

        [stored] = Queues["default"]
        assert stored == {"class": "W", "args": [{"tags": ["x", "y"]}], "queue": "default", "jid": "abc123"}
        assert stored is not payload
        options["tags"] = ()
        assert stored["args"][0]["tags"] == ["x", "y"]

    def test_fake_generates_jid_without_mutating_caller(self):
        payload = {"class": "W", "args": [], "queue": "default"}

        Client().raw_push([payload])

        [stored] = Queues["default"]
        assert stored["jid"] and len(stored["jid"]) == 24
        assert "jid" not in payload

    def test_fake_never_executes_or_touches_redis(self, fake_redis):
        EmailWorker.perform_async("a@example.com")

        assert calls == []
        assert fake_redis.executed == []

    def test_fake_stores_each_job_exactly_once(self):
        jids = [EmailWorker.perform_async(f"{n}@example.com") for n in range(5)]

        stored = [job["jid"] for job in Queues["mailers"]]
        assert sorted(stored) == sorted(jids)
        assert len(stored) == len(set(stored))


# =============================================================================
# Inline mode
# =============================================================================


class TestInlineMode:
    def test_inline_runs_before_returning(self):
        with Testing.inline():
            jid = EmailWorker.perform_async("a@example.com", {"cc": "b"})

        assert calls == [("EmailWorker", jid, "a@example.com", {"cc": "b"})]
        assert len(Queues) == 0
        assert EmailWorker.jobs() == []

    def test_inline_generates_missing_jid(self):
        with Testing.inline():
            Client().raw_push([{"class": EmailWorker.worker_name(), "args": ["x"], "queue": "mailers"}])

        [(_, jid, _, _)] = calls
        assert jid and len(jid) == 24

    def test_inline_unknown_worker_raises_resolution_error(self):
        with Testing.inline():
            with pytest.raises(ResolutionError) as exc_info:
                Client().raw_push([{"class": "app.Missing", "args": [], "queue": "default", "jid": "j"}])

        assert exc_info.value.details == {"worker": "app.Missing"}

    def test_inline_failure_aborts_rest_of_batch(self):
        with Testing.inline():
            with pytest.raises(ValueError, match="job 2 failed"):
                Client().push_bulk({"class": ExplodingWorker, "args": [[1], [2], [3]]})

        assert calls == [("ExplodingWorker", 1), ("ExplodingWorker", 2)]
        assert len(Queues) == 0

    def test_inline_chains_execute_recursively(self):
        with Testing.inline():
            ChainWorker.perform_async(2)

        assert calls == [("ChainWorker", 2, "inline"), ("ChainWorker", 1, "inline"), ("ChainWorker", 0, "inline")]

    def test_inline_passes_normalised_copy_to_worker(self):
        seen = []

        class Inspect(Worker):
            def perform(self, payload):
                seen.append(payload)

        original = {"ids": (1, 2)}
        with Testing.inline():
            Inspect.perform_async(original)

        assert seen == [{"ids": [1, 2]}]
        assert seen[0] is not original


# =============================================================================
# Disabled mode (real submission path)
# =============================================================================


class TestDisabledMode:
    def test_disabled_pushes_to_redis(self, fake_redis):
        with Testing.disable():
            jid = EmailWorker.perform_async("a@example.com")

        assert len(Queues) == 0
        assert calls == []
        assert fake_redis.sets["queues"] == {"mailers"}
        [raw] = fake_redis.lists["queue:mailers"]
        record = load_json(raw)
        assert record["jid"] == jid
        assert record["args"] == ["a@example.com"]
        assert "enqueued_at" in record

    def test_disabled_batch_runs_in_one_transaction(self, fake_redis):
        with Testing.disable():
            EmailWorker.set(queue="bulk").perform_async("a")
            EmailWorker.perform_async("b")

        assert len(fake_redis.executed) == 2
        assert [name for name, _ in fake_redis.executed[0]] == ["sadd", "lpush"]

        fake_redis.executed.clear()
        with Testing.disable():
            Client().push_bulk({"class": EmailWorker, "args": [["x"], ["y"]]})

        assert len(fake_redis.executed) == 1
        # LPUSH puts the newest job at the head
        assert [json.loads(raw)["args"] for raw in fake_redis.lists["queue:mailers"]] == [["y"], ["x"], ["b"]]

    def test_disabled_scheduled_job_goes_to_schedule_set(self, fake_redis):
        with Testing.disable():
            jid = EmailWorker.perform_in(3600, "later@example.com")

        [(raw, score)] = fake_redis.zsets["schedule"].items()
        record = json.loads(raw)
        assert record["jid"] == jid
        assert "at" not in record
        assert score > 0
        assert "queue:mailers" not in fake_redis.lists

    def test_disabled_respects_namespace(self, fake_redis, monkeypatch):
        monkeypatch.setattr(get_settings_instance(), "redis_namespace", "myapp")

        with Testing.disable():
            EmailWorker.perform_async("a")

        assert "myapp:queue:mailers" in fake_redis.lists
        assert fake_redis.sets["myapp:queues"] == {"mailers"}

    def test_redis_failure_raises_submission_error(self, broken_redis):
        with Testing.disable():
            with pytest.raises(SubmissionError) as exc_info:
                EmailWorker.perform_async("a")

        assert "Connection refused" in exc_info.value.details["error"]
        assert len(exc_info.value.details["jids"]) == 1
        assert broken_redis.lists == {}

    def test_explicit_redis_client_wins(self, fake_redis):
        own = type(fake_redis)()

        Client(redis_client=own).raw_push_real(
            [{"class": "W", "args": [], "queue": "default", "jid": "j1"}]
        )

        assert len(own.lists["queue:default"]) == 1
        assert fake_redis.lists == {}
