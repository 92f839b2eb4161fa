"""pytest plugin shipping isolation fixtures for the job harness.

Registered through the ``pytest11`` entry point, so installing the package
makes these available to every test suite:

    def test_signup_sends_welcome_email(fake_jobs):
        signup("foo@example.com")
        assert len(WelcomeMailer.jobs()) == 1

    @pytest.mark.jobharness_mode("inline")
    def test_signup_runs_mailer(job_queues):
        signup("foo@example.com")
        assert outbox == ["foo@example.com"]
"""

from collections.abc import Iterator

import pytest

from .core.modes import HarnessMode, Testing
from .core.queues import Queues, QueueStore


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "jobharness_mode(mode): run the test with the job harness in the given mode "
        "(disabled, fake or inline)",
    )


@pytest.fixture
def job_queues() -> Iterator[QueueStore]:
    """Empty queue store before and after the test."""
    Queues.clear_all()
    yield Queues
    Queues.clear_all()


@pytest.fixture
def fake_jobs(job_queues: QueueStore) -> Iterator[QueueStore]:
    """Run the test in fake mode; jobs collect in the returned store."""
    with Testing.fake():
        yield job_queues


@pytest.fixture
def inline_jobs(job_queues: QueueStore) -> Iterator[QueueStore]:
    """Run the test in inline mode; jobs execute at enqueue time."""
    with Testing.inline():
        yield job_queues


@pytest.fixture
def disabled_jobs(job_queues: QueueStore) -> Iterator[QueueStore]:
    """Run the test with the harness disabled; jobs go to Redis."""
    with Testing.disable():
        yield job_queues


@pytest.fixture(autouse=True)
def _jobharness_mode_marker(request: pytest.FixtureRequest) -> Iterator[None]:
    marker = request.node.get_closest_marker("jobharness_mode")
    if marker is None:
        yield
        return
    with Testing.set_mode(HarnessMode.parse(marker.args[0])):
        yield
