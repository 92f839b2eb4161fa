"""
Middleware chain wrapped around job execution.

A middleware is any class whose instances are callable as
``middleware(worker, job, queue, call_next)``. It may inspect or mutate the
worker and job, must call ``call_next()`` to continue down the chain, and may
skip the call to short-circuit execution.

Example:
    class TimingMiddleware(Middleware):
        def __call__(self, worker, job, queue, call_next):
            start = time.time()
            try:
                return call_next()
            finally:
                logger.info("job took %.3fs", time.time() - start)

    chain = MiddlewareChain()
    chain.add(TimingMiddleware)
    chain.invoke(worker, job, "default", lambda: worker.perform(*job["args"]))
"""

from collections.abc import Callable, Iterator
from typing import Any


class Middleware:
    """Base class documenting the middleware call contract."""

    def __call__(self, worker: Any, job: dict[str, Any], queue: str, call_next: Callable[[], Any]) -> Any:
        return call_next()


class _Entry:
    def __init__(self, klass: type, args: tuple, kwargs: dict[str, Any]) -> None:
        self.klass = klass
        self.args = args
        self.kwargs = kwargs

    def make_new(self) -> Any:
        return self.klass(*self.args, **self.kwargs)


class MiddlewareChain:
    """Ordered list of middleware classes, instantiated per invocation."""

    def __init__(self) -> None:
        self._entries: list[_Entry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[type]:
        return iter(self.entries)

    @property
    def entries(self) -> list[type]:
        return [entry.klass for entry in self._entries]

    def add(self, klass: type, *args: Any, **kwargs: Any) -> None:
        """Append ``klass`` (moving it to the end if already present)."""
        self.remove(klass)
        self._entries.append(_Entry(klass, args, kwargs))

    def prepend(self, klass: type, *args: Any, **kwargs: Any) -> None:
        """Insert ``klass`` as the outermost middleware."""
        self.remove(klass)
        self._entries.insert(0, _Entry(klass, args, kwargs))

    def remove(self, klass: type) -> None:
        self._entries = [entry for entry in self._entries if entry.klass is not klass]

    def exists(self, klass: type) -> bool:
        return any(entry.klass is klass for entry in self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def invoke(
        self,
        worker: Any,
        job: dict[str, Any],
        queue: str,
        continuation: Callable[[], Any],
    ) -> Any:
        """Run ``continuation`` wrapped by every middleware, outermost first.

        Returns whatever the continuation returns, unless a middleware
        short-circuits. Exceptions are not caught here.
        """
        chain = [entry.make_new() for entry in self._entries]

        def call(index: int) -> Any:
            if index == len(chain):
                return continuation()
            return chain[index](worker, job, queue, lambda: call(index + 1))

        return call(0)
