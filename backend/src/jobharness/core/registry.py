"""Registry mapping worker identifiers to worker classes.

Workers register themselves when their class is defined (see
``Worker.__init_subclass__``); job records carry only the identifier string,
so inline execution and ``drain_all`` resolve it back through here.
"""

import logging
from typing import Any

from .exceptions import ResolutionError

logger = logging.getLogger(__name__)

# Registry mapping worker name -> class
_WORKERS: dict[str, type[Any]] = {}


def register_worker(cls: type[Any], name: str | None = None) -> str:
    """Register ``cls`` under ``name`` (default ``module.QualifiedName``)."""
    key = name or f"{cls.__module__}.{cls.__qualname__}"
    existing = _WORKERS.get(key)
    if existing is not None and existing is not cls:
        logger.warning(
            "Worker name re-registered",
            extra={"worker": key, "previous": f"{existing.__module__}.{existing.__qualname__}"},
        )
    _WORKERS[key] = cls
    return key


def unregister_worker(name: str) -> None:
    _WORKERS.pop(name, None)


def resolve_worker(name: str) -> type[Any]:
    """Return the worker class registered under ``name``.

    Raises:
        ResolutionError: If nothing is registered under ``name``.
    """
    try:
        return _WORKERS[name]
    except KeyError as e:
        raise ResolutionError(name) from e


def registered_workers() -> dict[str, type[Any]]:
    return dict(_WORKERS)


def restore_registry(snapshot: dict[str, type[Any]]) -> None:
    """Replace the registry contents with ``snapshot`` (for testing only).

    Pair with :func:`registered_workers` to drop workers defined inside a
    test once it finishes.
    """
    _WORKERS.clear()
    _WORKERS.update(snapshot)
