"""Job record model and its JSON codec.

A job record is a plain dictionary with string keys. The harness recognises:

    {
        "class": "app.workers.HardWorker",   # worker identifier
        "args": [1, 2],                       # positional arguments
        "queue": "default",                   # destination queue
        "jid": "a3c5b065c5c4b27fc1102833",    # unique job id
        "retry": True,                        # opaque to the harness
        "created_at": 1447445554.419934,      # epoch seconds
        "bid": "...",                         # optional batch id
    }

Records are copied through JSON whenever the harness takes ownership of
them, which severs aliasing with the caller's dictionary and normalises
values to JSON's native types (tuples become lists, non-string keys become
strings).
"""

import json
import secrets
from typing import Any

from .config import get_settings_instance
from .exceptions import JobSerializationError

JobRecord = dict[str, Any]


def dump_json(value: Any) -> str:
    """Serialize a job record (or any JSON-compatible value) to text.

    Raises:
        JobSerializationError: If the value is not JSON-serializable.
    """
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        jid = value.get("jid") if isinstance(value, dict) else None
        raise JobSerializationError(
            f"Failed to serialize job: {e}",
            details={"jid": jid, "error": str(e)},
        ) from e


def load_json(text: str) -> Any:
    """Deserialize text produced by :func:`dump_json`.

    Raises:
        JobSerializationError: If the text is not valid JSON.
    """
    try:
        return json.loads(text)
    except (TypeError, json.JSONDecodeError) as e:
        raise JobSerializationError(
            f"Failed to parse job JSON: {e}",
            details={"error": str(e), "data_preview": text[:100] if isinstance(text, str) else None},
        ) from e


def normalize(record: JobRecord) -> JobRecord:
    """Return a deep, type-normalised copy of ``record``.

    Idempotent: ``normalize(normalize(j)) == normalize(j)``.
    """
    return load_json(dump_json(record))


def generate_jid() -> str:
    """Generate a random hex job id."""
    return secrets.token_hex(get_settings_instance().jid_bytes)


def worker_name(worker: Any) -> str:
    """Canonical identifier for a worker class, or a string passed through."""
    if isinstance(worker, str):
        return worker
    name = getattr(worker, "worker_name", None)
    if callable(name):
        return name()
    return f"{worker.__module__}.{worker.__qualname__}"
