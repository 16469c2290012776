from datetime import datetime, timezone
from typing import Callable
from uuid import uuid4

MAX_ID_ATTEMPTS = 16


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching what the database stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def generate_unique_id(exists: Callable[[str], bool]) -> str:
    """Return a fresh UUID string for which ``exists`` is false.

    A repeat is practically impossible; the loop is capped so a broken
    ``exists`` callback fails loudly instead of spinning.
    """
    for _ in range(MAX_ID_ATTEMPTS):
        candidate = str(uuid4())
        if not exists(candidate):
            return candidate
    raise RuntimeError(f"Could not generate a unique identifier after {MAX_ID_ATTEMPTS} attempts.")
