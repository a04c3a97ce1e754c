"""Username normalization rules.

A claim identifier is compared case-insensitively: it is trimmed and
lowercased before storage or lookup. Batches are deduplicated keeping
the first occurrence, so input order decides priority.
"""

from __future__ import annotations

from collections.abc import Iterable

from gridclaim.domain.errors import ValidationError


def normalize_username(raw: str) -> str:
    """Return the canonical form of *raw* (trimmed, lowercased).

    Examples:
        >>> normalize_username("  Alice ")
        'alice'
        >>> normalize_username("   ")
        ''
    """
    return raw.strip().lower()


def normalize_batch(raw: Iterable[object]) -> list[str]:
    """Normalize, drop empties, and deduplicate a batch in input order.

    Raises:
        ValidationError: If an entry is not a string or no usable
            username remains.
    """
    seen: set[str] = set()
    batch: list[str] = []
    for entry in raw:
        if not isinstance(entry, str):
            msg = f"Usernames must be strings, got {type(entry).__name__}"
            raise ValidationError(msg)
        username = normalize_username(entry)
        if not username or username in seen:
            continue
        seen.add(username)
        batch.append(username)

    if not batch:
        raise ValidationError("No usernames provided")
    return batch
