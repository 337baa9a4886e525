"""
Data models for Gaia Thread Miner.

This module defines typed data structures for the thread details we extract.
Using dataclasses provides clear structure, type hints, and easy JSON
serialization.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Tuple


@dataclass
class ThreadRecord:
    """
    Summary of a single GaiaOnline forum thread.

    Attributes:
        name: Thread title as shown in the thread header
        page_count: Number of pages in the thread (always at least 1)
        created_by: Username of the author of the first post
        last_updated_by: Username of the author of the most recent post
        last_updated_on: ISO 8601 UTC timestamp of the most recent post
                         Example: "2025-04-11T18:30:00.000Z"

    The serialized form uses the camelCase keys the API has always returned:
    ``name``, ``pageCount``, ``createdBy``, ``lastUpdatedBy``, ``lastUpdatedOn``.

    Example:
        record = ThreadRecord(
            name="Edge of Oblivion",
            page_count=2,
            created_by="alice",
            last_updated_by="bob",
            last_updated_on="2025-04-11T18:30:00.000Z"
        )
    """
    name: str
    page_count: int
    created_by: str
    last_updated_by: str
    last_updated_on: str

    # Python attribute -> serialized key
    FIELD_KEYS = {
        "name": "name",
        "page_count": "pageCount",
        "created_by": "createdBy",
        "last_updated_by": "lastUpdatedBy",
        "last_updated_on": "lastUpdatedOn",
    }

    @classmethod
    def keys(cls) -> Tuple[str, ...]:
        """Serialized keys, in extraction order."""
        return tuple(cls.FIELD_KEYS[f.name] for f in fields(cls))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThreadRecord":
        """Build a record from its serialized (camelCase) form."""
        return cls(**{attr: data[key] for attr, key in cls.FIELD_KEYS.items()})

    def to_dict(self) -> dict:
        """Convert the record to a dictionary for JSON serialization."""
        return {key: getattr(self, attr) for attr, key in self.FIELD_KEYS.items()}


@dataclass(frozen=True)
class PageLocator:
    """
    Where a given page of a thread lives on the upstream site.

    Attributes:
        thread_id: Numeric thread identifier
        page_number: 1-based page number as displayed on the site
        post_id: The site's deep-link identifier for that page,
                 "{thread_id}_{post_index}" (e.g. "42_16" for page 2)
    """
    thread_id: int
    page_number: int
    post_id: str
