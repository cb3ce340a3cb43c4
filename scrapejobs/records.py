"""
Result records emitted by scrapers.

A record describes itself: ``headers()`` names its columns and ``row()``
returns the values in the same order. Different record shapes may share
one output stream.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Sequence


class Record(ABC):
    """A self-describing result row."""

    @abstractmethod
    def headers(self) -> List[str]:
        """Column names, in output order."""

    @abstractmethod
    def row(self) -> List[str]:
        """Column values, index-aligned with headers()."""


class TabularRecord(Record):
    """Record built from an explicit header list and value list."""

    def __init__(self, headers: Sequence[str], values: Sequence[str]):
        if len(headers) != len(values):
            raise ValueError(
                f"headers and values differ in length ({len(headers)} != {len(values)})"
            )
        self._headers = list(headers)
        self._values = list(values)

    def headers(self) -> List[str]:
        return list(self._headers)

    def row(self) -> List[str]:
        return list(self._values)

    def __repr__(self) -> str:
        return f"TabularRecord({dict(zip(self._headers, self._values))!r})"


@dataclass
class Entry(Record):
    """A place scraped from a maps listing."""
    title: str = ""
    category: str = ""
    address: str = ""
    phone: str = ""
    website: str = ""
    rating: float = 0.0
    review_count: int = 0
    latitude: float = 0.0
    longitude: float = 0.0
    link: str = ""
    emails: List[str] = field(default_factory=list)

    def headers(self) -> List[str]:
        return [
            "title",
            "category",
            "address",
            "phone",
            "website",
            "review_rating",
            "review_count",
            "latitude",
            "longitude",
            "link",
            "emails",
        ]

    def row(self) -> List[str]:
        return [
            self.title,
            self.category,
            self.address,
            self.phone,
            self.website,
            f"{self.rating:.2f}",
            str(self.review_count),
            f"{self.latitude:.6f}",
            f"{self.longitude:.6f}",
            self.link,
            ", ".join(self.emails),
        ]
