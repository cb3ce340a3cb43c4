"""
Job data model.

A Job is valid only when every scalar field is populated and its JobData
validates on its own. Validity is checked by the service before anything
is persisted; the store does not enforce it.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ValidationError


class JobStatus(str, Enum):
    PENDING = "pending"
    WORKING = "working"
    OK = "ok"
    FAILED = "failed"


def to_utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC. Naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def is_safe_name(name: str) -> bool:
    """Return True if ``name`` can be used as an artifact file stem."""
    if not name:
        return False
    return "/" not in name and "\\" not in name and ".." not in name


@dataclass
class SelectParams:
    """Filter for JobRepository.select. Empty status and limit 0 mean no filter."""
    status: str = ""
    limit: int = 0


@dataclass
class JobData:
    """Scrape parameters embedded in a job."""
    keywords: List[str] = field(default_factory=list)
    lang: str = ""
    zoom: int = 0
    lat: str = ""
    lon: str = ""
    fast_mode: bool = False
    radius: int = 0
    depth: int = 0
    email: bool = False
    max_time: timedelta = timedelta(0)
    proxies: List[str] = field(default_factory=list)
    fields: str = ""

    def validate(self) -> None:
        if not self.keywords:
            raise ValidationError("missing keywords")

        if not self.lang:
            raise ValidationError("missing lang")

        if len(self.lang) != 2:
            raise ValidationError("invalid lang")

        if self.depth == 0:
            raise ValidationError("missing depth")

        if not self.max_time:
            raise ValidationError("missing max time")

        if self.fast_mode and (not self.lat or not self.lon):
            raise ValidationError("missing geo coordinates")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "keywords": list(self.keywords),
            "lang": self.lang,
            "zoom": self.zoom,
            "lat": self.lat,
            "lon": self.lon,
            "fast_mode": self.fast_mode,
            "radius": self.radius,
            "depth": self.depth,
            "email": self.email,
            "max_time": self.max_time.total_seconds(),
            "proxies": list(self.proxies),
            "fields": self.fields,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JobData":
        return cls(
            keywords=list(data.get("keywords") or []),
            lang=data.get("lang", ""),
            zoom=int(data.get("zoom", 0)),
            lat=data.get("lat", ""),
            lon=data.get("lon", ""),
            fast_mode=bool(data.get("fast_mode", False)),
            radius=int(data.get("radius", 0)),
            depth=int(data.get("depth", 0)),
            email=bool(data.get("email", False)),
            max_time=timedelta(seconds=float(data.get("max_time", 0))),
            proxies=list(data.get("proxies") or []),
            fields=data.get("fields", ""),
        )


@dataclass
class Job:
    """A scrape job tracked from submission to completion."""
    id: str
    name: str
    date: Optional[datetime]
    status: str
    data: JobData = field(default_factory=JobData)

    def validate(self) -> None:
        """
        Check the job before it is persisted.

        Raises:
            ValidationError: naming the first missing or malformed field
        """
        if not self.id:
            raise ValidationError("missing id")

        if not is_safe_name(self.id):
            raise ValidationError("invalid id")

        if not self.name:
            raise ValidationError("missing name")

        if not self.status:
            raise ValidationError("missing status")

        if self.status not in [s.value for s in JobStatus]:
            raise ValidationError("invalid status")

        if self.date is None:
            raise ValidationError("missing date")

        self.data.validate()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "date": self.date.isoformat() if self.date else None,
            "status": JobStatus(self.status).value if self.status else "",
            "data": self.data.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        date = data.get("date")
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            date=datetime.fromisoformat(date) if date else None,
            status=data.get("status", ""),
            data=JobData.from_dict(data.get("data") or {}),
        )
