"""Listing and run-result data models shared by the pipeline."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

# Room configurations worth a notification. Overridable via config (targets.sizes).
TARGET_SIZES = frozenset({"0+3", "0+4", "0+5", "1+3", "3+1", "1+4", "4+1", "1+5", "5+1"})


@dataclass(frozen=True)
class ListingRecord:
    """
    One housing-auction entry extracted from the listing page.

    Equality is field-wise over all four fields, so a record whose
    description text changed is a different record.
    """

    size: str  # Room configuration, e.g. "3+1"
    description: str
    date: str  # DD.MM.YYYY, kept as text
    link: Optional[str] = None

    def matches_size(self, target_sizes: Iterable[str]) -> bool:
        """Exact, case-sensitive membership of the size token."""
        return self.size in set(target_sizes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "description": self.description,
            "date": self.date,
            "link": self.link,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ListingRecord":
        """
        Build a record from its JSON form.

        Raises:
            ValueError: If data is not an object, or a field is missing or not a string
        """
        if not isinstance(data, dict):
            raise ValueError(f"Listing record must be an object, got {type(data).__name__}")

        missing = [key for key in ("size", "description", "date") if data.get(key) is None]
        if missing:
            raise ValueError(f"Listing record missing fields: {', '.join(missing)}")

        for key in ("size", "description", "date", "link"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"Listing record field {key!r} must be a string, got {type(value).__name__}")

        return cls(
            size=data["size"],
            description=data["description"],
            date=data["date"],
            link=data.get("link"),
        )

    def __repr__(self) -> str:
        return f"ListingRecord({self.size}, {self.date}, {self.link})"


def records_to_json(records: Iterable[ListingRecord]) -> List[Dict[str, Any]]:
    """Serialize records to a JSON-ready list."""
    return [record.to_dict() for record in records]


def records_from_json(data: Any) -> List[ListingRecord]:
    """
    Deserialize a snapshot document.

    Raises:
        ValueError: If the document is not a list of valid record objects
    """
    if not isinstance(data, list):
        raise ValueError(f"Snapshot must be a JSON array, got {type(data).__name__}")
    return [ListingRecord.from_dict(item) for item in data]


@dataclass
class RunResult:
    """Outcome of a single watcher run, reported to the invoker."""

    message: str
    email_sent: bool = False
    data: List[ListingRecord] = field(default_factory=list)
    relevant: List[ListingRecord] = field(default_factory=list)
    snapshot_saved: bool = False
    save_failed: bool = False
    fetch_failed: bool = False
    skipped: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def notified(self) -> bool:
        return self.email_sent

    @property
    def current_count(self) -> int:
        return len(self.data)

    @property
    def success(self) -> bool:
        """False only for a failed snapshot save or a run skipped by the lock."""
        return not (self.skipped or self.save_failed)

    def to_payload(self) -> Dict[str, Any]:
        """JSON body returned to the invoker."""
        return {
            "message": self.message,
            "emailSent": self.email_sent,
            "data": records_to_json(self.data),
            "snapshotSaved": self.snapshot_saved,
            "errors": list(self.errors),
        }
