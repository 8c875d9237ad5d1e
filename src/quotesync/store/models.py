"""Data models for quotes held by the local store."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, StrictStr, field_validator


class RecordOrigin(str, Enum):
    """Where a quote entered the local store from."""
    LOCAL = "local"
    REMOTE = "remote"


class RemoteType(str, Enum):
    """Supported remote quote servers."""
    JSONPLACEHOLDER = "jsonplaceholder"


@dataclass
class Record:
    """A single quote as stored and synchronized.

    Identity for merge purposes is ``text`` alone. Keys other than ``text``,
    ``category`` and ``origin`` are kept in ``extra`` and written back unchanged.
    ``key_order`` remembers the key layout of the object the record was read
    from, so rewriting a loaded collection reproduces the same image.
    """

    text: str
    category: str
    origin: RecordOrigin = RecordOrigin.LOCAL
    extra: Dict[str, Any] = field(default_factory=dict)
    key_order: Tuple[str, ...] = field(default=(), repr=False, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted JSON object shape.

        ``origin`` is written for remote records, and for local records only
        when the source object spelled it out.
        """
        data: Dict[str, Any] = {"text": self.text, "category": self.category}
        if self.origin == RecordOrigin.REMOTE or "origin" in self.key_order:
            data["origin"] = self.origin.value
        data.update(self.extra)

        if not self.key_order:
            return data

        ordered = {key: data[key] for key in self.key_order if key in data}
        ordered.update(data)
        return ordered

    @classmethod
    def from_dict(cls, data: Any, default_origin: RecordOrigin = RecordOrigin.LOCAL) -> "Record":
        """Build a record from a persisted or imported JSON object.

        Raises:
            pydantic.ValidationError: If ``data`` is not an object with
                non-empty string ``text`` and ``category`` fields
        """
        payload = QuotePayload.model_validate(data)
        return payload.to_record(default_origin, key_order=tuple(data))


class QuotePayload(BaseModel):
    """Validation model for quote objects coming from files or storage."""

    model_config = ConfigDict(extra="allow")

    text: StrictStr
    category: StrictStr

    @field_validator("text", "category")
    @classmethod
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    def to_record(
        self,
        default_origin: RecordOrigin = RecordOrigin.LOCAL,
        key_order: Tuple[str, ...] = ()
    ) -> Record:
        """Convert to a Record, splitting known keys from opaque payload."""
        extra = dict(self.model_extra or {})
        origin = default_origin
        if extra.get("origin") in (RecordOrigin.LOCAL.value, RecordOrigin.REMOTE.value):
            origin = RecordOrigin(extra.pop("origin"))
        return Record(text=self.text, category=self.category, origin=origin, extra=extra, key_order=key_order)


@dataclass
class ImportResult:
    """Outcome of a file import."""

    imported: int
    rejected: int
    source: Optional[str] = None

    @property
    def total(self) -> int:
        """Number of elements examined in the imported array."""
        return self.imported + self.rejected
