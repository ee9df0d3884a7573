"""Serializable snapshots of histogram state."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

import bson
from bson.errors import BSONError
from bson.int64 import Int64

_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1

_FIELDS = (
    ("lowest", "lowest_trackable_value"),
    ("highest", "highest_trackable_value"),
    ("figures", "significant_figures"),
)


def _as_int64(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {name!r} must be an integer, got {type(value).__name__}")
    value = int(value)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"field {name!r} does not fit in a 64-bit integer")
    return value


@dataclass
class Snapshot:
    """An exported view of a histogram, suitable for serialization."""

    lowest_trackable_value: int = 0
    highest_trackable_value: int = 0
    significant_figures: int = 0
    counts: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the snapshot as a plain mapping keyed by its wire names."""
        return {
            "lowest": self.lowest_trackable_value,
            "highest": self.highest_trackable_value,
            "figures": self.significant_figures,
            "counts": list(self.counts),
        }

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "Snapshot":
        """Build a snapshot from a mapping; missing fields take zero values."""
        if not isinstance(data, Mapping):
            raise ValueError(f"snapshot data must be a mapping, got {type(data).__name__}")
        values = {attr: _as_int64(key, data.get(key, 0)) for key, attr in _FIELDS}
        raw_counts = data.get("counts")
        if raw_counts is None:
            counts: list[int] = []
        elif isinstance(raw_counts, (list, tuple)):
            counts = [_as_int64("counts", item) for item in raw_counts]
        else:
            raise ValueError("field 'counts' must be an array of integers")
        return Snapshot(counts=counts, **values)

    def to_bson(self) -> bytes:
        """Encode the snapshot as a BSON document of 64-bit integers."""
        document = {
            "lowest": Int64(_as_int64("lowest", self.lowest_trackable_value)),
            "highest": Int64(_as_int64("highest", self.highest_trackable_value)),
            "figures": Int64(_as_int64("figures", self.significant_figures)),
            "counts": [Int64(_as_int64("counts", count)) for count in self.counts],
        }
        return bson.encode(document)

    @staticmethod
    def from_bson(data: bytes) -> "Snapshot":
        """Decode a snapshot from BSON bytes."""
        try:
            document = bson.decode(bytes(data))
        except (BSONError, TypeError) as exc:
            raise ValueError(f"problem decoding snapshot document: {exc}") from exc
        return Snapshot.from_dict(document)

    def to_json(self) -> str:
        """Encode the snapshot as a JSON object."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @staticmethod
    def from_json(data: str | bytes) -> "Snapshot":
        """Decode a snapshot from a JSON object."""
        try:
            document = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ValueError(f"problem decoding snapshot json: {exc}") from exc
        return Snapshot.from_dict(document)