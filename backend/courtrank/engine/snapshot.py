"""Last-computed result holder for callers that display standings.

The engines keep no state. A caller that wants to reuse a table while the
underlying data is unchanged keeps a :class:`StandingsSnapshot` and asks
:func:`refresh` for a new one after each data refresh.
"""

import hashlib
import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

RowT = TypeVar("RowT", bound=BaseModel)


def _jsonable(part: Any) -> Any:
    if isinstance(part, BaseModel):
        return part.model_dump(mode="json")
    if isinstance(part, dict):
        return {str(key): _jsonable(value) for key, value in part.items()}
    if isinstance(part, (list, tuple)):
        return [_jsonable(item) for item in part]
    return part


def fingerprint_inputs(*parts: Any) -> str:
    payload = json.dumps([_jsonable(part) for part in parts], sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class StandingsSnapshot(Generic[RowT]):
    rows: tuple[RowT, ...]
    fingerprint: str
    computed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def is_current(self, fingerprint: str) -> bool:
        return self.fingerprint == fingerprint


def refresh(
    snapshot: StandingsSnapshot[RowT] | None,
    fingerprint: str,
    compute: Callable[[], Sequence[RowT]],
) -> StandingsSnapshot[RowT]:
    """Return ``snapshot`` if it matches ``fingerprint``, else recompute."""
    if snapshot is not None and snapshot.is_current(fingerprint):
        return snapshot
    return StandingsSnapshot(rows=tuple(compute()), fingerprint=fingerprint)
