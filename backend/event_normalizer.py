from __future__ import annotations

import logging
import urllib.parse
from collections.abc import Sequence
from datetime import date, datetime, time
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel, ConfigDict

from favorites_store import FavoriteEvent

"""
Ticketmaster event records -> flat display models.

Every field the list view shows is read through `_SUMMARY_FIELDS`, one row per field:
the nested path into the upstream record and the value used when that path is absent
or empty. Nothing else in this module substitutes defaults for summary fields.
"""

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

Path = tuple[Any, ...]

_SUMMARY_FIELDS: tuple[tuple[str, Path, Optional[str]], ...] = (
    ("name", ("name",), ""),
    ("local_date", ("dates", "start", "localDate"), None),
    ("local_time", ("dates", "start", "localTime"), None),
    ("category_name", ("classifications", 0, "segment", "name"), NOT_AVAILABLE),
    ("venue_name", ("_embedded", "venues", 0, "name"), NOT_AVAILABLE),
    ("image_url", ("images", 0, "url"), ""),
)


def dig(record: Any, path: Path) -> Any:
    """Follow dict keys / list indices; None as soon as a step is missing."""
    node = record
    for step in path:
        if isinstance(step, int):
            if not isinstance(node, list) or len(node) <= step:
                return None
        elif not isinstance(node, dict):
            return None
        node = node[step] if isinstance(step, int) else node.get(step)
        if node is None:
            return None
    return node


def _field(record: dict[str, Any], path: Path, default: Optional[str]) -> Optional[str]:
    value = dig(record, path)
    if value is None or value == "":
        return default
    return str(value)


class EventSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    local_date: Optional[str] = None
    local_time: Optional[str] = None
    category_name: str = NOT_AVAILABLE
    venue_name: str = NOT_AVAILABLE
    image_url: str = ""

    def starts_at(self) -> Optional[datetime]:
        return parse_local_datetime(self.local_date, self.local_time)

    def to_favorite(self) -> FavoriteEvent:
        return FavoriteEvent(
            event_id=self.id,
            name=self.name,
            date=self.local_date or "",
            time=self.local_time or "",
            category=self.category_name,
            venue=self.venue_name,
            image=self.image_url,
        )


def parse_local_datetime(local_date: Optional[str], local_time: Optional[str]) -> Optional[datetime]:
    if not local_date:
        return None
    try:
        day = date.fromisoformat(local_date)
    except ValueError:
        return None
    try:
        at = time.fromisoformat(local_time) if local_time else time()
    except ValueError:
        at = time()
    return datetime.combine(day, at)


def normalize_event(record: dict[str, Any]) -> Optional[EventSummary]:
    """
    Map one upstream record; None when it has no id (it could not be opened or favorited).
    """
    event_id = _field(record, ("id",), "") if isinstance(record, dict) else ""
    if not event_id:
        logger.warning("Skipping Ticketmaster event without an id: %r", (record or {}).get("name") if isinstance(record, dict) else record)
        return None
    values = {name: _field(record, path, default) for name, path, default in _SUMMARY_FIELDS}
    return EventSummary(id=event_id, **values)


def chronological_key(summary: EventSummary) -> tuple[bool, datetime]:
    """Ascending by start; undated events sort after everything else."""
    when = summary.starts_at()
    return (when is None, when or datetime.max)


class EventResults(Sequence):
    """
    Normalized, chronologically sorted view over one search reply.
    Records are mapped on first access only. Iterating again, or re-sorting with
    `sorted_by`, works from the same data without another request.
    `error` is set when the search itself failed; the list is then empty.
    """

    def __init__(self, raw_events: Iterable[dict[str, Any]] = (), *, error: Optional[str] = None):
        self._raw = list(raw_events or [])
        self._items: Optional[list[EventSummary]] = None
        self.error = error

    @classmethod
    def from_search_payload(cls, payload: dict[str, Any] | None) -> "EventResults":
        return cls(dig(payload, ("_embedded", "events")) or [])

    @classmethod
    def failed(cls, error: str) -> "EventResults":
        return cls((), error=error)

    def _summaries(self) -> list[EventSummary]:
        if self._items is None:
            mapped = (normalize_event(r) for r in self._raw)
            self._items = sorted((s for s in mapped if s is not None), key=chronological_key)
        return self._items

    def __getitem__(self, index):
        return self._summaries()[index]

    def __len__(self) -> int:
        return len(self._summaries())

    def sorted_by(self, key: Callable[[EventSummary], Any], *, reverse: bool = False) -> list[EventSummary]:
        return sorted(self._summaries(), key=key, reverse=reverse)

    def find(self, event_id: str) -> Optional[EventSummary]:
        return next((s for s in self._summaries() if s.id == event_id), None)


def format_event_date(local_date: Optional[str], local_time: Optional[str] = None) -> str:
    """'May 1, 2024 20:00:00' style; 'N/A' without a usable date."""
    if not local_date:
        return NOT_AVAILABLE
    try:
        day = date.fromisoformat(local_date)
    except ValueError:
        return NOT_AVAILABLE
    out = f"{day:%b} {day.day}, {day.year}"
    if local_time:
        out += f" {local_time}"
    return out


# Event detail view

_TICKET_STATUS = {
    "onsale": "On Sale",
    "offsale": "Off Sale",
    "canceled": "Canceled",
    "cancelled": "Canceled",
    "postponed": "Postponed",
    "rescheduled": "Rescheduled",
}


class EventDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    local_date: Optional[str] = None
    local_time: Optional[str] = None
    artists: list[str] = []
    category_name: str = NOT_AVAILABLE
    genres: str = NOT_AVAILABLE
    venue_name: str = NOT_AVAILABLE
    venue_address: str = NOT_AVAILABLE
    venue_url: str = ""
    venue_map_url: str = ""
    price_range: str = NOT_AVAILABLE
    ticket_status: str = NOT_AVAILABLE
    buy_url: str = ""
    seatmap_url: str = ""
    image_url: str = ""
    is_music: bool = False

    @property
    def artist_names(self) -> str:
        return ", ".join(self.artists) if self.artists else NOT_AVAILABLE

    def to_favorite(self) -> FavoriteEvent:
        return FavoriteEvent(
            event_id=self.id,
            name=self.name,
            date=self.local_date or "",
            time=self.local_time or "",
            category=self.category_name,
            venue=self.venue_name,
            image=self.image_url,
        )


def _join(parts: Iterable[Any], sep: str) -> str:
    kept = [str(p) for p in parts if p]
    return sep.join(kept) or NOT_AVAILABLE


def _format_amount(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _price_range(price_ranges: Any) -> str:
    first = dig(price_ranges, (0,))
    if not isinstance(first, dict):
        return NOT_AVAILABLE
    currency = first.get("currency") or "USD"
    amounts = [first.get("min"), first.get("max")]
    shown = [_format_amount(a) for a in amounts if a is not None]
    if not shown:
        return NOT_AVAILABLE
    return f"{' - '.join(shown)} {currency}"


def describe_event(record: dict[str, Any]) -> EventDetail:
    venue = dig(record, ("_embedded", "venues", 0)) or {}
    attractions = dig(record, ("_embedded", "attractions")) or []
    classification = dig(record, ("classifications", 0)) or {}
    segment = dig(classification, ("segment", "name"))

    lat = dig(venue, ("location", "latitude"))
    lng = dig(venue, ("location", "longitude"))

    return EventDetail(
        id=str(record.get("id") or ""),
        name=str(record.get("name") or ""),
        local_date=_field(record, ("dates", "start", "localDate"), None),
        local_time=_field(record, ("dates", "start", "localTime"), None),
        artists=[str(a.get("name")) for a in attractions if isinstance(a, dict) and a.get("name")],
        category_name=str(segment or NOT_AVAILABLE),
        genres=_join(
            (dig(classification, (level, "name")) for level in ("segment", "genre", "subGenre", "type", "subType")),
            " | ",
        ),
        venue_name=str(venue.get("name") or NOT_AVAILABLE),
        venue_address=_join(
            (dig(venue, ("address", "line1")), dig(venue, ("city", "name")), dig(venue, ("state", "stateCode"))),
            ", ",
        ),
        venue_url=str(venue.get("url") or ""),
        venue_map_url=f"https://www.google.com/maps?q={lat},{lng}" if lat and lng else "",
        price_range=_price_range(record.get("priceRanges")),
        ticket_status=_TICKET_STATUS.get(str(dig(record, ("dates", "status", "code")) or ""), NOT_AVAILABLE),
        buy_url=str(record.get("url") or ""),
        seatmap_url=str(dig(record, ("seatmap", "staticUrl")) or ""),
        image_url=_field(record, ("images", 0, "url"), "") or "",
        is_music=str(segment or "").lower() == "music",
    )


def facebook_share_url(detail: EventDetail) -> str:
    return "https://www.facebook.com/sharer/sharer.php?" + urllib.parse.urlencode({"u": detail.buy_url})


def twitter_share_url(detail: EventDetail) -> str:
    text = f"Check {detail.name} on Ticketmaster"
    return "https://twitter.com/intent/tweet?" + urllib.parse.urlencode({"text": text, "url": detail.buy_url})
