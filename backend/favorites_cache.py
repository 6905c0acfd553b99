from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Callable, Mapping, Protocol

from favorites_store import FavoriteEvent

"""
Client-side favorites set, kept in step with the backend and broadcast to every subscriber.

Subscribers always get the whole current set (a read-only mapping keyed by eventId), never a
diff. Each change publishes a freshly built mapping, so a subscriber holding an older one never
sees it change underneath it.

`load()` rebuilds the set from the backend. `add`/`remove` patch it locally after the backend
call succeeds, so it can drift if another client changes favorites; the next `load()` fixes it.
`toggle` checks membership and then adds or removes in two separate steps. Two toggles racing
on the same event can lose one of the updates; only one user with one session is expected.
"""

logger = logging.getLogger(__name__)

FavoritesView = Mapping[str, FavoriteEvent]
Subscriber = Callable[[FavoritesView], None]


class FavoritesBackend(Protocol):
    def list_favorites(self) -> list[FavoriteEvent]: ...

    def add_favorite(self, event: FavoriteEvent) -> dict[str, Any]: ...

    def remove_favorite(self, event_id: str) -> dict[str, Any]: ...


class FavoritesCache:
    def __init__(self, backend: FavoritesBackend):
        self._backend = backend
        self._favorites: FavoritesView = MappingProxyType({})
        self._subscribers: list[Subscriber] = []

    @property
    def current(self) -> FavoritesView:
        return self._favorites

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register `callback`; it is called right away with the current set and again on every change.
        Returns a function that unregisters it.
        """
        self._subscribers.append(callback)
        callback(self._favorites)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self, favorites: dict[str, FavoriteEvent]) -> None:
        self._favorites = MappingProxyType(dict(favorites))
        for callback in list(self._subscribers):
            callback(self._favorites)

    def load(self) -> FavoritesView:
        favorites = self._backend.list_favorites()
        self._publish({f.event_id: f for f in favorites})
        logger.info("Loaded %d favorites", len(self._favorites))
        return self._favorites

    def is_favorite(self, event_id: str) -> bool:
        return event_id in self._favorites

    def add(self, event: FavoriteEvent) -> FavoriteEvent:
        response = self._backend.add_favorite(event)
        data = (response or {}).get("data")
        record = FavoriteEvent.model_validate(data) if isinstance(data, dict) and data.get("eventId") else event
        self._publish({**self._favorites, record.event_id: record})
        return record

    def remove(self, event_id: str) -> None:
        self._backend.remove_favorite(event_id)
        remaining = {k: v for k, v in self._favorites.items() if k != event_id}
        self._publish(remaining)

    def toggle(self, event: FavoriteEvent) -> bool:
        """Flip membership of `event`; returns True if it is now a favorite."""
        if self.is_favorite(event.event_id):
            self.remove(event.event_id)
            return False
        self.add(event)
        return True
