from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

"""
Keyword suggestions with debounce and cancel-on-supersede.

Every keystroke (and every `clear()`) bumps a version counter. A lookup remembers
the version it was issued under; when its reply arrives it is applied only if that
version is still the latest. Stale replies are dropped, never merged.
With `debounce=None` nothing is scheduled and lookups only run on `flush()`.
"""

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.3


def attraction_names(payload: dict[str, Any] | None) -> list[str]:
    attractions = ((payload or {}).get("_embedded") or {}).get("attractions") or []
    return [str(a.get("name")) for a in attractions if isinstance(a, dict) and a.get("name")]


class Autocomplete:
    def __init__(
        self,
        fetch: Callable[[str], dict[str, Any]],
        *,
        debounce: Optional[float] = DEBOUNCE_SECONDS,
        timer_factory: Callable[..., Any] = threading.Timer,
        on_update: Optional[Callable[[list[str]], None]] = None,
    ):
        self._fetch = fetch
        self._debounce = debounce
        self._timer_factory = timer_factory
        self._on_update = on_update
        self._lock = threading.Lock()
        self._version = 0
        self._pending = None
        self._pending_keyword: Optional[str] = None
        self._last_keyword: Optional[str] = None
        self.suggestions: list[str] = []
        self.loading = False

    @property
    def version(self) -> int:
        return self._version

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
        self._pending = None
        self._pending_keyword = None

    def on_input(self, keyword: str) -> None:
        """Schedule a lookup for `keyword` after the debounce delay, superseding anything pending."""
        with self._lock:
            if keyword == self._last_keyword and self._pending_keyword is None:
                return
            self._cancel_pending()
            self._version += 1
            version = self._version
            self._last_keyword = keyword
            self._pending_keyword = keyword
            timer = None
            if self._debounce is not None:
                timer = self._timer_factory(self._debounce, self._run, args=(version, keyword))
            self._pending = timer
        if timer is not None:
            timer.start()

    def flush(self) -> list[str]:
        """Run the pending lookup now instead of waiting for the timer."""
        with self._lock:
            keyword = self._pending_keyword
            version = self._version
            if keyword is None:
                return self.suggestions
            self._cancel_pending()
        self._run(version, keyword)
        return self.suggestions

    def clear(self) -> None:
        """Drop suggestions; replies for earlier input are ignored when they arrive."""
        with self._lock:
            self._cancel_pending()
            self._version += 1
            self._last_keyword = None
            self.suggestions = []
            self.loading = False
        self._notify()

    def _is_current(self, version: int) -> bool:
        return version == self._version

    def _run(self, version: int, keyword: str) -> None:
        with self._lock:
            if not self._is_current(version):
                return
            if self._pending_keyword == keyword:
                self._pending = None
                self._pending_keyword = None
            if not keyword:
                self.suggestions = []
                self.loading = False
                applied = True
            else:
                self.loading = True
                applied = False
        if not applied:
            try:
                names = attraction_names(self._fetch(keyword))
            except Exception as e:
                logger.warning("Suggestion lookup for %r failed: %s", keyword, e)
                names = []
            with self._lock:
                if not self._is_current(version):
                    logger.debug("Dropping stale suggestions for %r", keyword)
                    return
                self.suggestions = names
                self.loading = False
        self._notify()

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(list(self.suggestions))
