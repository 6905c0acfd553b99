from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict

from spotify_client import SpotifyAuthError, spotify_client_credentials

"""
Process-wide Spotify bearer token.

One instance is created at startup and handed to the routes that need it.
The token is replaced as a whole on expiry, never edited in place. Refreshes are
single-flight: callers that arrive while a refresh is running wait for it and
reuse its result instead of issuing a second exchange.
"""

logger = logging.getLogger(__name__)


class SpotifyToken(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: str
    expires_at_epoch_ms: int

    def is_fresh(self, now_ms: int) -> bool:
        return now_ms < self.expires_at_epoch_ms


class SpotifyTokenCache:
    def __init__(
        self,
        fetch_token: Callable[[], dict[str, Any]] = spotify_client_credentials,
        clock: Callable[[], float] = time.time,
    ):
        self._fetch_token = fetch_token
        self._clock = clock
        self._lock = threading.Lock()
        self._token: Optional[SpotifyToken] = None

    @property
    def token(self) -> Optional[SpotifyToken]:
        return self._token

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def get_token(self) -> str:
        """
        Return a valid access token, exchanging credentials only when the cached one is missing or expired.
        Raises SpotifyAuthError on failure; the cached state is left untouched in that case.
        """
        current = self._token
        if current is not None and current.is_fresh(self._now_ms()):
            return current.value

        with self._lock:
            current = self._token
            if current is not None and current.is_fresh(self._now_ms()):
                return current.value

            payload = self._fetch_token()
            try:
                value = str(payload["access_token"])
                lifetime_s = int(payload.get("expires_in", 3600))
            except (KeyError, TypeError, ValueError) as e:
                raise SpotifyAuthError(f"Spotify token payload is malformed: {e}") from e
            if not value:
                raise SpotifyAuthError("Spotify returned an empty access token.")

            self._token = SpotifyToken(value=value, expires_at_epoch_ms=self._now_ms() + lifetime_s * 1000)
            logger.info("Refreshed Spotify token, valid for %ss", lifetime_s)
            return self._token.value
