"""Poster lookup via the TMDB search API.

Cosmetic only. A failed lookup returns None and never affects ratings.
Uses urllib only. Reference: https://developer.themoviedb.org/reference/search-movie
Env var: TMDB_READ_TOKEN (v4 read access token).

Requests are spaced at least ``min_interval`` seconds apart to stay under
the API rate limit; a 429 response is logged and treated as "no image".
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

TMDB_SEARCH_URL = "https://api.themoviedb.org/3/search/movie"
TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p/w500"


def _build_url(title: str, year: str = "") -> str:
    """Build the search URL; the year filter is only sent for 4-digit years."""
    params = {
        "query": title,
        "include_adult": "false",
        "language": "en-US",
        "page": "1",
    }
    if len(year) == 4 and year.isdigit():
        params["year"] = year
    return f"{TMDB_SEARCH_URL}?{urllib.parse.urlencode(params)}"


def _parse_poster(data: dict[str, Any], image_base: str = TMDB_IMAGE_BASE_URL) -> str | None:
    """Return the first result's poster URL, skipping results without one."""
    for result in data.get("results") or []:
        path = result.get("poster_path")
        if path:
            return f"{image_base}{path}"
    return None


@dataclass
class TMDBClient:
    """Image lookup backed by TMDB movie search.

    Satisfies :class:`reelrank.services.ImageLookup`.

    Args:
        read_token: TMDB v4 read access token.
        min_interval: Minimum seconds between consecutive requests.
        timeout: Request timeout in seconds.
    """

    read_token: str
    min_interval: float = 0.3
    timeout: int = 10
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _last_request: float = field(default=0.0, init=False, repr=False)

    @classmethod
    def from_env(cls) -> TMDBClient:
        """Create client from TMDB_READ_TOKEN.

        Raises:
            ValueError: If TMDB_READ_TOKEN is not set.
        """
        token = os.environ.get("TMDB_READ_TOKEN", "")
        if not token:
            raise ValueError("TMDB_READ_TOKEN not set in environment")
        return cls(read_token=token)

    @classmethod
    def from_env_optional(cls) -> TMDBClient | None:
        """Create client from the environment, or None when unconfigured."""
        token = os.environ.get("TMDB_READ_TOKEN", "")
        if not token:
            logger.warning("TMDB_READ_TOKEN missing; poster lookup disabled")
            return None
        return cls(read_token=token)

    def _throttle(self) -> None:
        with self._lock:
            wait = self._last_request + self.min_interval - time.monotonic()
            if wait > 0:
                time.sleep(wait)
            self._last_request = time.monotonic()

    def search_poster(self, title: str, year: str = "") -> str | None:
        """Search for a movie and return its poster URL.

        Returns:
            Poster URL, or None when nothing matched or the request failed.
        """
        if not title:
            return None
        url = _build_url(title, year)
        req = urllib.request.Request(
            url,
            headers={
                "Authorization": f"Bearer {self.read_token}",
                "Accept": "application/json",
            },
        )
        self._throttle()
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                data = json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            if exc.code == 429:
                logger.warning("TMDB rate limit hit for %r, skipping", title)
            else:
                logger.debug("TMDB lookup failed for %r: HTTP %s", title, exc.code)
            return None
        except (urllib.error.URLError, json.JSONDecodeError, TimeoutError) as exc:
            logger.debug("TMDB lookup failed for %r: %s", title, exc)
            return None

        return _parse_poster(data)

    def lookup(self, participant_id: str, name: str, year: str) -> str | None:
        """ImageLookup entry point; the id is not needed for a title search."""
        return self.search_poster(name, year)
