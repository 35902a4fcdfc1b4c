"""
CurseForge API Client — paginated catalog search for Addon Atlas.

Fetches the full upstream population matching a search filter for one game
(domain identifier), page by page. Each page is awaited before the next is
requested.

Termination: cumulative fetched count reaches the totalCount reported by the
first page, an empty page is returned, or the configured max_results cap is
reached.

Unlike the interactive loader, this client does not swallow errors: any HTTP
or network failure raises CatalogFetchError so that the batch run aborts
before a snapshot is written. No retry or backoff is applied here.

Rate limit: config.request_interval_seconds between calls (self-imposed).
Authentication: x-api-key header (CURSEFORGE_TOKEN).
Uses only Python stdlib (urllib.request).
"""
import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Callable, Optional

from addon_atlas.config import DEFAULT_CONFIG, AddonAtlasConfig

logger = logging.getLogger(__name__)

CURSEFORGE_USER_AGENT = "addon-atlas/0.1 (catalog popularity snapshots)"


class CatalogFetchError(Exception):
    """Raised when a catalog page cannot be retrieved or decoded."""


@dataclass
class CatalogPage:
    """One page of search results."""

    index: int
    entries: list[dict] = field(default_factory=list)
    total_count: int = 0


class CurseForgeClient:
    """Rate-limited client for the CurseForge mod search endpoint.

    Args:
        api_key: CurseForge API key. Requests are still attempted without one,
                 but the upstream API will reject them with 403.
        config:  AddonAtlasConfig. Uses api_url, game_id, search_filter,
                 page_size, max_results, request_interval_seconds and
                 request_timeout_seconds.
        opener:  Callable taking a urllib Request and returning a response
                 context manager. Defaults to urllib.request.urlopen; tests
                 inject a stub.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: AddonAtlasConfig = DEFAULT_CONFIG,
        opener: Optional[Callable] = None,
    ) -> None:
        self._api_key = api_key
        self._config = config
        self._opener = opener or urllib.request.urlopen
        self._min_interval = config.request_interval_seconds
        self._last_call: float = 0.0

    def _throttle(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_call
        if elapsed < self._min_interval:
            time.sleep(self._min_interval - elapsed)
        self._last_call = time.monotonic()

    def build_url(self, index: int) -> str:
        """Search URL for the page starting at `index`."""
        params = {
            "gameId": self._config.game_id,
            "searchFilter": self._config.search_filter,
            "index": index,
            "pageSize": self._config.page_size,
        }
        return f"{self._config.api_url}?{urllib.parse.urlencode(params)}"

    def _get(self, url: str) -> dict:
        """Rate-limited GET; raises CatalogFetchError on any failure."""
        self._throttle()
        headers = {"Accept": "application/json", "User-Agent": CURSEFORGE_USER_AGENT}
        if self._api_key:
            headers["x-api-key"] = self._api_key

        req = urllib.request.Request(url, headers=headers)
        try:
            with self._opener(req, timeout=self._config.request_timeout_seconds) as resp:
                body = resp.read()
        except urllib.error.HTTPError as exc:
            raise CatalogFetchError(f"CurseForge HTTP {exc.code} for {url}") from exc
        except urllib.error.URLError as exc:
            raise CatalogFetchError(f"CurseForge network error: {exc.reason}") from exc

        try:
            return json.loads(body)
        except ValueError as exc:
            raise CatalogFetchError(f"CurseForge returned invalid JSON for {url}") from exc

    def search_page(self, index: int) -> CatalogPage:
        """Fetch one page of results starting at `index`."""
        logger.info("Fetching catalog entries from index %d...", index)
        data = self._get(self.build_url(index))
        entries = data.get("data")
        if not isinstance(entries, list):
            raise CatalogFetchError(f"Unexpected search response shape at index {index}")
        pagination = data.get("pagination") or {}
        return CatalogPage(
            index=index,
            entries=entries,
            total_count=int(pagination.get("totalCount") or 0),
        )

    def fetch_all(self) -> list[dict]:
        """
        Fetch the full upstream population, sequentially.

        Returns:
            Raw entries in upstream order (truncated to max_results if set).

        Raises:
            CatalogFetchError: on the first failed page.
        """
        entries: list[dict] = []
        index = 0
        total_count = 0
        cap = self._config.max_results

        while True:
            page = self.search_page(index)
            if index == 0:
                total_count = page.total_count
                if cap is not None:
                    total_count = min(total_count, cap)
            if not page.entries:
                break
            entries.extend(page.entries)
            index += self._config.page_size
            if len(entries) >= total_count:
                break

        if cap is not None:
            entries = entries[:cap]
        logger.info("Fetched %d catalog entries (reported total %d).", len(entries), total_count)
        return entries
