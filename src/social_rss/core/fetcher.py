"""
List source adapters.

The upstream network is an opaque capability: something that can log in,
list the items of a curated list and fetch one item in full. ``HttpListSource``
speaks JSON to a list gateway over HTTP with retry logic.
"""

import time
from abc import ABC, abstractmethod
from typing import Any, Optional
from urllib.parse import quote

import httpx

from social_rss.config import SourceConfig
from social_rss.exceptions import FetchFailure
from social_rss.logger import get_logger
from social_rss.models import RawItem

logger = get_logger(__name__)


class ListSource(ABC):
    """Capability to read items from upstream lists."""

    @abstractmethod
    def login(self, username: str, password: str, email: str) -> bool:
        """Authenticate with the upstream network.

        Returns:
            True if the session is authenticated afterwards
        """

    @abstractmethod
    def is_logged_in(self) -> bool:
        """Whether the current session is authenticated."""

    @abstractmethod
    def fetch_list_items(self, list_id: str, max_items: int) -> list[RawItem]:
        """Fetch up to ``max_items`` recent items of a list.

        Raises:
            FetchFailure: If the list could not be fetched
        """

    @abstractmethod
    def fetch_item_detail(self, item_id: str) -> RawItem:
        """Fetch a single item including its thread.

        Raises:
            FetchFailure: If the item could not be fetched
        """

    def close(self) -> None:
        """Release any held resources."""


class HttpListSource(ListSource):
    """List source backed by a JSON-over-HTTP list gateway.

    Endpoints (relative to ``base_url``):
        POST /auth/login               {"username", "password", "email"}
        GET  /auth/status              {"loggedIn": bool}
        GET  /lists/<id>/items?count=N [item, ...] or {"items": [...]}
        GET  /items/<id>               item
    """

    def __init__(
        self,
        config: SourceConfig,
        client: Optional[httpx.Client] = None,
    ):
        """Initialize the HTTP list source.

        Args:
            config: Source section of the configuration
            client: Optional preconfigured httpx client
        """
        self.config = config
        self.max_retries = config.max_retries
        self.retry_delay_seconds = config.retry_delay_seconds
        self._logged_in = False

        if config.proxy_url:
            logger.info(f"Using proxy for source connection: {config.proxy_url}")

        self._client = client or httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            proxy=config.proxy_url,
            headers={"User-Agent": config.user_agent},
            follow_redirects=True,
        )

    def login(self, username: str, password: str, email: str) -> bool:
        try:
            response = self._client.post(
                "/auth/login",
                json={"username": username, "password": password, "email": email},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Source login failed: {e}")
            self._logged_in = False
            return False

        self._logged_in = self._query_logged_in()
        return self._logged_in

    def is_logged_in(self) -> bool:
        return self._logged_in

    def _query_logged_in(self) -> bool:
        try:
            response = self._client.get("/auth/status")
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Could not confirm source session: {e}")
            return False
        return bool(isinstance(payload, dict) and payload.get("loggedIn"))

    def fetch_list_items(self, list_id: str, max_items: int) -> list[RawItem]:
        path = f"/lists/{quote(list_id, safe='')}/items"
        payload = self._get_json(path, params={"count": max_items}, list_id=list_id)

        if isinstance(payload, dict):
            payload = payload.get("items", payload.get("tweets", []))
        if not isinstance(payload, list):
            raise FetchFailure(f"Unexpected payload for list {list_id}", list_id=list_id)

        items = [RawItem.from_payload(entry) for entry in payload[:max_items]]
        logger.debug(f"Fetched {len(items)} raw items from list {list_id}")
        return items

    def fetch_item_detail(self, item_id: str) -> RawItem:
        payload = self._get_json(f"/items/{quote(item_id, safe='')}")
        if not isinstance(payload, dict):
            raise FetchFailure(f"Unexpected payload for item {item_id}")
        return RawItem.from_payload(payload)

    def _get_json(self, path: str, params: Optional[dict] = None, list_id: Optional[str] = None) -> Any:
        """GET a JSON resource with retries.

        Raises:
            FetchFailure: When all attempts fail or a client error occurs
        """
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                response = self._client.get(path, params=params)
                response.raise_for_status()
                return response.json()

            except httpx.TimeoutException as e:
                last_error = f"Timeout: {e}"
                logger.warning(f"Timeout fetching {path} (attempt {attempt + 1}/{self.max_retries + 1})")

            except httpx.HTTPStatusError as e:
                last_error = f"HTTP {e.response.status_code}: {e}"

                # Don't retry client errors (4xx)
                if 400 <= e.response.status_code < 500:
                    logger.error(f"Client error fetching {path}: {last_error}")
                    break

                logger.warning(f"HTTP error fetching {path} (attempt {attempt + 1})")

            except httpx.RequestError as e:
                last_error = f"Request error: {e}"
                logger.warning(f"Network error fetching {path} (attempt {attempt + 1})")

            except ValueError as e:
                last_error = f"Invalid JSON: {e}"
                logger.error(f"Invalid JSON from {path}")
                break

            if attempt < self.max_retries:
                time.sleep(self.retry_delay_seconds * (attempt + 1))

        raise FetchFailure(last_error or "Unknown error", list_id=list_id)

    def close(self) -> None:
        self._client.close()


def create_list_source(config: SourceConfig) -> ListSource:
    """Create the configured list source."""
    return HttpListSource(config)
