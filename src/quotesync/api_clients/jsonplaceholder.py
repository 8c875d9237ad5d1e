"""JSONPlaceholder remote client implementation."""

import json
from typing import Any, Dict, List, Optional

import aiohttp

from .base import BaseRemoteClient, RateLimitError, APIConnectionError, RemoteFormatError
from ..store.models import Record, RecordOrigin


class JSONPlaceholderClient(BaseRemoteClient):
    """Quote client for a JSONPlaceholder-style ``/posts`` resource.

    Posts are mapped to quotes by taking ``title`` as the quote text and
    ``Server-<userId>`` as the category.
    """

    def __init__(
        self,
        base_url: str = "https://jsonplaceholder.typicode.com",
        timeout_seconds: float = 10.0,
        fetch_limit: int = 10,
        default_user_id: int = 1,
        session: Optional[aiohttp.ClientSession] = None,
        **kwargs
    ):
        """Initialize JSONPlaceholder client.

        Args:
            base_url: Root URL of the server
            timeout_seconds: Total timeout for a single request
            fetch_limit: Number of posts requested per fetch
            default_user_id: ``userId`` sent with created posts
            session: Optional externally managed aiohttp session
            **kwargs: Additional configuration parameters
        """
        super().__init__(base_url, timeout_seconds, **kwargs)
        self.fetch_limit = fetch_limit
        self.default_user_id = default_user_id
        self.session = session
        self._owns_session = session is None

        self.posts_url = f"{self.base_url}/posts"

        self.logger.info(
            "JSONPlaceholder client initialized",
            base_url=self.base_url,
            fetch_limit=self.fetch_limit
        )

    async def close(self) -> None:
        if self.session and self._owns_session and not self.session.closed:
            await self.session.close()
        self.session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds)
            )
            self._owns_session = True
        return self.session

    async def _fetch_records(self) -> List[Record]:
        posts = await self._make_request("GET", self.posts_url, params={"_limit": str(self.fetch_limit)})

        if not isinstance(posts, list):
            raise RemoteFormatError(f"Expected a list of posts, got {type(posts).__name__}")

        records = []
        for post in posts:
            record = self._post_to_record(post)
            if record is None:
                self.logger.debug("Skipping unusable post", post=str(post)[:200])
                continue
            records.append(record)

        return records

    async def _create_record(self, record: Record) -> None:
        new_post = await self._make_request("POST", self.posts_url, payload=self._record_to_post(record))
        self.logger.info("Server accepted quote", response=new_post)

    def _post_to_record(self, post: Any) -> Optional[Record]:
        """Convert a post object into a remote record, or None if unusable."""
        if not isinstance(post, dict):
            return None

        title = post.get("title")
        if not isinstance(title, str) or not title.strip():
            return None

        return Record(
            text=title,
            category=f"Server-{post.get('userId', 'unknown')}",
            origin=RecordOrigin.REMOTE
        )

    def _record_to_post(self, record: Record) -> Dict[str, Any]:
        return {
            "title": record.text,
            "body": f"Category: {record.category}",
            "userId": self.default_user_id
        }

    async def _make_request(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, str]] = None,
        payload: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Perform one HTTP request and decode the JSON body."""
        session = self._get_session()

        try:
            async with session.request(
                method,
                url,
                params=params,
                json=payload,
                headers={"Content-Type": "application/json; charset=UTF-8"}
            ) as response:
                if response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise RateLimitError(
                        "Rate limit exceeded",
                        int(retry_after) if retry_after and retry_after.isdigit() else None
                    )
                elif response.status >= 400:
                    error_text = await response.text()
                    raise APIConnectionError(f"HTTP error! status: {response.status} - {error_text[:200]}")

                try:
                    return await response.json(content_type=None)
                except (json.JSONDecodeError, ValueError) as e:
                    raise RemoteFormatError(f"Invalid JSON response: {e}")

        except aiohttp.ClientError as e:
            raise APIConnectionError(f"Network error: {e}")
