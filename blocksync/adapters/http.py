"""Tree adapter for block stores exposed over a JSON REST API.

Endpoints:
    GET    /blocks/{uid}/children   -> {"children": [node, ...]}
    POST   /blocks/{uid}/children   {"order": ..., "block": {...}} -> {"uid": ...}
    PATCH  /blocks/{uid}            {"text": ...}
    DELETE /blocks/{uid}
"""

import asyncio
import logging
from typing import Any

import httpx

from ..models import BlockPayload, TreeNode
from .base import Order, TreeAdapter

logger = logging.getLogger(__name__)


class HTTPTreeAdapter(TreeAdapter):
    """Async HTTP client implementing ``TreeAdapter``.

    Reads and idempotent writes (GET, PATCH, DELETE) are retried with
    exponential backoff on connection errors, timeouts and 5xx responses.
    Creates are sent once, since a retried POST could duplicate a block.
    Any other failure is raised to the caller unchanged.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the adapter.

        Args:
            base_url: Base URL of the block store API.
            token: Optional bearer token.
            timeout: Request timeout in seconds.
            max_retries: Attempts for retryable requests.
            backoff_seconds: Initial backoff, doubled after each failure.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff_seconds = backoff_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HTTPTreeAdapter":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        json_data: Any = None,
        retry: bool = True,
    ) -> httpx.Response:
        attempts = self.max_retries if retry else 1
        backoff = self.backoff_seconds

        for attempt in range(attempts):
            try:
                response = await self.client.request(method, path, json=json_data)
                if response.status_code >= 500 and attempt < attempts - 1:
                    logger.warning(
                        f"Server error {response.status_code} on {method} {path}, "
                        f"attempt {attempt + 1}/{attempts}"
                    )
                else:
                    response.raise_for_status()
                    return response
            except (httpx.ConnectError, httpx.TimeoutException) as e:
                if attempt == attempts - 1:
                    raise
                logger.warning(
                    f"{type(e).__name__} on {method} {path}, "
                    f"attempt {attempt + 1}/{attempts}"
                )

            await asyncio.sleep(backoff)
            backoff *= 2

        # The last attempt either returned or raised above.
        raise RuntimeError("unreachable")

    async def get_children(self, parent_uid: str) -> list[TreeNode]:
        response = await self._request("GET", f"/blocks/{parent_uid}/children")
        data = response.json()
        return [TreeNode.from_dict(node) for node in data.get("children", [])]

    async def create_block(
        self,
        parent_uid: str,
        block: BlockPayload,
        order: Order = "last",
    ) -> str:
        response = await self._request(
            "POST",
            f"/blocks/{parent_uid}/children",
            {"order": order, "block": block.to_dict()},
            retry=False,
        )
        uid = response.json()["uid"]
        logger.debug(f"Created block {uid} under {parent_uid}")
        return uid

    async def update_block(self, uid: str, text: str) -> None:
        await self._request("PATCH", f"/blocks/{uid}", {"text": text})

    async def delete_block(self, uid: str) -> None:
        await self._request("DELETE", f"/blocks/{uid}")

    async def health_check(self, parent_uid: str | None = None) -> bool:
        """Check that the backend answers.

        Args:
            parent_uid: Optional block to read; defaults to ``/health``.

        Returns:
            True if the backend responded successfully.
        """
        path = f"/blocks/{parent_uid}/children" if parent_uid else "/health"
        try:
            response = await self.client.get(path)
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.debug(f"Health check failed: {e}")
            return False
