"""REST client for one account's object storage."""
import logging
from typing import Any, List, Optional
from urllib.parse import quote

import httpx

from . import config
from .exceptions import BackendError
from .models import ConnectionParams
from .rest import build_client, error_message

logger = logging.getLogger(__name__)


class StorageBackend:
    """Client for the storage API of a single project."""

    def __init__(
        self,
        params: ConnectionParams,
        bucket: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize storage client.

        Args:
            params: Project URL and key
            bucket: Bucket used for objects (default from VAULT_BUCKET)
            timeout: Request timeout in seconds
            transport: Custom httpx transport, used by tests
        """
        self.project_url = params.project_url.rstrip("/")
        self.bucket = bucket or config.BUCKET_NAME
        self.client = build_client(
            f"{self.project_url}/storage/v1",
            params.secret_key,
            timeout=timeout,
            transport=transport,
        )

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Storage request {method} {url} failed: {e}")
            raise BackendError(str(e) or type(e).__name__) from e
        if response.is_error:
            message = error_message(response)
            logger.error(f"Storage error {response.status_code} on {method} {url}: {message}")
            raise BackendError(message, response.status_code)
        return response

    @staticmethod
    def _decode(response: httpx.Response, default: Any) -> Any:
        if not response.content:
            return default
        try:
            return response.json()
        except ValueError:
            logger.warning(f"Non-JSON reply ({response.status_code}) from {response.request.url}")
            return default

    def _object_url(self, path: str) -> str:
        return f"/object/{self.bucket}/{quote(path, safe='/')}"

    async def list_buckets(self) -> List[dict]:
        """List buckets visible with this key."""
        response = await self._request("GET", "/bucket")
        buckets = self._decode(response, None)
        if not isinstance(buckets, list):
            raise BackendError("Unexpected bucket listing from storage API", response.status_code)
        return buckets

    async def create_bucket(self, name: str, public: bool = False, max_object_bytes: Optional[int] = None) -> None:
        """
        Create a bucket.

        Args:
            name: Bucket id and name
            public: Whether objects are readable without a key
            max_object_bytes: Per-object size ceiling enforced by the backend
        """
        payload = {"id": name, "name": name, "public": public}
        if max_object_bytes:
            payload["file_size_limit"] = max_object_bytes
        await self._request("POST", "/bucket", json=payload)
        logger.info(f"Created bucket {name} on {self.project_url}")

    async def upload(self, path: str, content: bytes, content_type: str) -> dict:
        """Write an object; fails if the path already exists."""
        response = await self._request(
            "POST",
            self._object_url(path),
            content=content,
            headers={
                "Content-Type": content_type,
                "cache-control": "max-age=3600",
                "x-upsert": "false",
            },
        )
        return self._decode(response, {})

    def public_url(self, path: str) -> str:
        """URL of an object; no request is made."""
        return f"{self.project_url}/storage/v1/object/public/{self.bucket}/{quote(path, safe='/')}"

    async def download(self, path: str) -> bytes:
        """Fetch the raw bytes of an object."""
        response = await self._request("GET", self._object_url(path))
        return response.content

    async def remove(self, paths: List[str]) -> List[dict]:
        """Delete objects by path."""
        response = await self._request("DELETE", f"/object/{self.bucket}", json={"prefixes": paths})
        return self._decode(response, [])

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()
