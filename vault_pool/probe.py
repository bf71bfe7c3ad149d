"""Connectivity and capability check for a storage account."""
import logging
from typing import Callable, Optional

import httpx

from . import config
from .backend import StorageBackend
from .exceptions import BackendError
from .models import ConnectionParams, ProbeResult

logger = logging.getLogger(__name__)


class ConnectionProbe:
    """
    Checks that a project can be reached and used for storage.

    A project is usable when its buckets can be listed with the given key and
    the working bucket exists, or can be created private with the per-object
    size ceiling. Errors are returned, never raised, with the backend's own
    message. The probe never retries.
    """

    def __init__(
        self,
        bucket: Optional[str] = None,
        max_object_bytes: Optional[int] = None,
        backend_factory: Optional[Callable[[ConnectionParams], StorageBackend]] = None,
    ):
        """
        Args:
            bucket: Working bucket (default from VAULT_BUCKET)
            max_object_bytes: Size ceiling set on a created bucket (default 500 MiB)
            backend_factory: Builds the backend client for a set of parameters
        """
        self.bucket = bucket or config.BUCKET_NAME
        self.max_object_bytes = max_object_bytes or config.MAX_OBJECT_BYTES
        self._backend_factory = backend_factory or self._default_factory

    def _default_factory(self, params: ConnectionParams) -> StorageBackend:
        return StorageBackend(params, bucket=self.bucket)

    async def probe(self, params: ConnectionParams) -> ProbeResult:
        """
        Probe one project.

        Returns:
            ProbeResult; when it passed, result.backend is the open client
            and the caller owns it
        """
        try:
            backend = self._backend_factory(params)
        except httpx.InvalidURL as e:
            return ProbeResult(reachable=False, capable=False, error=f"Invalid project URL: {e}")

        try:
            buckets = await backend.list_buckets()
        except BackendError as e:
            await backend.close()
            logger.info(f"Probe of {params.project_url} failed: {e.message}")
            return ProbeResult(reachable=False, capable=False, error=e.message)

        names = {b.get("name") for b in buckets or []} | {b.get("id") for b in buckets or []}
        if self.bucket not in names:
            try:
                await backend.create_bucket(self.bucket, public=False, max_object_bytes=self.max_object_bytes)
            except BackendError as e:
                await backend.close()
                logger.info(f"Cannot create bucket {self.bucket} on {params.project_url}: {e.message}")
                return ProbeResult(reachable=True, capable=False, error=e.message)

        logger.debug(f"Probe of {params.project_url} passed")
        return ProbeResult(reachable=True, capable=True, backend=backend)
