"""One user's session: pool, upload router and file operations wired together."""
import logging
from typing import Optional

from . import config
from .credentials import CredentialProvider
from .files import FileRecordStore
from .lifecycle import FileLifecycle
from .pool import AccountPool
from .probe import ConnectionProbe
from .registry import AccountRegistry
from .router import UploadRouter

logger = logging.getLogger(__name__)


class VaultSession:
    """
    Owns the pool of one user and the services built on it.

    Usage:
        >>> async with VaultSession(user_id) as session:
        ...     result = await session.router.upload(UploadFile.from_path(path))
        ...     if not result.success:
        ...         print(result.error)
    """

    def __init__(
        self,
        user_id: str,
        registry_url: Optional[str] = None,
        registry_key: Optional[str] = None,
        credentials: Optional[CredentialProvider] = None,
        probe: Optional[ConnectionProbe] = None,
        registry: Optional[AccountRegistry] = None,
        files: Optional[FileRecordStore] = None,
    ):
        """
        Args:
            user_id: Owner of the pool
            registry_url: Project holding the api_keys and files_metadata tables
            registry_key: Key for that project
            credentials: Secret key resolution (default from VAULT_MASTER_KEY)
            probe: Connection probe for the storage accounts
            registry: Ready account registry, instead of one built from the URL
            files: Ready file record store, instead of one built from the URL
        """
        url = registry_url or config.REGISTRY_URL
        key = registry_key if registry_key is not None else config.REGISTRY_KEY
        self.registry = registry or AccountRegistry(url, key)
        self.files = files or FileRecordStore(url, key)
        self.pool = AccountPool(user_id, registry=self.registry, probe=probe, credentials=credentials)
        self.router = UploadRouter(self.pool, self.files)
        self.lifecycle = FileLifecycle(self.pool, self.files)

    async def start(self):
        result = await self.pool.initialize()
        if not result.success:
            logger.error(f"Session start failed: {result.error}")
        return result

    async def close(self) -> None:
        await self.pool.close()
        await self.registry.close()
        await self.files.close()

    async def __aenter__(self) -> "VaultSession":
        await self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
