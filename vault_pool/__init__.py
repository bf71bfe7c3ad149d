"""
vault-pool - Aggregate free storage projects into one pool.

Spreads uploads across several independent storage projects ("accounts"):
- Probes every account and keeps the reachable ones live
- Picks the target of each upload (primary, then speed, then least used)
- Fails over to the next account when a write fails
- Keeps file records pointing at the account that stores each object

Usage:
    >>> from vault_pool import VaultSession, UploadFile
    >>>
    >>> async with VaultSession(user_id) as session:
    ...     result = await session.router.upload(UploadFile.from_path(path))
    ...     print(session.pool.stats())

Configuration:
    VAULT_REGISTRY_URL / VAULT_REGISTRY_KEY point at the project holding the
    api_keys and files_metadata tables. Set VAULT_MASTER_KEY to store
    account keys encrypted.
"""
from .pool import AccountPool, select_account
from .probe import ConnectionProbe
from .router import UploadRouter
from .lifecycle import FileLifecycle
from .session import VaultSession
from .backend import StorageBackend
from .registry import AccountRegistry
from .files import FileRecordStore
from .credentials import CredentialProvider, PlainCredentials, EncryptedCredentials
from .models import (
    Account,
    AccountHandle,
    ConnectionParams,
    FileRecord,
    OperationResult,
    PoolStats,
    ProbeResult,
    UploadFile,
    UploadResult,
)
from .exceptions import (
    VaultPoolError,
    NoSpaceError,
    BackendError,
    RegistryError,
    MetadataWriteError,
    AccountNotFoundError,
)

__version__ = "0.1.0"

__all__ = [
    # Main
    "AccountPool",
    "select_account",
    "ConnectionProbe",
    "UploadRouter",
    "FileLifecycle",
    "VaultSession",
    # Clients
    "StorageBackend",
    "AccountRegistry",
    "FileRecordStore",
    "CredentialProvider",
    "PlainCredentials",
    "EncryptedCredentials",
    # Models
    "Account",
    "AccountHandle",
    "ConnectionParams",
    "FileRecord",
    "OperationResult",
    "PoolStats",
    "ProbeResult",
    "UploadFile",
    "UploadResult",
    # Exceptions
    "VaultPoolError",
    "NoSpaceError",
    "BackendError",
    "RegistryError",
    "MetadataWriteError",
    "AccountNotFoundError",
]
