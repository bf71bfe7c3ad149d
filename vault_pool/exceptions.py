"""
Exceptions for vault-pool.
"""
from typing import Optional


class VaultPoolError(Exception):
    """Base exception for vault-pool errors."""
    pass


class NoSpaceError(VaultPoolError):
    """No live account has enough free space for the file."""

    def __init__(self, file_size: int, available_space: int = 0):
        self.file_size = file_size
        self.available_space = available_space
        super().__init__(
            "No available storage. All accounts are full, inactive or disconnected. "
            f"Need {file_size / (1024**2):.2f} MB, "
            f"best available: {available_space / (1024**2):.2f} MB. "
            "Add a storage account or free some space."
        )


class BackendError(VaultPoolError):
    """The storage backend of an account failed or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class RegistryError(VaultPoolError):
    """The metadata registry rejected or failed a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class MetadataWriteError(VaultPoolError):
    """Object was stored but its file record could not be written."""

    def __init__(self, account_id: str, storage_path: str, original_error: Exception):
        self.account_id = account_id
        self.storage_path = storage_path
        self.original_error = original_error
        super().__init__(
            f"File stored at {storage_path} but its record could not be saved: {original_error}"
        )


class AccountNotFoundError(VaultPoolError):
    """Operation references an account that is not live in the pool."""

    def __init__(self, account_id: str, message: str = "Account not found for this file"):
        self.account_id = account_id
        super().__init__(message)
