"""Upload routing across the live accounts of a pool."""
import logging
import secrets
import time
from typing import Optional

from .exceptions import BackendError, MetadataWriteError, NoSpaceError, RegistryError, VaultPoolError
from .files import FileRecordStore
from .models import FileRecord, OperationResult, UploadFile, UploadResult, file_type_for
from .pool import AccountPool

logger = logging.getLogger(__name__)


class UploadRouter:
    """
    Sends each upload to the best live account of a pool.

    An account whose write fails is evicted from the pool for the rest of
    the session and the upload moves on to the remaining accounts. The
    object write and the record insert are not transactional: if the insert
    fails the stored object stays in place and the error is reported.
    """

    def __init__(self, pool: AccountPool, files: Optional[FileRecordStore] = None):
        """
        Args:
            pool: Live accounts of the uploading user
            files: File record store (default built from environment)
        """
        self.pool = pool
        self._owns_files = files is None
        self.files = files or FileRecordStore()

    def storage_path(self, filename: str) -> str:
        """Collision-free object path: <user>/<millis>_<token>_<filename>."""
        prefix = f"{int(time.time() * 1000)}_{secrets.token_hex(4)}"
        return f"{self.pool.user_id}/{prefix}_{filename}"

    async def upload(self, file: UploadFile, metadata: Optional[dict] = None) -> OperationResult:
        """
        Upload a file to the best account.

        Args:
            file: File to upload
            metadata: Extra columns for the file record

        Returns:
            OperationResult with an UploadResult, or the failure message
        """
        try:
            result = await self._upload(file, metadata)
        except VaultPoolError as e:
            logger.error(f"Upload of {file.name} failed: {e}")
            return OperationResult.fail(e)
        return OperationResult.ok(result)

    async def _upload(self, file: UploadFile, metadata: Optional[dict]) -> UploadResult:
        last_error: Optional[BackendError] = None

        # Each failed write evicts one account, so this ends when the pool runs out
        while True:
            handle = self.pool.select(file.size)
            if handle is None:
                if last_error is not None:
                    raise last_error
                best_available = max(
                    (a.storage_free for a in self.pool.live_accounts if a.is_connected and a.is_active),
                    default=0,
                )
                raise NoSpaceError(file.size, best_available)

            storage_path = self.storage_path(file.name)
            try:
                await handle.backend.upload(storage_path, file.content, file.mime_type)
                break
            except BackendError as e:
                if len(self.pool) <= 1:
                    raise
                logger.warning(
                    f"Upload to {handle.account.name} failed: {e}; retrying on {len(self.pool) - 1} other account(s)"
                )
                last_error = e
                await self.pool.remove(handle.id)

        account = handle.account
        public_url = handle.backend.public_url(storage_path)
        logger.info(f"Stored {file.name} ({file.size} bytes) in {account.name} at {storage_path}")

        record = FileRecord(
            id=None,
            user_id=self.pool.user_id,
            account_id=account.id,
            file_path=storage_path,
            file_name=storage_path.rsplit("/", 1)[-1],
            original_name=file.name,
            file_type=file_type_for(file.mime_type),
            file_size=file.size,
            mime_type=file.mime_type,
            storage_url=public_url,
        )
        try:
            record = await self.files.insert(record, metadata)
        except RegistryError as e:
            raise MetadataWriteError(account.id, storage_path, e) from e

        refreshed = await self.pool.refresh(account.id)
        if not refreshed.success:
            logger.warning(f"Could not reload usage of {account.name}: {refreshed.error}")

        return UploadResult(
            account_id=account.id,
            storage_path=storage_path,
            public_url=public_url,
            record=record,
        )

    async def close(self) -> None:
        if self._owns_files:
            await self.files.close()
