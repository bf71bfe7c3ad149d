"""Delete and download of stored files."""
import logging
from pathlib import Path
from typing import Optional

from .exceptions import AccountNotFoundError, RegistryError, VaultPoolError
from .files import FileRecordStore
from .models import AccountHandle, FileRecord, OperationResult
from .pool import AccountPool

logger = logging.getLogger(__name__)


class FileLifecycle:
    """Operations on files already stored in one of the pool's accounts."""

    def __init__(self, pool: AccountPool, files: Optional[FileRecordStore] = None):
        self.pool = pool
        self._owns_files = files is None
        self.files = files or FileRecordStore()

    def _resolve(self, record: FileRecord) -> AccountHandle:
        handle = self.pool.get(record.account_id)
        if handle is None:
            raise AccountNotFoundError(record.account_id)
        return handle

    async def delete(self, record: FileRecord) -> OperationResult:
        """
        Remove a file's object, then soft-delete its record.

        If the object cannot be removed the record is left untouched so the
        file stays visible.
        """
        try:
            handle = self._resolve(record)
            await handle.backend.remove([record.file_path])
            await self.files.soft_delete(record.id)
        except VaultPoolError as e:
            logger.error(f"Delete of {record.file_path} failed: {e}")
            return OperationResult.fail(e)

        record.is_deleted = True
        logger.info(f"Deleted {record.original_name} from {handle.account.name}")
        refreshed = await self.pool.refresh(handle.id)
        if not refreshed.success:
            logger.warning(f"Could not reload usage of {handle.account.name}: {refreshed.error}")
        return OperationResult.ok()

    async def download(self, record: FileRecord) -> OperationResult:
        """
        Fetch the bytes of a file.

        The download counter is incremented afterwards; a failure to do so
        does not fail the download.

        Returns:
            OperationResult with the file bytes
        """
        try:
            handle = self._resolve(record)
            content = await handle.backend.download(record.file_path)
        except VaultPoolError as e:
            logger.error(f"Download of {record.file_path} failed: {e}")
            return OperationResult.fail(e)

        try:
            await self.files.increment_download_count(record)
            record.download_count += 1
        except RegistryError as e:
            logger.warning(f"Could not count download of {record.id}: {e}")
        return OperationResult.ok(content)

    async def save_to(self, record: FileRecord, dest: Path) -> OperationResult:
        """Download a file into dest (a directory or a file path)."""
        result = await self.download(record)
        if not result.success:
            return result
        dest = Path(dest)
        if dest.is_dir():
            dest = dest / record.original_name
        dest.write_bytes(result.data)
        return OperationResult.ok(dest)

    async def toggle_favorite(self, record: FileRecord) -> OperationResult:
        try:
            updated = await self.files.set_favorite(record.id, not record.is_favorite)
        except RegistryError as e:
            return OperationResult.fail(e)
        record.is_favorite = not record.is_favorite
        return OperationResult.ok(updated or record)

    async def close(self) -> None:
        if self._owns_files:
            await self.files.close()
