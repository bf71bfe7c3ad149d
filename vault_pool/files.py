"""REST client for file records (the files_metadata table)."""
import logging
from typing import List, Optional

from .models import FileRecord, utcnow
from .registry import RegistryClient

logger = logging.getLogger(__name__)


class FileRecordStore(RegistryClient):
    """Stores the metadata of uploaded objects."""

    TABLE = "files_metadata"

    async def insert(self, record: FileRecord, extra: Optional[dict] = None) -> FileRecord:
        """Insert a record; extra holds additional columns for the row."""
        row = {**record.to_row(), **(extra or {})}
        rows = await self._request("POST", self.TABLE, json=row, representation=True)
        return FileRecord.from_row(rows[0]) if rows else record

    async def get_file(self, file_id: str, user_id: str) -> Optional[FileRecord]:
        """A visible (not soft-deleted) record of the user, or None."""
        rows = await self._request(
            "GET",
            self.TABLE,
            params={
                "select": "*",
                "id": f"eq.{file_id}",
                "user_id": f"eq.{user_id}",
                "is_deleted": "eq.false",
            },
        )
        if not rows:
            return None
        return FileRecord.from_row(rows[0])

    async def list_files(
        self,
        user_id: str,
        file_type: Optional[str] = None,
        favorite: bool = False,
        search: Optional[str] = None,
        sort_by: str = "uploaded_at",
        ascending: bool = False,
    ) -> List[FileRecord]:
        """
        List the visible files of a user.

        Args:
            user_id: Owner
            file_type: photo, video, document or other; None or "all" for every type
            favorite: Only favorites
            search: Case-insensitive match on stored or original name
            sort_by: Column to order by
            ascending: Sort direction
        """
        params = {
            "select": "*",
            "user_id": f"eq.{user_id}",
            "is_deleted": "eq.false",
            "order": f"{sort_by}.{'asc' if ascending else 'desc'}",
        }
        if file_type and file_type != "all":
            params["file_type"] = f"eq.{file_type}"
        if favorite:
            params["is_favorite"] = "eq.true"
        if search:
            params["or"] = f"(file_name.ilike.*{search}*,original_name.ilike.*{search}*)"
        rows = await self._request("GET", self.TABLE, params=params)
        return [FileRecord.from_row(row) for row in rows or []]

    async def soft_delete(self, file_id: str) -> None:
        """Hide a record from listings; the row is kept."""
        await self._request(
            "PATCH",
            self.TABLE,
            params={"id": f"eq.{file_id}"},
            json={"is_deleted": True, "deleted_at": utcnow().isoformat()},
        )
        logger.debug(f"Soft-deleted file record {file_id}")

    async def increment_download_count(self, record: FileRecord) -> None:
        await self._request(
            "PATCH",
            self.TABLE,
            params={"id": f"eq.{record.id}"},
            json={"download_count": record.download_count + 1},
        )

    async def set_favorite(self, file_id: str, is_favorite: bool) -> Optional[FileRecord]:
        rows = await self._request(
            "PATCH",
            self.TABLE,
            params={"id": f"eq.{file_id}"},
            json={"is_favorite": is_favorite, "updated_at": utcnow().isoformat()},
            representation=True,
        )
        if not rows:
            return None
        return FileRecord.from_row(rows[0])

    async def file_stats(self, user_id: str) -> dict:
        """Count and size of the visible files, in total and per type."""
        rows = await self._request(
            "GET",
            self.TABLE,
            params={"select": "file_type,file_size", "user_id": f"eq.{user_id}", "is_deleted": "eq.false"},
        ) or []
        stats = {"total_files": len(rows), "total_size": 0, "by_type": {}}
        for row in rows:
            size = row.get("file_size") or 0
            stats["total_size"] += size
            by_type = stats["by_type"].setdefault(row["file_type"], {"count": 0, "size": 0})
            by_type["count"] += 1
            by_type["size"] += size
        return stats

    async def account_usage(self, account_id: str) -> int:
        """Bytes held by the visible files stored in one account."""
        rows = await self._request(
            "GET",
            self.TABLE,
            params={"select": "file_size", "api_key_id": f"eq.{account_id}", "is_deleted": "eq.false"},
        ) or []
        return sum(row.get("file_size") or 0 for row in rows)
