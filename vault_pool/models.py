"""
Models for vault-pool.
"""
import mimetypes
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from . import config

STATUS_CONNECTED = "connected"
STATUS_ERROR = "error"
STATUS_FULL = "full"
STATUS_DISCONNECTED = "disconnected"

SPEED_FAST = "fast"
SPEED_MEDIUM = "medium"
SPEED_SLOW = "slow"

# Higher is preferred by the selection policy
SPEED_RANK = {SPEED_FAST: 3, SPEED_MEDIUM: 2, SPEED_SLOW: 1}

FILE_TYPE_PHOTO = "photo"
FILE_TYPE_VIDEO = "video"
FILE_TYPE_DOCUMENT = "document"
FILE_TYPE_OTHER = "other"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp as returned by the registry."""
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def file_type_for(mime_type: Optional[str]) -> str:
    """Map a MIME type onto the coarse photo/video/document/other category."""
    if not mime_type:
        return FILE_TYPE_OTHER
    if mime_type.startswith("image/"):
        return FILE_TYPE_PHOTO
    if mime_type.startswith("video/"):
        return FILE_TYPE_VIDEO
    if (
        mime_type.startswith("application/pdf")
        or "document" in mime_type
        or "text" in mime_type
        or "sheet" in mime_type
        or "presentation" in mime_type
    ):
        return FILE_TYPE_DOCUMENT
    return FILE_TYPE_OTHER


@dataclass
class ConnectionParams:
    """Endpoint and secret needed to talk to one storage project."""
    project_url: str
    secret_key: str

    def __repr__(self) -> str:
        return f"ConnectionParams(project_url={self.project_url!r}, secret_key='***')"


@dataclass
class Account:
    """
    A configured storage account, as stored in the registry.

    Attributes:
        id: Registry identifier
        name: Display name
        project_url: Endpoint of the storage project
        secret_key: Key for the project (possibly encrypted at rest)
        status: connected, error, full or disconnected; written only from probe outcomes
        is_primary: Preferred account for uploads
        is_active: User-controlled switch, independent of status
        storage_used: Bytes used
        storage_limit: Quota in bytes
        files_count: Number of stored files
        connection_speed: fast, medium or slow hint
        last_checked: When the account was last probed
        error_message: Backend message of the last failed probe
    """
    id: str
    name: str = ""
    project_url: str = ""
    secret_key: str = field(default="", repr=False)
    description: Optional[str] = None
    user_id: Optional[str] = None
    status: str = STATUS_DISCONNECTED
    is_primary: bool = False
    is_active: bool = True
    storage_used: int = 0
    storage_limit: int = config.DEFAULT_STORAGE_LIMIT
    files_count: int = 0
    connection_speed: str = SPEED_MEDIUM
    last_checked: Optional[datetime] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.name:
            self.name = str(self.id)

    @classmethod
    def from_row(cls, row: dict) -> "Account":
        """Build an account from a registry row, ignoring unknown columns."""
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in row.items() if k in known and v is not None}
        # Legacy column name of the original api_keys table
        if "secret_key" not in data and row.get("anon_key"):
            data["secret_key"] = row["anon_key"]
        for key in ("last_checked", "created_at"):
            if key in data:
                data[key] = parse_timestamp(data[key])
        data["id"] = str(data["id"])
        return cls(**data)

    @property
    def storage_free(self) -> int:
        return max(self.storage_limit - self.storage_used, 0)

    @property
    def usage_ratio(self) -> float:
        """Fraction of the quota in use (1.0 when the limit is unknown)."""
        if self.storage_limit <= 0:
            return 1.0
        return self.storage_used / self.storage_limit

    @property
    def usage_percent(self) -> float:
        return self.usage_ratio * 100

    @property
    def is_connected(self) -> bool:
        return self.status == STATUS_CONNECTED

    def has_space_for(self, file_size: int) -> bool:
        """Check if the remaining quota can hold file_size bytes."""
        return self.storage_limit - self.storage_used >= file_size

    def __str__(self) -> str:
        marks = ("*" if self.is_primary else " ") + ("+" if self.is_active else "-")
        return (
            f"[{marks}] {self.name} ({self.status}, {self.connection_speed}): "
            f"{self.storage_used / (1024**2):.1f} MB / {self.storage_limit / (1024**2):.1f} MB "
            f"({self.usage_percent:.1f}% used, {self.files_count} files)"
        )


@dataclass
class FileRecord:
    """Metadata row describing one uploaded object."""
    id: Optional[str]
    user_id: str
    account_id: str
    file_path: str
    file_name: str
    original_name: str
    file_type: str = FILE_TYPE_OTHER
    file_size: int = 0
    mime_type: str = "application/octet-stream"
    storage_url: Optional[str] = None
    is_favorite: bool = False
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    download_count: int = 0
    uploaded_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "FileRecord":
        return cls(
            id=str(row["id"]) if row.get("id") is not None else None,
            user_id=str(row["user_id"]),
            account_id=str(row["api_key_id"]),
            file_path=row["file_path"],
            file_name=row.get("file_name") or row["file_path"].rsplit("/", 1)[-1],
            original_name=row.get("original_name") or "",
            file_type=row.get("file_type") or FILE_TYPE_OTHER,
            file_size=row.get("file_size") or 0,
            mime_type=row.get("mime_type") or "application/octet-stream",
            storage_url=row.get("storage_url"),
            is_favorite=bool(row.get("is_favorite", False)),
            is_deleted=bool(row.get("is_deleted", False)),
            deleted_at=parse_timestamp(row.get("deleted_at")),
            download_count=row.get("download_count") or 0,
            uploaded_at=parse_timestamp(row.get("uploaded_at")),
        )

    def to_row(self) -> dict:
        """Columns written on insert."""
        return {
            "user_id": self.user_id,
            "api_key_id": self.account_id,
            "file_name": self.file_name,
            "original_name": self.original_name,
            "file_type": self.file_type,
            "file_size": self.file_size,
            "file_path": self.file_path,
            "storage_url": self.storage_url,
            "mime_type": self.mime_type,
        }


@dataclass
class UploadFile:
    """A file to be uploaded."""
    name: str
    content: bytes = field(repr=False)
    mime_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: Path, mime_type: Optional[str] = None) -> "UploadFile":
        path = Path(path)
        if not mime_type:
            mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(name=path.name, content=path.read_bytes(), mime_type=mime_type)


@dataclass
class UploadResult:
    """Where an upload landed."""
    account_id: str
    storage_path: str
    public_url: str
    record: Optional[FileRecord] = None


@dataclass
class ProbeResult:
    """Outcome of a connection probe."""
    reachable: bool
    capable: bool
    error: Optional[str] = None
    backend: Any = field(default=None, repr=False)  # StorageBackend when the probe passed

    @property
    def ok(self) -> bool:
        return self.reachable and self.capable


@dataclass
class AccountHandle:
    """A live account: its snapshot and its authenticated backend client."""
    account: Account
    backend: Any  # StorageBackend

    @property
    def id(self) -> str:
        return self.account.id


@dataclass
class PoolStats:
    """Aggregate usage over the live accounts."""
    total_used: int = 0
    total_limit: int = 0
    total_files: int = 0
    accounts_count: int = 0
    connected_count: int = 0

    @property
    def total_free(self) -> int:
        return max(self.total_limit - self.total_used, 0)

    @property
    def usage_percent(self) -> float:
        if self.total_limit == 0:
            return 0.0
        return (self.total_used / self.total_limit) * 100


@dataclass
class OperationResult:
    """Uniform result returned to callers: branch on success."""
    success: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: Any) -> "OperationResult":
        message = str(error) or "An unexpected error occurred. Please try again."
        return cls(success=False, error=message)

    def __bool__(self) -> bool:
        return self.success
