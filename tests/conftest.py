"""
Shared fixtures: in-memory registry, file store and storage backends.
"""
import dataclasses
from typing import Dict, List, Optional

import pytest

from vault_pool.credentials import PlainCredentials
from vault_pool.exceptions import BackendError, RegistryError
from vault_pool.models import Account, ConnectionParams, FileRecord, utcnow
from vault_pool.pool import AccountPool
from vault_pool.probe import ConnectionProbe

GB = 1024 ** 3
MB = 1024 ** 2


class FakeBackend:
    """Storage backend kept in memory; failures are switched on per instance."""

    def __init__(self, params: ConnectionParams, bucket: str = "instavault-storage"):
        self.project_url = params.project_url
        self.bucket = bucket
        self.buckets: List[dict] = [{"id": bucket, "name": bucket}]
        self.objects: Dict[str, bytes] = {}
        self.created_buckets: List[dict] = []
        self.upload_calls = 0
        self.unreachable: Optional[str] = None
        self.fail_create: Optional[str] = None
        self.fail_upload: Optional[str] = None
        self.fail_remove: Optional[str] = None
        self.fail_download: Optional[str] = None
        self.closed = False

    async def list_buckets(self):
        if self.unreachable:
            raise BackendError(self.unreachable, 401)
        return list(self.buckets)

    async def create_bucket(self, name, public=False, max_object_bytes=None):
        if self.fail_create:
            raise BackendError(self.fail_create, 403)
        self.created_buckets.append({"name": name, "public": public, "max_object_bytes": max_object_bytes})
        self.buckets.append({"id": name, "name": name})

    async def upload(self, path, content, content_type):
        self.upload_calls += 1
        if self.fail_upload:
            raise BackendError(self.fail_upload, 500)
        self.objects[path] = content
        return {"Key": f"{self.bucket}/{path}"}

    def public_url(self, path):
        return f"{self.project_url}/storage/v1/object/public/{self.bucket}/{path}"

    async def download(self, path):
        if self.fail_download:
            raise BackendError(self.fail_download, 500)
        if path not in self.objects:
            raise BackendError("Object not found", 404)
        return self.objects[path]

    async def remove(self, paths):
        if self.fail_remove:
            raise BackendError(self.fail_remove, 500)
        for path in paths:
            self.objects.pop(path, None)
        return [{"name": p} for p in paths]

    async def close(self):
        self.closed = True


class BackendFarm:
    """Hands out one FakeBackend per project URL, configured before probing."""

    def __init__(self):
        self.backends: Dict[str, FakeBackend] = {}

    def __getitem__(self, project_url: str) -> FakeBackend:
        if project_url not in self.backends:
            self.backends[project_url] = FakeBackend(ConnectionParams(project_url, "key"))
        return self.backends[project_url]

    def factory(self, params: ConnectionParams) -> FakeBackend:
        backend = self[params.project_url]
        backend.closed = False
        return backend


class FakeRegistry:
    """Account registry kept in memory. Returns copies, like a remote store."""

    def __init__(self, accounts: Optional[List[Account]] = None):
        self.rows: Dict[str, Account] = {a.id: dataclasses.replace(a) for a in accounts or []}
        self.status_updates: List[tuple] = []
        self.fail_reads = False
        self.fail_updates = False
        self.fail_status = False
        self._next_id = 100

    async def list_accounts(self, user_id):
        if self.fail_reads:
            raise RegistryError("registry unavailable", 503)
        return [dataclasses.replace(a) for a in self.rows.values() if a.user_id in (None, user_id)]

    async def get_account(self, account_id):
        if self.fail_reads:
            raise RegistryError("registry unavailable", 503)
        row = self.rows.get(account_id)
        return dataclasses.replace(row) if row else None

    async def insert_account(self, user_id, fields):
        if fields.get("is_primary"):
            for row in self.rows.values():
                row.is_primary = False
        self._next_id += 1
        account = Account.from_row({"id": str(self._next_id), "user_id": user_id, **fields})
        self.rows[account.id] = account
        return dataclasses.replace(account)

    async def update_account(self, account_id, updates):
        if self.fail_updates:
            raise RegistryError("permission denied for table api_keys", 403)
        row = self.rows.get(account_id)
        if row is None:
            return None
        for key, value in updates.items():
            setattr(row, key, value)
        return dataclasses.replace(row)

    async def delete_account(self, account_id):
        self.rows.pop(account_id, None)

    async def set_primary(self, account_id, user_id):
        for row in self.rows.values():
            row.is_primary = False
        return await self.update_account(account_id, {"is_primary": True})

    async def update_status(self, account_id, status, error_message=None):
        if self.fail_status:
            raise RegistryError("registry unavailable", 503)
        self.status_updates.append((account_id, status, error_message))
        row = self.rows.get(account_id)
        if row is not None:
            row.status = status
            row.error_message = error_message
            row.last_checked = utcnow()

    async def close(self):
        pass


class FakeFileStore:
    """File record store kept in memory."""

    def __init__(self):
        self.records: Dict[str, FileRecord] = {}
        self.fail_insert: Optional[str] = None
        self.fail_soft_delete: Optional[str] = None
        self.fail_increment: Optional[str] = None
        self._next_id = 0

    async def insert(self, record, extra=None):
        if self.fail_insert:
            raise RegistryError(self.fail_insert, 500)
        self._next_id += 1
        stored = dataclasses.replace(record, id=str(self._next_id), uploaded_at=utcnow())
        self.records[stored.id] = stored
        return dataclasses.replace(stored)

    async def get_file(self, file_id, user_id):
        record = self.records.get(file_id)
        if record is None or record.user_id != user_id or record.is_deleted:
            return None
        return dataclasses.replace(record)

    async def list_files(self, user_id, file_type=None, favorite=False, search=None, **kwargs):
        found = []
        for record in self.records.values():
            if record.user_id != user_id or record.is_deleted:
                continue
            if file_type and file_type != "all" and record.file_type != file_type:
                continue
            if favorite and not record.is_favorite:
                continue
            if search and search.lower() not in record.original_name.lower():
                continue
            found.append(dataclasses.replace(record))
        return found

    async def soft_delete(self, file_id):
        if self.fail_soft_delete:
            raise RegistryError(self.fail_soft_delete, 500)
        record = self.records[file_id]
        record.is_deleted = True
        record.deleted_at = utcnow()

    async def increment_download_count(self, record):
        if self.fail_increment:
            raise RegistryError(self.fail_increment, 500)
        self.records[record.id].download_count = record.download_count + 1

    async def set_favorite(self, file_id, is_favorite):
        record = self.records[file_id]
        record.is_favorite = is_favorite
        return dataclasses.replace(record)

    async def close(self):
        pass


def make_account(account_id: str, **kwargs) -> Account:
    """Account row with a project URL derived from its id."""
    kwargs.setdefault("name", account_id)
    kwargs.setdefault("project_url", f"https://{account_id}.example.co")
    kwargs.setdefault("secret_key", f"key-{account_id}")
    kwargs.setdefault("user_id", "user-1")
    kwargs.setdefault("storage_limit", 5 * GB)
    return Account(id=account_id, **kwargs)


@pytest.fixture
def farm():
    return BackendFarm()


@pytest.fixture
def probe(farm):
    return ConnectionProbe(backend_factory=farm.factory)


@pytest.fixture
def file_store():
    return FakeFileStore()


@pytest.fixture
def build_pool(farm, probe):
    """Build an initialized pool over the given registry accounts."""

    async def _build(*accounts: Account, registry: Optional[FakeRegistry] = None) -> AccountPool:
        registry = registry or FakeRegistry(list(accounts))
        pool = AccountPool(
            "user-1", registry=registry, probe=probe, credentials=PlainCredentials(), auto_initialize=False
        )
        await pool.initialize()
        return pool

    return _build
