"""
Tests for UploadRouter: selection, failover and partial failures.
"""
from dataclasses import dataclass

import pytest
from conftest import GB, MB, make_account

from vault_pool.models import UploadFile
from vault_pool.router import UploadRouter


@dataclass
class SparseFile:
    """Upload whose declared size does not need to be held in memory."""
    name: str
    size: int
    mime_type: str
    content: bytes = b"payload"


def sized_file(size: int, name: str = "movie.mp4", mime_type: str = "video/mp4") -> SparseFile:
    return SparseFile(name=name, size=size, mime_type=mime_type)


@pytest.mark.asyncio
async def test_upload_writes_object_and_record(build_pool, farm, file_store):
    pool = await build_pool(make_account("a"))
    router = UploadRouter(pool, file_store)

    result = await router.upload(UploadFile(name="cat.png", content=b"meow", mime_type="image/png"))

    assert result.success
    uploaded = result.data
    assert uploaded.account_id == "a"
    assert uploaded.storage_path.startswith("user-1/")
    assert uploaded.storage_path.endswith("_cat.png")
    assert farm["https://a.example.co"].objects[uploaded.storage_path] == b"meow"
    assert uploaded.public_url == f"https://a.example.co/storage/v1/object/public/instavault-storage/{uploaded.storage_path}"

    record = file_store.records[uploaded.record.id]
    assert record.account_id == "a"
    assert record.user_id == "user-1"
    assert record.original_name == "cat.png"
    assert record.file_type == "photo"
    assert record.file_size == 4
    assert record.file_path == uploaded.storage_path


@pytest.mark.asyncio
async def test_storage_paths_do_not_collide(build_pool, file_store):
    pool = await build_pool(make_account("a"))
    router = UploadRouter(pool, file_store)

    paths = {router.storage_path("same.txt") for _ in range(20)}

    assert len(paths) == 20


@pytest.mark.asyncio
async def test_no_capacity_fails_without_writing(build_pool, farm, file_store):
    pool = await build_pool(
        make_account("a", storage_used=5 * GB - MB),
        make_account("b", is_active=False),
    )
    router = UploadRouter(pool, file_store)

    result = await router.upload(sized_file(2 * MB))

    assert not result.success
    assert result.error.startswith("No available storage")
    assert farm["https://a.example.co"].upload_calls == 0
    assert file_store.records == {}


@pytest.mark.asyncio
async def test_failed_write_retries_on_remaining_accounts(build_pool, farm, file_store):
    pool = await build_pool(
        make_account("a", is_primary=True),
        make_account("b", connection_speed="fast"),
        make_account("c", connection_speed="slow"),
    )
    farm["https://a.example.co"].fail_upload = "Internal Server Error"
    router = UploadRouter(pool, file_store)

    result = await router.upload(sized_file(10))

    assert result.success
    assert result.data.account_id == "b"
    assert farm["https://a.example.co"].upload_calls == 1
    assert farm["https://b.example.co"].upload_calls == 1
    assert farm["https://c.example.co"].upload_calls == 0
    assert "a" not in pool
    assert [a.id for a in pool.live_accounts] == ["b", "c"]


@pytest.mark.asyncio
async def test_failover_stops_when_pool_exhausted(build_pool, farm, file_store):
    pool = await build_pool(make_account("a"), make_account("b"), make_account("c"))
    for name in "abc":
        farm[f"https://{name}.example.co"].fail_upload = f"{name} is down"
    router = UploadRouter(pool, file_store)

    result = await router.upload(sized_file(10))

    assert not result.success
    assert result.error == "c is down"
    assert [farm[f"https://{n}.example.co"].upload_calls for n in "abc"] == [1, 1, 1]
    assert [a.id for a in pool.live_accounts] == ["c"]
    assert file_store.records == {}


@pytest.mark.asyncio
async def test_single_account_write_error_propagates(build_pool, farm, file_store):
    pool = await build_pool(make_account("only"))
    farm["https://only.example.co"].fail_upload = "The object exceeded the maximum allowed size"
    router = UploadRouter(pool, file_store)

    result = await router.upload(sized_file(10))

    assert not result.success
    assert result.error == "The object exceeded the maximum allowed size"
    assert "only" in pool


@pytest.mark.asyncio
async def test_failover_to_full_pool_reports_write_error(build_pool, farm, file_store):
    pool = await build_pool(make_account("a"), make_account("b", storage_used=5 * GB))
    farm["https://a.example.co"].fail_upload = "Gateway Timeout"
    router = UploadRouter(pool, file_store)

    result = await router.upload(sized_file(10))

    assert not result.success
    assert result.error == "Gateway Timeout"


@pytest.mark.asyncio
async def test_record_failure_leaves_object_in_place(build_pool, farm, file_store):
    pool = await build_pool(make_account("a"))
    file_store.fail_insert = "duplicate key value violates unique constraint"
    router = UploadRouter(pool, file_store)

    result = await router.upload(sized_file(10, name="doc.pdf", mime_type="application/pdf"))

    assert not result.success
    assert "duplicate key value" in result.error
    objects = farm["https://a.example.co"].objects
    assert len(objects) == 1
    assert next(iter(objects)) in result.error


@pytest.mark.asyncio
async def test_upload_reloads_account_usage(build_pool, file_store):
    pool = await build_pool(make_account("a"))
    pool.registry.rows["a"].storage_used = 3 * GB
    pool.registry.rows["a"].files_count = 1
    router = UploadRouter(pool, file_store)

    await router.upload(sized_file(10))

    assert pool.get("a").account.storage_used == 3 * GB
    assert pool.get("a").account.files_count == 1


@pytest.mark.asyncio
async def test_end_to_end_primary_then_next_best(build_pool, file_store):
    """A is primary until it runs out of room, then the fast B takes over."""
    pool = await build_pool(
        make_account("A", is_primary=True, connection_speed="fast"),
        make_account("B", connection_speed="fast"),
        make_account("C", connection_speed="slow", storage_used=int(4.9 * GB)),
    )
    router = UploadRouter(pool, file_store)

    first = await router.upload(sized_file(200 * MB))
    assert first.data.account_id == "A"

    pool.registry.rows["A"].storage_used = int(4.95 * GB)
    await pool.refresh("A")

    assert pool.select(200 * MB).id == "B"
    second = await router.upload(sized_file(200 * MB))
    assert second.data.account_id == "B"
