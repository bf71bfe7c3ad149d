"""
Unit tests for models and credential handling.
"""
import pytest

from vault_pool.credentials import EncryptedCredentials, PlainCredentials, default_credentials
from vault_pool.crypto import KeyCipher
from vault_pool.models import Account, FileRecord, OperationResult, UploadFile, file_type_for


@pytest.mark.parametrize("mime_type,expected", [
    ("image/jpeg", "photo"),
    ("video/webm", "video"),
    ("application/pdf", "document"),
    ("text/csv", "document"),
    ("application/vnd.openxmlformats-officedocument.wordprocessingml.document", "document"),
    ("application/vnd.ms-excel", "other"),
    ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "document"),
    ("application/vnd.openxmlformats-officedocument.presentationml.presentation", "document"),
    ("application/zip", "other"),
    ("", "other"),
    (None, "other"),
])
def test_file_type_for(mime_type, expected):
    assert file_type_for(mime_type) == expected


def test_account_usage_properties():
    account = Account(id="a", storage_used=250, storage_limit=1000)

    assert account.name == "a"
    assert account.storage_free == 750
    assert account.usage_ratio == 0.25
    assert account.usage_percent == 25.0
    assert account.has_space_for(750)
    assert not account.has_space_for(751)


def test_account_without_limit_counts_as_used_up():
    account = Account(id="a", storage_limit=0)

    assert account.usage_ratio == 1.0
    assert not account.has_space_for(1)


def test_secret_key_hidden_from_repr():
    account = Account(id="a", secret_key="super-secret")

    assert "super-secret" not in repr(account)


def test_file_record_row_mapping():
    record = FileRecord.from_row({
        "id": 3, "user_id": "u", "api_key_id": 12, "file_path": "u/1_x.mp4",
        "original_name": "x.mp4", "file_type": "video", "file_size": 9,
        "is_deleted": False, "download_count": None,
    })

    assert record.id == "3"
    assert record.account_id == "12"
    assert record.file_name == "1_x.mp4"
    assert record.download_count == 0
    assert record.to_row()["api_key_id"] == "12"


def test_upload_file_from_path(tmp_path):
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"12345")

    upload = UploadFile.from_path(path)

    assert upload.name == "clip.mp4"
    assert upload.size == 5
    assert upload.mime_type == "video/mp4"


def test_operation_result_fallback_message():
    assert OperationResult.fail(Exception()).error == "An unexpected error occurred. Please try again."
    assert not OperationResult.fail("boom")
    assert OperationResult.ok(1)


def test_key_cipher_roundtrip_uses_fresh_iv():
    cipher = KeyCipher("master")

    first = cipher.encrypt("eyJhbGciOiJIUzI1NiJ9.secret")
    second = cipher.encrypt("eyJhbGciOiJIUzI1NiJ9.secret")

    assert first != second
    assert cipher.decrypt(first) == "eyJhbGciOiJIUzI1NiJ9.secret"
    assert KeyCipher("master").decrypt(second) == "eyJhbGciOiJIUzI1NiJ9.secret"


def test_key_cipher_requires_master_key():
    with pytest.raises(ValueError):
        KeyCipher("")


def test_encrypted_credentials_resolve_sealed_key():
    credentials = EncryptedCredentials("master")
    sealed = credentials.seal("project-key")
    account = Account(id="a", project_url="https://a.example.co", secret_key=sealed)

    params = credentials.resolve(account)

    assert sealed != "project-key"
    assert params.project_url == "https://a.example.co"
    assert params.secret_key == "project-key"
    assert "project-key" not in repr(params)


def test_plain_credentials_pass_through():
    account = Account(id="a", project_url="https://a.example.co", secret_key="k")

    assert PlainCredentials().seal("k") == "k"
    assert PlainCredentials().resolve(account).secret_key == "k"


def test_default_credentials_follow_master_key():
    assert isinstance(default_credentials("master"), EncryptedCredentials)
