from collections.abc import Iterable
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from filedrive.core.config import Settings
from filedrive.db.session import Database
from filedrive.main import create_app
from filedrive.services.storage import BlobNotFoundError, BlobStoreError, BlobUpload, file_format, new_blob_id
from filedrive.services.users import create_user


class InMemoryBlobStore:
    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.created: dict[str, datetime] = {}
        self.fail_uploads_after: int | None = None
        self.fail_deletes = False
        self.delete_calls: list[str] = []
        self.batch_calls: list[list[str]] = []

    def upload(self, data: bytes, filename: str, content_type: str | None = None) -> BlobUpload:
        if self.fail_uploads_after is not None and len(self.blobs) >= self.fail_uploads_after:
            raise BlobStoreError("upload refused")
        blob_id = new_blob_id(filename)
        now = datetime.now(timezone.utc)
        self.blobs[blob_id] = data
        self.created[blob_id] = now
        return BlobUpload(
            blob_id=blob_id,
            url=f"memory://{blob_id}",
            size=len(data),
            format=file_format(filename),
            original_name=filename,
            created_at=now,
        )

    def delete(self, blob_id: str) -> None:
        self.delete_calls.append(blob_id)
        if self.fail_deletes:
            raise BlobStoreError("delete refused")
        if blob_id not in self.blobs:
            raise BlobNotFoundError(blob_id)
        self.blobs.pop(blob_id)
        self.created.pop(blob_id, None)

    def delete_batch(self, blob_ids: Iterable[str]) -> None:
        ids = list(blob_ids)
        self.batch_calls.append(ids)
        if self.fail_deletes:
            raise BlobStoreError("batch delete refused")
        for blob_id in ids:
            self.blobs.pop(blob_id, None)
            self.created.pop(blob_id, None)

    def list_blobs(self):
        return list(self.created.items())


@pytest.fixture()
def database(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'test.db'}")
    database.connect()
    database.create_all()
    yield database
    database.connect()
    database.drop_all()
    database.disconnect()


@pytest.fixture()
def db(database):
    session = database.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture()
def user(db):
    return create_user(db, "alice", "alice@example.com", "secret123")


@pytest.fixture()
def other_user(db):
    return create_user(db, "bob", "bob@example.com", "secret123")


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        environment="test",
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        blob_dir=str(tmp_path / "blobs"),
        rate_limit_per_minute=10_000,
    )


@pytest.fixture()
def client(settings, database, blob_store):
    app = create_app(settings=settings, database=database, blob_store=blob_store)
    with TestClient(app) as test_client:
        yield test_client
