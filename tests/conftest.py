from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote

import httpx
import pytest

from mathdoc.services.artifact_store import ArtifactStore
from mathdoc.services.document_cache import DocumentCache, LocalKeyValueStore
from mathdoc.services.s3_client import ObjectStorage

BUCKET = "test-bucket"
STORAGE_HOST = "https://storage.test"


@dataclass
class FakeObject:
    object_name: str
    is_dir: bool = False


class FakeMinio:
    """In-memory stand-in for the subset of the Minio API we use."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.metadata: dict[str, dict] = {}
        self.fail_list = False
        self.fail_put = False
        self.list_calls = 0
        self.put_calls = 0

    def put_object(
        self, bucket, key, data, length, content_type="application/octet-stream", metadata=None
    ):
        self.put_calls += 1
        if self.fail_put:
            raise ConnectionError("storage down")
        self.objects[key] = data.read(length)
        self.content_types[key] = content_type
        self.metadata[key] = dict(metadata or {})

    def list_objects(self, bucket, prefix="", recursive=False):
        self.list_calls += 1
        if self.fail_list:
            raise ConnectionError("storage down")
        seen = set()
        for key in sorted(self.objects):
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if "/" in rest:
                child = prefix + rest.split("/", 1)[0] + "/"
                if child not in seen:
                    seen.add(child)
                    yield FakeObject(child, is_dir=True)
            else:
                yield FakeObject(key)

    def presigned_get_object(self, bucket, key, expires=None):
        return f"{STORAGE_HOST}/{bucket}/{key}?X-Amz-Signature=secret"


def storage_transport(fake: FakeMinio, fetched: list[str] | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        key = unquote(request.url.path).removeprefix(f"/{BUCKET}/")
        if fetched is not None:
            fetched.append(key)
        if key not in fake.objects:
            return httpx.Response(404, text="NoSuchKey")
        return httpx.Response(200, content=fake.objects[key])

    return httpx.MockTransport(handler)


class RecordingSleep:
    """Injected delay function that records instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_minio() -> FakeMinio:
    return FakeMinio()


@pytest.fixture
def fetched_keys() -> list[str]:
    return []


@pytest.fixture
def object_storage(fake_minio: FakeMinio, fetched_keys: list[str]) -> ObjectStorage:
    return ObjectStorage(
        endpoint="storage.test",
        access_key="key",
        secret_key="secret",
        bucket=BUCKET,
        client=fake_minio,
        transport=storage_transport(fake_minio, fetched_keys),
    )


@pytest.fixture
def artifact_store(object_storage: ObjectStorage) -> ArtifactStore:
    return ArtifactStore(object_storage)


@pytest.fixture
def document_cache(tmp_path: Path) -> DocumentCache:
    return DocumentCache(LocalKeyValueStore(tmp_path / "cache"))


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
