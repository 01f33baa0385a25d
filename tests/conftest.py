import json
import uuid
from typing import Dict, Optional

import pytest
from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response
from fastapi.testclient import TestClient

from mos_sdk import AccessKey, Client, presign_authorizer

# fake values, only used by the unit tests
BASE_URL = "https://storage.example.com"
PROJECT_ID = "550e8400-e29b-41d4-a716-446655440000"
BUCKET_NAME = "images"
ACCESS_KEY = "MOS_UNIT_TEST_FAKE_KEY"
SECRET_KEY = "unit_test_fake_secret"
READ_ONLY_ACCESS_KEY = "MOS_UNIT_TEST_READ_ONLY"
READ_ONLY_SECRET_KEY = "unit_test_read_only_secret"

NOW = 1735344000


class FakeClock:
    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


class ObjectStore:
    """In-memory stand-in for the storage server's bucket."""

    def __init__(self):
        self.objects: Dict[str, dict] = {}

    def put(self, original_name: str, content: bytes, mime_type: str, metadata: Optional[dict]) -> dict:
        suffix = ""
        if "." in original_name:
            suffix = "." + original_name.rsplit(".", 1)[1]
        name = f"{uuid.uuid4()}{suffix}"
        record = {
            "id": str(uuid.uuid4()),
            "name": name,
            "original_name": original_name,
            "size": len(content),
            "size_formatted": f"{len(content)} B",
            "mime_type": mime_type,
            "bucket_id": str(uuid.uuid5(uuid.NAMESPACE_URL, BUCKET_NAME)),
            "url": f"{BASE_URL}/api/v1/public/projects/{PROJECT_ID}/buckets/{BUCKET_NAME}/{name}",
            "metadata": metadata,
            "created_at": "2024-12-28T00:00:00Z",
            "updated_at": "2024-12-28T00:00:00Z",
        }
        self.objects[name] = {"record": record, "content": content}
        return record


def build_server(store: ObjectStore, clock: FakeClock) -> FastAPI:
    keys = {
        ACCESS_KEY: AccessKey(access_key=ACCESS_KEY, secret_key=SECRET_KEY),
        READ_ONLY_ACCESS_KEY: AccessKey(
            access_key=READ_ONLY_ACCESS_KEY,
            secret_key=READ_ONLY_SECRET_KEY,
            permissions=frozenset({"read"}),
        ),
    }
    authorize = presign_authorizer(keys.get, clock=clock)
    app = FastAPI(title="mos-stub")

    def get_object(filename: str) -> dict:
        obj = store.objects.get(filename)
        if obj is None:
            raise HTTPException(status_code=404, detail={"error": "NOT_FOUND", "message": "Object not found"})
        return obj

    @app.post("/api/v1/projects/{project_id}/buckets/{bucket_name}/objects", status_code=status.HTTP_201_CREATED)
    async def upload_object(
        project_id: str,
        bucket_name: str,
        file: UploadFile = File(...),
        metadata: Optional[str] = Form(None),
        _=Depends(authorize),
    ):
        content = await file.read()
        meta = json.loads(metadata) if metadata is not None else None
        return store.put(file.filename, content, file.content_type or "application/octet-stream", meta)

    @app.get("/api/v1/projects/{project_id}/buckets/{bucket_name}/objects/{filename}")
    def download_object(project_id: str, bucket_name: str, filename: str, _=Depends(authorize)):
        obj = get_object(filename)
        return Response(content=obj["content"], media_type=obj["record"]["mime_type"])

    @app.delete("/api/v1/projects/{project_id}/buckets/{bucket_name}/objects/{filename}", status_code=204)
    def delete_object(project_id: str, bucket_name: str, filename: str, _=Depends(authorize)):
        get_object(filename)
        del store.objects[filename]
        return Response(status_code=204)

    @app.get("/api/v1/public/projects/{project_id}/buckets/{bucket_name}/{filename}")
    def public_object(project_id: str, bucket_name: str, filename: str):
        obj = get_object(filename)
        return Response(content=obj["content"], media_type=obj["record"]["mime_type"])

    return app


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def server_clock():
    return FakeClock()


@pytest.fixture
def store():
    return ObjectStore()


@pytest.fixture
def http(store, server_clock):
    with TestClient(build_server(store, server_clock), base_url=BASE_URL) as tc:
        yield tc


@pytest.fixture
def client(clock):
    return Client.create(BASE_URL, PROJECT_ID, BUCKET_NAME, ACCESS_KEY, SECRET_KEY, clock=clock)


@pytest.fixture
def connected(http, clock):
    return Client.create(BASE_URL, PROJECT_ID, BUCKET_NAME, ACCESS_KEY, SECRET_KEY, http_client=http, clock=clock)


@pytest.fixture
def read_only(http, clock):
    return Client.create(
        BASE_URL, PROJECT_ID, BUCKET_NAME, READ_ONLY_ACCESS_KEY, READ_ONLY_SECRET_KEY, http_client=http, clock=clock
    )
