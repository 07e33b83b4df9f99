"""Shared fixtures: the real app wired to in-memory Mongo, local disk and fake remotes."""

import asyncio
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from collavio.main import app
from collavio.auth.dependencies import get_identity
from collavio.auth.identity import IdentityUser, InvalidTokenError
from collavio.config import settings
from collavio.database import create_indexes, get_db
from collavio.integrations.ytclone_client import YTCloneClient, get_ytclone_client
from collavio.storage.local import LocalStorage
from collavio.storage.unified import get_storage

YTCLONE_URL = "http://ytclone.test"


class FakeIdentity:
    """Treats the bearer token as the user's UID; "bad" is rejected."""

    async def verify_token(self, token: str) -> IdentityUser:
        if token == "bad":
            raise InvalidTokenError("rejected")
        return IdentityUser(
            uid=token,
            email=f"{token}@collavio.app",
            display_name=token.capitalize(),
            photo_url="",
        )


class FakeYTClone:
    """Records calls to the publish platform and serves local uploads back."""

    def __init__(self, upload_root: Path):
        self.upload_root = upload_root
        self.calls = []
        self.channels = []
        self.upload_status = 200
        self.regenerate_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.url.host == "testserver" and path.startswith("/uploads/"):
            target = self.upload_root / path[len("/uploads/"):]
            if not target.exists():
                return httpx.Response(404)
            return httpx.Response(200, content=target.read_bytes())

        self.calls.append({
            "method": request.method,
            "path": path,
            "headers": dict(request.headers),
            "body": request.content,
        })
        if path == "/api/channels/my-channels":
            return httpx.Response(200, json=self.channels)
        if path == "/api/channels" and request.method == "POST":
            return httpx.Response(201, json={"channel": {"id": "ch-new", "name": "Created"}})
        if path.endswith("/regenerate-secret"):
            if self.regenerate_status >= 400:
                return httpx.Response(self.regenerate_status, json={"error": "nope"})
            return httpx.Response(200, json={"channelLinkSecret": "fresh-secret"})
        if path in ("/api/videos/upload", "/api/videos/upload-by-secret"):
            if self.upload_status >= 400:
                return httpx.Response(self.upload_status, json={"error": "platform down"})
            return httpx.Response(201, json={"id": "remote-1", "title": "uploaded"})
        return httpx.Response(404, json={"error": "not found"})

    def paths(self):
        return [c["path"] for c in self.calls]


@pytest.fixture
def db(monkeypatch):
    # The in-memory store has no sessions
    monkeypatch.setattr(settings, "MONGODB_TRANSACTIONS", False)
    database = AsyncMongoMockClient()["collavio_test"]
    asyncio.run(create_indexes(database))
    return database


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(root=str(tmp_path / "uploads"))


@pytest.fixture
def ytclone(tmp_path):
    return FakeYTClone(tmp_path / "uploads")


@pytest.fixture
def client(db, storage, ytclone):
    http = httpx.AsyncClient(transport=httpx.MockTransport(ytclone.handler))
    identity = FakeIdentity()
    yt_client = YTCloneClient(http)

    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_identity] = lambda: identity
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_ytclone_client] = lambda: yt_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(uid: str) -> dict:
    return {"Authorization": f"Bearer {uid}"}


def make_user(client, uid: str) -> dict:
    resp = client.post("/api/auth/register", headers=auth(uid))
    assert resp.status_code == 200
    return resp.json()["user"]


def make_workspace(client, owner: str, members=(), name: str = "Channel") -> str:
    make_user(client, owner)
    resp = client.post("/api/workspaces", json={"name": name}, headers=auth(owner))
    assert resp.status_code == 201
    workspace_id = resp.json()["id"]
    for member in members:
        make_user(client, member)
        resp = client.post(
            f"/api/workspaces/{workspace_id}/members",
            json={"email": f"{member}@collavio.app"},
            headers=auth(owner),
        )
        assert resp.status_code == 200
    return workspace_id


def upload_video(client, uid: str, workspace_id: str, title: str = "Cut 1") -> str:
    resp = client.post(
        "/api/videos/upload",
        data={"title": title, "workspaceId": workspace_id, "description": "rough cut"},
        files={"video": ("clip.mp4", b"\x00\x01video-bytes", "video/mp4")},
        headers=auth(uid),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["video"]["id"]


def upload_version(client, uid: str, video_id: str, payload: bytes = b"next-cut"):
    return client.post(
        f"/api/videos/{video_id}/versions",
        files={"video": ("clip.mp4", payload, "video/mp4")},
        headers=auth(uid),
    )
