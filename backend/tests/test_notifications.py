"""Tests for notification fan-out and read state."""

import asyncio

import pytest
from bson import ObjectId
from pymongo.errors import OperationFailure

from collavio.config import settings
from collavio.database import run_atomic
from collavio.notifications.service import fan_out
from conftest import auth, make_user, make_workspace


def test_fan_out_counts_members_except_actor(db):
    workspace = {"_id": ObjectId(), "owner": "owner", "members": ["owner", "a", "b", "c"]}
    count = asyncio.run(fan_out(db, workspace, "owner", "upload", "hello"))
    assert count == 3
    docs = asyncio.run(db.notifications.find({}).to_list(None))
    assert sorted(d["user_id"] for d in docs) == ["a", "b", "c"]
    assert all(d["read"] is False for d in docs)
    assert all(d["workspace_id"] == str(workspace["_id"]) for d in docs)


def test_fan_out_with_only_actor_writes_nothing(db):
    workspace = {"_id": ObjectId(), "owner": "solo", "members": ["solo"]}
    assert asyncio.run(fan_out(db, workspace, "solo", "upload", "hello")) == 0
    assert asyncio.run(db.notifications.count_documents({})) == 0


def test_fan_out_includes_owner_missing_from_members(db):
    workspace = {"_id": ObjectId(), "owner": "owner", "members": ["a"]}
    assert asyncio.run(fan_out(db, workspace, "a", "status", "hello")) == 1
    doc = asyncio.run(db.notifications.find_one({}))
    assert doc["user_id"] == "owner"


def test_create_for_workspace(client):
    workspace_id = make_workspace(client, "owner", members=["a", "b", "c"])
    resp = client.post(
        "/api/notifications",
        json={"type": "upload", "message": "ping", "workspaceId": workspace_id},
        headers=auth("owner"),
    )
    assert resp.status_code == 201
    assert resp.json() == {"message": "3 notifications created successfully", "count": 3}


def test_create_for_workspace_requires_membership(client):
    workspace_id = make_workspace(client, "owner")
    make_user(client, "stranger")
    resp = client.post(
        "/api/notifications",
        json={"type": "upload", "message": "ping", "workspaceId": workspace_id},
        headers=auth("stranger"),
    )
    assert resp.status_code == 403


def test_create_single_requires_recipient(client):
    make_user(client, "alice")
    resp = client.post("/api/notifications", json={"type": "status", "message": "hi"}, headers=auth("alice"))
    assert resp.status_code == 400

    resp = client.post(
        "/api/notifications",
        json={"type": "status", "message": "hi", "userId": "bob"},
        headers=auth("alice"),
    )
    assert resp.status_code == 201
    assert resp.json()["count"] == 1


def test_list_and_mark_read(client, db):
    make_user(client, "alice")
    make_user(client, "bob")
    for i in range(3):
        client.post(
            "/api/notifications",
            json={"type": "status", "message": f"m{i}", "userId": "alice"},
            headers=auth("bob"),
        )

    items = client.get("/api/notifications", headers=auth("alice")).json()
    assert len(items) == 3
    assert client.get("/api/notifications", headers=auth("bob")).json() == []

    first = items[0]["id"]
    assert client.put(f"/api/notifications/{first}/read", headers=auth("bob")).status_code == 403
    assert client.put(f"/api/notifications/{ObjectId()}/read", headers=auth("alice")).status_code == 404
    assert client.put(f"/api/notifications/{first}/read", headers=auth("alice")).status_code == 200

    doc = asyncio.run(db.notifications.find_one({"_id": ObjectId(first)}))
    assert doc["read"] is True

    resp = client.put("/api/notifications/read-all", headers=auth("alice"))
    assert resp.json()["updated"] == 2
    assert asyncio.run(db.notifications.count_documents({"user_id": "alice", "read": False})) == 0


def test_member_action_notifies_owner_and_other_members(client, db):
    workspace_id = make_workspace(client, "owner", members=["a", "b", "c"])
    resp = client.post(
        "/api/notifications",
        json={"type": "status", "message": "ping", "workspaceId": workspace_id},
        headers=auth("b"),
    )
    assert resp.json()["count"] == 3
    docs = asyncio.run(db.notifications.find({}).to_list(None))
    assert sorted(d["user_id"] for d in docs) == ["a", "c", "owner"]


class _Session:
    def __init__(self, fail_code=None):
        self.fail_code = fail_code
        self.transactions = 0

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def with_transaction(self, callback):
        if self.fail_code is not None:
            raise OperationFailure("Transaction numbers are only allowed on a replica set member or mongos",
                                   code=self.fail_code)
        self.transactions += 1
        return await callback(self)


class _Client:
    def __init__(self, session):
        self.session = session

    async def start_session(self):
        return self.session


class _Notifications:
    def __init__(self):
        self.batches = []

    async def insert_many(self, docs, session=None):
        self.batches.append((len(docs), session))


class _Db:
    def __init__(self, session):
        self.client = _Client(session)
        self.notifications = _Notifications()


def test_atomic_writes_share_one_transaction(monkeypatch):
    monkeypatch.setattr(settings, "MONGODB_TRANSACTIONS", True)
    session = _Session()
    seen = []

    async def write(s):
        seen.append(s)
        return "done"

    assert asyncio.run(run_atomic(_Db(session), write)) == "done"
    assert session.transactions == 1
    assert seen == [session]


def test_fan_out_inserts_batch_inside_transaction(monkeypatch):
    monkeypatch.setattr(settings, "MONGODB_TRANSACTIONS", True)
    session = _Session()
    db = _Db(session)
    workspace = {"_id": ObjectId(), "owner": "owner", "members": ["owner", "a", "b", "c"]}

    assert asyncio.run(fan_out(db, workspace, "a", "upload", "hello")) == 3
    assert db.notifications.batches == [(3, session)]
    assert session.transactions == 1


def test_standalone_server_writes_without_session(monkeypatch):
    monkeypatch.setattr(settings, "MONGODB_TRANSACTIONS", True)
    seen = []

    async def write(s):
        seen.append(s)

    asyncio.run(run_atomic(_Db(_Session(fail_code=20)), write))
    assert seen == [None]


def test_other_transaction_failures_propagate(monkeypatch):
    monkeypatch.setattr(settings, "MONGODB_TRANSACTIONS", True)

    async def write(s):
        pass

    with pytest.raises(OperationFailure):
        asyncio.run(run_atomic(_Db(_Session(fail_code=112)), write))
