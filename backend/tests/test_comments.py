"""Tests for timestamped review comments."""

import asyncio

from bson import ObjectId

from conftest import auth, make_user, make_workspace, upload_video


def test_comments_ordered_by_timestamp(client):
    workspace_id = make_workspace(client, "owner", members=["editor"])
    video_id = upload_video(client, "owner", workspace_id)

    for ts, text in [(42.5, "audio pops"), (3, "cold open"), (17, "cut earlier")]:
        resp = client.post(
            f"/api/comments/{video_id}",
            json={"content": text, "timestamp": ts},
            headers=auth("editor"),
        )
        assert resp.status_code == 201

    resp = client.get(f"/api/comments/{video_id}", headers=auth("owner"))
    assert [c["content"] for c in resp.json()] == ["cold open", "cut earlier", "audio pops"]
    assert resp.json()[0]["author"]["displayName"] == "Editor"
    assert resp.json()[0]["workspaceId"] == workspace_id


def test_comment_validation(client):
    workspace_id = make_workspace(client, "owner")
    video_id = upload_video(client, "owner", workspace_id)

    resp = client.post(f"/api/comments/{video_id}", json={"content": "", "timestamp": 1}, headers=auth("owner"))
    assert resp.status_code == 400
    resp = client.post(f"/api/comments/{video_id}", json={"content": "x", "timestamp": -1}, headers=auth("owner"))
    assert resp.status_code == 400


def test_comment_workspace_must_match_video(client):
    workspace_id = make_workspace(client, "owner")
    other = make_workspace(client, "owner", name="Other")
    video_id = upload_video(client, "owner", workspace_id)

    resp = client.post(
        f"/api/comments/{video_id}",
        json={"content": "x", "timestamp": 1, "workspaceId": other},
        headers=auth("owner"),
    )
    assert resp.status_code == 400


def test_comments_require_membership(client):
    workspace_id = make_workspace(client, "owner")
    video_id = upload_video(client, "owner", workspace_id)
    make_user(client, "stranger")

    resp = client.post(f"/api/comments/{video_id}", json={"content": "hi", "timestamp": 0}, headers=auth("stranger"))
    assert resp.status_code == 403
    assert client.get(f"/api/comments/{video_id}", headers=auth("stranger")).status_code == 403
    assert client.get(f"/api/comments/{ObjectId()}", headers=auth("owner")).status_code == 404


def test_comment_notifies_everyone_but_author(client, db):
    workspace_id = make_workspace(client, "owner", members=["editor", "reviewer"])
    video_id = upload_video(client, "owner", workspace_id, title="Teaser")
    client.post(f"/api/comments/{video_id}", json={"content": "nice", "timestamp": 5}, headers=auth("reviewer"))

    docs = asyncio.run(db.notifications.find({"type": "comment"}).to_list(None))
    assert sorted(d["user_id"] for d in docs) == ["editor", "owner"]
    assert docs[0]["message"] == "New comment on Teaser"
    assert docs[0]["video_id"] == video_id
