"""Tests for pure helpers and request models."""

import asyncio
from datetime import datetime, timezone

import pytest
from bson import ObjectId
from pydantic import ValidationError
from pymongo.errors import OperationFailure

from collavio.database import is_missing_index_error
from collavio.integrations.schemas import ConnectRequest, SecretConnect, TokenConnect
from collavio.integrations.ytclone_client import multipart_stream
from collavio.storage.unified import IncomingFile, object_path
from collavio.utils.helpers import make_channel_handle, serialize_doc, to_millis, to_object_id
from collavio.videos.service import validate_upload
from collavio.workspaces.service import WorkspaceAccess, recipients_for


def test_to_millis():
    moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert to_millis(moment) == 1704067200000
    assert to_millis(datetime(2024, 1, 1)) == 1704067200000
    assert to_millis("2024-01-01T00:00:00Z") == 1704067200000
    assert to_millis(1234) == 1234
    assert to_millis(None) == 0
    assert to_millis("not a date") == 0
    assert to_millis({"seconds": 1}) == 0


def test_make_channel_handle():
    assert make_channel_handle("My Great Channel!") == "my-great-channel"
    assert make_channel_handle("  --Hello__World--  ") == "hello-world"
    assert len(make_channel_handle("a" * 50)) == 20
    assert make_channel_handle("!!!").startswith("channel-")


def test_serialize_doc_nested():
    oid = ObjectId()
    moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
    doc = {"_id": oid, "workspace_id": oid, "items": [{"created_at": moment}], "n": 1}
    result = serialize_doc(doc)
    assert result == {
        "id": str(oid),
        "workspaceId": str(oid),
        "items": [{"createdAt": moment.isoformat()}],
        "n": 1,
    }
    assert serialize_doc(None) is None


def test_to_object_id():
    oid = ObjectId()
    assert to_object_id(str(oid)) == oid
    assert to_object_id("nope") is None
    assert to_object_id(None) is None


def test_is_missing_index_error():
    assert is_missing_index_error(OperationFailure("boom", code=292))
    assert is_missing_index_error(OperationFailure("Sort exceeded memory limit of 104857600 bytes"))
    assert is_missing_index_error(OperationFailure("no index for sort", code=17007))
    assert not is_missing_index_error(OperationFailure("unauthorized", code=13))
    assert not is_missing_index_error(OperationFailure("index key too large", code=17280))
    assert not is_missing_index_error(OperationFailure("E11000 duplicate key error index: video_version_unique", code=11000))
    assert not is_missing_index_error(ValueError("index"))


def test_connect_request_modes():
    req = ConnectRequest(workspace_id="w", base_url="http://yt/", token="t", channel_name="C")
    assert req.base_url == "http://yt"
    assert req.connection() == TokenConnect(token="t", channel_name="C")

    req = ConnectRequest(workspace_id="w", base_url="http://yt", channel_id="c", channel_link_secret="s")
    assert req.connection() == SecretConnect(channel_id="c", channel_link_secret="s")

    with pytest.raises(ValidationError):
        ConnectRequest(workspace_id="w", base_url="http://yt", token="t", channel_id="c", channel_link_secret="s")
    with pytest.raises(ValidationError):
        ConnectRequest(workspace_id="w", base_url="http://yt", channel_id="c")


def test_recipients_and_publish_rights():
    workspace = {"_id": ObjectId(), "owner": "o", "members": ["o", "a", "a", "b"], "publishers": ["b"]}
    assert recipients_for(workspace) == ["o", "a", "b"]
    assert recipients_for(workspace, exclude="a") == ["o", "b"]

    assert WorkspaceAccess(workspace, "o", True, True).can_publish
    assert WorkspaceAccess(workspace, "b", False, True).can_publish
    assert not WorkspaceAccess(workspace, "a", False, True).can_publish


def test_object_path_sanitizes_filename():
    path = object_path("videos", "ws", "vid", "my clip (final).mp4")
    prefix, name = path.rsplit("/", 1)
    assert prefix == "videos/ws/vid"
    assert name.endswith("-my_clip_final_.mp4")


def test_validate_upload_accepts_by_extension_or_mime():
    validate_upload(IncomingFile("clip.MOV", "application/octet-stream", b"x"))
    validate_upload(IncomingFile("blob", "video/mp4", b"x"))
    validate_upload(IncomingFile("thumb.webp", "", b"x"), thumbnail=True)


def test_serialize_doc_keeps_remote_payload_keys():
    doc = {"publish_meta": {"channel_id": "c", "remote_video": {"video_url": "u", "view_count": 0}}}
    assert serialize_doc(doc) == {
        "publishMeta": {"channelId": "c", "remoteVideo": {"video_url": "u", "view_count": 0}},
    }


def test_connect_request_accepts_camel_case():
    req = ConnectRequest.model_validate(
        {"workspaceId": "w", "baseUrl": "http://yt", "channelId": "c", "channelLinkSecret": "s"}
    )
    assert req.workspace_id == "w"
    assert req.connection() == SecretConnect(channel_id="c", channel_link_secret="s")


def _collect(stream):
    async def run():
        return b"".join([part async for part in stream])
    return asyncio.run(run())


async def _chunks(*parts):
    for part in parts:
        yield part


def test_multipart_stream_layout():
    body = _collect(multipart_stream(
        "b0", {"title": "Cut"}, "video", "clip.mp4", "video/mp4", _chunks(b"ab", b"cd"),
    ))
    assert body == (
        b"--b0\r\n"
        b'Content-Disposition: form-data; name="title"\r\n\r\nCut\r\n'
        b"--b0\r\n"
        b'Content-Disposition: form-data; name="video"; filename="clip.mp4"\r\n'
        b"Content-Type: video/mp4\r\n\r\n"
        b"abcd"
        b"\r\n--b0--\r\n"
    )


def test_multipart_stream_escapes_header_parameters():
    body = _collect(multipart_stream(
        "b0", {'ti"tle\r\nX-Injected: 1': "v"}, "video", 'evil".mp4\r\n\\', "video/mp4", _chunks(b"x"),
    ))
    assert b'name="ti%22tle%0D%0AX-Injected: 1"' in body
    assert b'filename="evil%22.mp4%0D%0A\\\\"' in body
    assert b"\r\nX-Injected" not in body
