"""YouTube Clone integration: connect a workspace channel and publish videos to it."""

import logging

from fastapi import HTTPException
from pymongo import ReturnDocument

from collavio.integrations.schemas import ConnectRequest, SecretConnect, TokenConnect
from collavio.integrations.ytclone_client import YTCloneClient, YTCloneError
from collavio.utils.helpers import utc_now, make_channel_handle
from collavio.videos.schemas import VideoStatus
from collavio.videos.service import get_video_doc, latest_version, public_video
from collavio.workspaces.service import check_access, require_member, require_owner

logger = logging.getLogger(__name__)

PLATFORM = "youtube-clone"


def _integration(workspace: dict) -> dict:
    return (workspace.get("integrations") or {}).get("youtube_clone") or {}


def _channel_id(channel: dict):
    return channel.get("id") or channel.get("_id")


async def _resolve_channel(client: YTCloneClient, base_url: str, conn: TokenConnect) -> dict:
    channels = await client.my_channels(base_url, conn.token)
    if channels:
        return channels[0]
    if not conn.channel_name:
        raise HTTPException(
            status_code=400,
            detail="No channel found on YouTube Clone. Provide channelName to create one "
                   "or use channelId+channelLinkSecret.",
        )
    return await client.create_channel(
        base_url, conn.token, conn.channel_name, conn.channel_description,
        make_channel_handle(conn.channel_name),
    )


async def connect(db, client: YTCloneClient, user_id: str, req: ConnectRequest) -> dict:
    access = await require_owner(
        db, req.workspace_id, user_id, "Only workspace owner can connect YouTube Clone"
    )
    base_url = req.base_url
    conn = req.connection()

    if isinstance(conn, SecretConnect):
        # The secret is stored as received; the platform only checks it on upload.
        channel = {"id": conn.channel_id, "name": None}
        token = None
        channel_name = None
        secret = conn.channel_link_secret
    else:
        try:
            channel = await _resolve_channel(client, base_url, conn)
        except YTCloneError as e:
            raise HTTPException(status_code=400, detail=f"Failed to connect: {e}")
        token = conn.token
        channel_name = conn.channel_name
        secret = channel.get("channelLinkSecret")
        if not secret and _channel_id(channel):
            try:
                secret = await client.regenerate_secret(base_url, token, _channel_id(channel))
            except YTCloneError as e:
                # Token uploads still work without a secret
                logger.warning(f"Could not obtain channel secret for workspace {req.workspace_id}: {e}")

    record = {
        "base_url": base_url,
        "token": token,
        "channel_id": _channel_id(channel),
        "channel_name": channel.get("name") or channel_name,
        "channel_link_secret": secret,
        "connected_at": utc_now().isoformat(),
        "connected_by": user_id,
    }

    if isinstance((access.workspace.get("integrations") or {}).get("youtube_clone"), dict):
        update = {f"integrations.youtube_clone.{k}": v for k, v in record.items()}
    else:
        update = {"integrations.youtube_clone": record}
    update["updated_at"] = utc_now()
    await db.workspaces.update_one({"_id": access.workspace["_id"]}, {"$set": update})

    logger.info(f"Workspace {req.workspace_id} connected to YouTube Clone channel {record['channel_id']}")
    return {"ok": True, "channel": {"id": record["channel_id"], "name": record["channel_name"]}}


async def get_status(db, user_id: str, workspace_id: str) -> dict:
    access = await require_member(db, workspace_id, user_id, "Access denied to workspace")
    integration = _integration(access.workspace)

    connected = bool(
        integration.get("base_url")
        and (integration.get("token") or (integration.get("channel_id") and integration.get("channel_link_secret")))
    )
    return {
        "connected": connected,
        "channelName": integration.get("channel_name"),
        "channelId": integration.get("channel_id"),
        "connectedAt": integration.get("connected_at"),
        "connectedBy": integration.get("connected_by"),
        "isOwner": access.is_owner,
    }


async def publish(
    db, client: YTCloneClient, user_id: str, video_id: str,
    title: str = None, description: str = None,
) -> dict:
    """Push the latest version of a video to the connected channel. Not retried on failure."""
    video = await get_video_doc(db, video_id)
    access = await check_access(db, video["workspace_id"], user_id)
    if not access.can_publish:
        raise HTTPException(status_code=403, detail="Only owner or publisher can publish")

    integration = _integration(access.workspace)
    if not integration:
        raise HTTPException(status_code=400, detail="YouTube Clone not connected for this workspace")

    base_url = integration.get("base_url")
    token = integration.get("token")
    channel_id = integration.get("channel_id")
    secret = integration.get("channel_link_secret")
    by_secret = bool(secret and channel_id)
    if not base_url or not (by_secret or token):
        raise HTTPException(status_code=400, detail="YouTube Clone not connected for this workspace")

    latest = await latest_version(db, video_id)
    if not latest or not latest.get("video_url"):
        raise HTTPException(status_code=400, detail="Latest version has no video_url")

    fields = {
        "title": title or video.get("title") or f"Video {video_id}",
        "description": description or video.get("description") or "",
    }
    if by_secret:
        fields["channelId"] = channel_id
        fields["secret"] = secret

    try:
        remote = await client.upload_video(
            base_url, latest["video_url"], f"{video_id}.mp4", fields,
            token=None if by_secret else token,
            by_secret=by_secret,
        )
    except YTCloneError as e:
        logger.error(f"YouTube Clone publish of video {video_id} failed: {e}")
        raise HTTPException(
            status_code=500,
            detail={"message": "Failed to publish to YouTube Clone", "error": str(e)},
        )

    updated = await db.videos.find_one_and_update(
        {"_id": video["_id"]},
        {"$set": {
            "published": True,
            "status": VideoStatus.APPROVED.value,
            "updated_at": utc_now(),
            "publish_meta": {
                "platform": PLATFORM,
                "channel_id": channel_id,
                "remote_video": remote,
            },
        }},
        return_document=ReturnDocument.AFTER,
    )
    result = public_video(updated)
    result["publishedTo"] = PLATFORM
    return result
