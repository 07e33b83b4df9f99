"""Video service: uploads, version history, review status and publishing state."""

import logging
import os
import re
from typing import List, Optional

from fastapi import HTTPException
from pymongo import ReturnDocument

from collavio.config import settings
from collavio.database import is_missing_index_error
from collavio.notifications.schemas import NotificationType
from collavio.notifications.service import fan_out, fan_out_quietly
from collavio.storage.unified import IncomingFile, StorageNotConfigured, store_file
from collavio.utils.helpers import utc_now, serialize_doc, to_object_id, to_millis
from collavio.videos.schemas import VideoStatus
from collavio.workspaces.service import check_access, require_member

logger = logging.getLogger(__name__)

VIDEO_TYPES = re.compile(r"mp4|mov|avi|wmv|flv|mkv")
IMAGE_TYPES = re.compile(r"jpg|jpeg|png|gif|webp")


def validate_upload(incoming: IncomingFile, thumbnail: bool = False):
    """Reject wrong media types and oversized files before anything is written."""
    pattern = IMAGE_TYPES if thumbnail else VIDEO_TYPES
    ext = os.path.splitext(incoming.filename or "")[1].lower()
    if not (pattern.search(incoming.content_type or "") or pattern.search(ext)):
        raise HTTPException(
            status_code=400,
            detail="Images only allowed for thumbnail" if thumbnail else "Videos only",
        )
    if incoming.size > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=400,
            detail=f"File too large (limit {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB)",
        )


def public_video(doc: dict) -> dict:
    result = serialize_doc(doc)
    result.pop("versionSeq", None)
    return result


async def get_video_doc(db, video_id: str) -> dict:
    oid = to_object_id(video_id)
    video = await db.videos.find_one({"_id": oid}) if oid else None
    if video is None:
        raise HTTPException(status_code=404, detail="Video not found")
    return video


async def latest_version(db, video_id: str) -> Optional[dict]:
    return await db.video_versions.find_one(
        {"video_id": video_id},
        sort=[("version_number", -1)],
    )


async def _ensure_storage(storage):
    try:
        await storage.ensure_ready()
    except StorageNotConfigured as e:
        logger.error(f"Upload refused: {e}")
        raise HTTPException(status_code=500, detail=str(e))


async def _store_media(storage, workspace_id: str, video_id: str, video_file, thumb_file, base_url: str):
    try:
        stored_video = await store_file(storage, "videos", workspace_id, video_id, video_file, base_url)
        stored_thumb = None
        if thumb_file is not None:
            stored_thumb = await store_file(storage, "thumbnails", workspace_id, video_id, thumb_file, base_url)
    except Exception as e:
        logger.exception(f"Storing media for video {video_id} failed")
        raise HTTPException(status_code=500, detail={"message": "Failed to store media", "error": str(e)})
    return stored_video, stored_thumb


def _version_doc(
    video_id: str, workspace_id: str, number: int, title: str, description: str,
    stored_video: dict, stored_thumb: Optional[dict], size: int, user_id: str,
) -> dict:
    return {
        "video_id": video_id,
        "workspace_id": workspace_id,
        "version_number": number,
        "title": title,
        "description": description,
        "video_url": stored_video["url"],
        "thumbnail_url": stored_thumb["url"] if stored_thumb else None,
        "storage_path": stored_video["path"],
        "storage_provider": stored_video["provider"],
        "file_size": size,
        "uploaded_by": user_id,
        "qualities": [{"quality": "source", "url": stored_video["url"]}],
        "created_at": utc_now(),
    }


async def _link_to_workspace(db, workspace_oid, video_id: str):
    # workspace.videos is a cache of the videos collection
    await db.workspaces.update_one(
        {"_id": workspace_oid},
        {"$addToSet": {"videos": video_id}, "$set": {"updated_at": utc_now()}},
    )


async def upload_video(
    db,
    storage,
    user_id: str,
    title: str,
    description: str,
    workspace_id: str,
    video_file: Optional[IncomingFile],
    thumb_file: Optional[IncomingFile] = None,
    base_url: str = "",
) -> dict:
    """Create a video in review with its first version."""
    if video_file is None:
        raise HTTPException(status_code=400, detail="No video file uploaded")
    if not title or not workspace_id:
        raise HTTPException(status_code=400, detail="Title and workspaceId are required")
    validate_upload(video_file)
    if thumb_file is not None:
        validate_upload(thumb_file, thumbnail=True)

    if not await db.users.find_one({"_id": user_id}):
        raise HTTPException(status_code=404, detail="User not found")
    access = await require_member(db, workspace_id, user_id)
    await _ensure_storage(storage)

    now = utc_now()
    video_doc = {
        "title": title,
        "description": description or "",
        "workspace_id": workspace_id,
        "owner": user_id,
        "status": VideoStatus.IN_REVIEW.value,
        "current_version": 1,
        "version_seq": 1,
        "published": False,
        "publish_meta": None,
        "created_at": now,
        "updated_at": now,
    }
    result = await db.videos.insert_one(video_doc)
    video_id = str(result.inserted_id)

    stored_video, stored_thumb = await _store_media(
        storage, workspace_id, video_id, video_file, thumb_file, base_url
    )
    await db.video_versions.insert_one(_version_doc(
        video_id, workspace_id, 1, title, description or "",
        stored_video, stored_thumb, video_file.size, user_id,
    ))

    try:
        await _link_to_workspace(db, access.workspace["_id"], video_id)
    except Exception as e:
        logger.warning(f"Could not append video {video_id} to workspace {workspace_id}: {e}")

    await fan_out_quietly(
        db, access.workspace, user_id,
        NotificationType.UPLOAD.value, f"New video uploaded: {title}", video_id,
    )

    logger.info(f"Video {video_id} uploaded to workspace {workspace_id} by {user_id}")
    return {"video": {"id": video_id, "workspaceId": workspace_id}}


async def allocate_version_number(db, video: dict) -> int:
    """Reserve the next version number with an atomic counter on the video."""
    if "version_seq" not in video:
        latest = await latest_version(db, str(video["_id"]))
        seed = latest.get("version_number", 0) if latest else 0
        await db.videos.update_one(
            {"_id": video["_id"], "version_seq": {"$exists": False}},
            {"$set": {"version_seq": seed}},
        )

    updated = await db.videos.find_one_and_update(
        {"_id": video["_id"]},
        {"$inc": {"version_seq": 1}},
        return_document=ReturnDocument.AFTER,
    )
    return updated["version_seq"]


async def release_version_number(db, video: dict, number: int):
    """Hand back an unused number, unless a later upload already took the next one."""
    await db.videos.update_one(
        {"_id": video["_id"], "version_seq": number},
        {"$inc": {"version_seq": -1}},
    )


async def upload_version(
    db,
    storage,
    user_id: str,
    video_id: str,
    title: str,
    description: str,
    video_file: Optional[IncomingFile],
    thumb_file: Optional[IncomingFile] = None,
    base_url: str = "",
) -> dict:
    if video_file is None:
        raise HTTPException(status_code=400, detail="No video file uploaded")
    validate_upload(video_file)
    if thumb_file is not None:
        validate_upload(thumb_file, thumbnail=True)

    video = await get_video_doc(db, video_id)
    workspace_id = video["workspace_id"]
    await require_member(db, workspace_id, user_id)
    await _ensure_storage(storage)

    # Bytes first, so a failed upload never consumes a version number
    stored_video, stored_thumb = await _store_media(
        storage, workspace_id, video_id, video_file, thumb_file, base_url
    )

    number = await allocate_version_number(db, video)
    version = _version_doc(
        video_id, workspace_id, number, title or f"Version {number}", description or "",
        stored_video, stored_thumb, video_file.size, user_id,
    )
    try:
        await db.video_versions.insert_one(version)
    except Exception:
        await release_version_number(db, video, number)
        raise

    # $max keeps current_version monotonic if uploads finish out of order
    await db.videos.update_one(
        {"_id": video["_id"]},
        {"$max": {"current_version": number}, "$set": {"updated_at": utc_now()}},
    )
    return {"version": serialize_doc(version)}


async def update_status(db, user_id: str, video_id: str, status: VideoStatus) -> dict:
    """Owner-only review transition; members are notified before returning."""
    video = await get_video_doc(db, video_id)
    access = await check_access(db, video["workspace_id"], user_id)
    if not access.is_owner:
        raise HTTPException(status_code=403, detail="Not authorized")

    updated = await db.videos.find_one_and_update(
        {"_id": video["_id"]},
        {"$set": {"status": status.value, "updated_at": utc_now()}},
        return_document=ReturnDocument.AFTER,
    )

    kind = NotificationType.APPROVAL if status == VideoStatus.APPROVED else NotificationType.STATUS
    await fan_out(
        db, access.workspace, user_id,
        kind.value, f"Video {status.value}: {video.get('title', '')}", video_id,
    )
    return public_video(updated)


async def publish_video(
    db, user_id: str, video_id: str,
    title: str = None, description: str = None, thumbnail_url: str = None,
) -> dict:
    """Mark a video published without pushing it to an external platform."""
    video = await get_video_doc(db, video_id)
    access = await check_access(db, video["workspace_id"], user_id)
    if not access.can_publish:
        raise HTTPException(status_code=403, detail="Only owner or publisher can publish")

    updated = await db.videos.find_one_and_update(
        {"_id": video["_id"]},
        {"$set": {
            "published": True,
            "status": VideoStatus.APPROVED.value,
            "updated_at": utc_now(),
            "publish_meta": {
                "title": title or video.get("title"),
                "description": description or video.get("description"),
                "thumbnail_url": thumbnail_url,
            },
        }},
        return_document=ReturnDocument.AFTER,
    )
    return public_video(updated)


async def _fetch_ordered(db, workspace_id: str) -> List[dict]:
    cursor = db.videos.find({"workspace_id": workspace_id}).sort("updated_at", -1)
    return [doc async for doc in cursor]


async def _fetch_unordered(db, workspace_id: str) -> List[dict]:
    cursor = db.videos.find({"workspace_id": workspace_id})
    docs = [doc async for doc in cursor]
    docs.sort(key=lambda d: to_millis(d.get("updated_at")), reverse=True)
    return docs


async def list_workspace_videos(db, user_id: str, workspace_id: str) -> List[dict]:
    await require_member(db, workspace_id, user_id)
    try:
        docs = await _fetch_ordered(db, workspace_id)
    except Exception as e:
        if not is_missing_index_error(e):
            raise
        logger.warning(f"Video listing fell back to in-memory sort: {e}")
        docs = await _fetch_unordered(db, workspace_id)
    return [public_video(doc) for doc in docs]


async def get_video(db, user_id: str, video_id: str) -> dict:
    """The video merged with the playable URL of its latest version."""
    video = await get_video_doc(db, video_id)
    await require_member(db, video["workspace_id"], user_id)

    latest = await latest_version(db, video_id)
    payload = public_video(video)
    payload["url"] = latest.get("video_url") if latest else None
    payload["version"] = (latest or {}).get("version_number") or video.get("current_version") or 1
    payload["latestVersion"] = serialize_doc(latest) if latest else None
    return payload


async def list_versions(db, user_id: str, video_id: str) -> List[dict]:
    video = await get_video_doc(db, video_id)
    await require_member(db, video["workspace_id"], user_id)

    cursor = db.video_versions.find({"video_id": video_id}).sort("version_number", -1)
    return [serialize_doc(doc) async for doc in cursor]
