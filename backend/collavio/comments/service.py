"""Comment service: timestamped review comments on videos."""

import logging
from typing import List

from fastapi import HTTPException

from collavio.database import is_missing_index_error
from collavio.notifications.schemas import NotificationType
from collavio.notifications.service import fan_out_quietly
from collavio.utils.helpers import utc_now, serialize_doc
from collavio.videos.service import get_video_doc
from collavio.workspaces.service import require_member

logger = logging.getLogger(__name__)


async def add_comment(db, user_id: str, video_id: str, content: str, timestamp: float, workspace_id: str = None) -> dict:
    video = await get_video_doc(db, video_id)
    if workspace_id and workspace_id != video["workspace_id"]:
        raise HTTPException(status_code=400, detail="Video does not belong to that workspace")
    access = await require_member(db, video["workspace_id"], user_id)

    user = await db.users.find_one({"_id": user_id})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    now = utc_now()
    doc = {
        "content": content,
        "timestamp": timestamp,
        "video_id": video_id,
        "workspace_id": video["workspace_id"],
        # Snapshot of the author at comment time
        "author": {
            "uid": user_id,
            "display_name": user.get("display_name") or "",
            "photo_url": user.get("photo_url") or "",
        },
        "created_at": now,
        "updated_at": now,
    }
    result = await db.comments.insert_one(doc)
    doc["_id"] = result.inserted_id

    await fan_out_quietly(
        db, access.workspace, user_id,
        NotificationType.COMMENT.value,
        f"New comment on {video.get('title', 'a video')}",
        video_id,
    )
    return serialize_doc(doc)


async def list_comments(db, user_id: str, video_id: str) -> List[dict]:
    video = await get_video_doc(db, video_id)
    await require_member(db, video["workspace_id"], user_id, "You do not have access to this video")

    try:
        cursor = db.comments.find({"video_id": video_id}).sort("timestamp", 1)
        docs = [doc async for doc in cursor]
    except Exception as e:
        if not is_missing_index_error(e):
            raise
        logger.warning(f"Comment listing fell back to in-memory sort: {e}")
        docs = [doc async for doc in db.comments.find({"video_id": video_id})]
        docs.sort(key=lambda d: d.get("timestamp") or 0)

    return [serialize_doc(doc) for doc in docs]
