"""Notification service: workspace fan-out and read state."""

import logging
from typing import List, Optional

from fastapi import HTTPException

from collavio.database import run_atomic
from collavio.utils.helpers import utc_now, serialize_doc, to_object_id
from collavio.workspaces.service import recipients_for, require_member

logger = logging.getLogger(__name__)

MAX_LISTED = 50


def _notification(user_id: str, type: str, message: str, workspace_id: str = None, video_id: str = None) -> dict:
    return {
        "user_id": user_id,
        "type": type,
        "message": message,
        "workspace_id": workspace_id,
        "video_id": video_id,
        "read": False,
        "created_at": utc_now(),
    }


async def fan_out(
    db,
    workspace: dict,
    actor_id: str,
    type: str,
    message: str,
    video_id: Optional[str] = None,
) -> int:
    """One notification per workspace member except the actor, committed as one batch."""
    workspace_id = str(workspace["_id"])
    docs = [
        _notification(uid, type, message, workspace_id, video_id)
        for uid in recipients_for(workspace, exclude=actor_id)
    ]
    if not docs:
        return 0

    async def write(session):
        await db.notifications.insert_many(docs, session=session)

    await run_atomic(db, write)
    return len(docs)


async def fan_out_quietly(db, workspace: dict, actor_id: str, type: str, message: str, video_id: str = None) -> int:
    """Best-effort variant for side effects that must never fail the caller."""
    try:
        return await fan_out(db, workspace, actor_id, type, message, video_id)
    except Exception as e:
        logger.warning(f"Notification fan-out ({type}) for workspace {workspace.get('_id')} failed: {e}")
        return 0


async def create_notification(
    db,
    actor_id: str,
    type: str,
    message: str,
    user_id: str = None,
    workspace_id: str = None,
    video_id: str = None,
) -> dict:
    if workspace_id:
        access = await require_member(db, workspace_id, actor_id)
        count = await fan_out(db, access.workspace, actor_id, type, message, video_id)
        return {"message": f"{count} notifications created successfully", "count": count}

    if not user_id:
        raise HTTPException(status_code=400, detail="userId or workspaceId is required")

    result = await db.notifications.insert_one(_notification(user_id, type, message, None, video_id))
    return {"id": str(result.inserted_id), "message": "Notification created successfully", "count": 1}


async def list_notifications(db, user_id: str) -> List[dict]:
    cursor = db.notifications.find({"user_id": user_id}).sort("created_at", -1).limit(MAX_LISTED)
    items = []
    async for doc in cursor:
        items.append(serialize_doc(doc))
    return items


async def mark_as_read(db, notification_id: str, user_id: str) -> None:
    oid = to_object_id(notification_id)
    doc = await db.notifications.find_one({"_id": oid}) if oid else None
    if doc is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    if doc.get("user_id") != user_id:
        raise HTTPException(status_code=403, detail="Unauthorized")

    await db.notifications.update_one({"_id": oid}, {"$set": {"read": True}})


async def mark_all_as_read(db, user_id: str) -> int:
    result = await db.notifications.update_many(
        {"user_id": user_id, "read": False},
        {"$set": {"read": True}},
    )
    return result.modified_count
