"""Workspace service: access checks, CRUD, members and publish rights."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from fastapi import HTTPException
from pydantic.alias_generators import to_snake
from pymongo import ReturnDocument

from collavio.database import run_atomic
from collavio.utils.helpers import utc_now, serialize_doc, to_object_id
from collavio.workspaces.schemas import MemberResponse

logger = logging.getLogger(__name__)


@dataclass
class WorkspaceAccess:
    workspace: dict
    user_id: str
    is_owner: bool
    is_member: bool

    @property
    def can_publish(self) -> bool:
        return self.is_owner or self.user_id in (self.workspace.get("publishers") or [])

    @property
    def workspace_id(self) -> str:
        return str(self.workspace["_id"])


def is_member(workspace: dict, user_id: str) -> bool:
    return workspace.get("owner") == user_id or user_id in (workspace.get("members") or [])


def recipients_for(workspace: dict, exclude: Optional[str] = None) -> List[str]:
    """Owner plus members, de-duplicated in stable order, minus `exclude`."""
    uids = [workspace.get("owner")] + list(workspace.get("members") or [])
    seen = []
    for uid in uids:
        if uid and uid != exclude and uid not in seen:
            seen.append(uid)
    return seen


def public_workspace(doc: dict) -> dict:
    """Serialize a workspace, hiding stored integration credentials."""
    result = serialize_doc(doc)
    integrations = dict(result.get("integrations") or {})
    clone = integrations.get("youtubeClone")
    if clone:
        integrations["youtubeClone"] = {
            k: v for k, v in clone.items() if k not in ("token", "channelLinkSecret")
        }
    result["integrations"] = integrations
    return result


async def get_workspace_doc(db, workspace_id: str) -> dict:
    oid = to_object_id(workspace_id)
    workspace = await db.workspaces.find_one({"_id": oid}) if oid else None
    if workspace is None:
        raise HTTPException(status_code=404, detail="Workspace not found")
    return workspace


async def check_access(db, workspace_id: str, user_id: str) -> WorkspaceAccess:
    """Resolve the caller's standing in a workspace. 404 if it does not exist."""
    workspace = await get_workspace_doc(db, workspace_id)
    return WorkspaceAccess(
        workspace=workspace,
        user_id=user_id,
        is_owner=workspace.get("owner") == user_id,
        is_member=is_member(workspace, user_id),
    )


async def require_member(
    db, workspace_id: str, user_id: str,
    detail: str = "You do not have access to this workspace",
) -> WorkspaceAccess:
    access = await check_access(db, workspace_id, user_id)
    if not access.is_member:
        raise HTTPException(status_code=403, detail=detail)
    return access


async def require_owner(db, workspace_id: str, user_id: str, detail: str) -> WorkspaceAccess:
    access = await check_access(db, workspace_id, user_id)
    if not access.is_owner:
        raise HTTPException(status_code=403, detail=detail)
    return access


async def create_workspace(db, name: str, description: str, owner_id: str) -> dict:
    if not await db.users.find_one({"_id": owner_id}):
        raise HTTPException(status_code=404, detail="User not found")

    now = utc_now()
    doc = {
        "name": name,
        "description": description,
        "owner": owner_id,
        "members": [owner_id],
        "publishers": [],
        "videos": [],
        "integrations": {"youtube_clone": None},
        "created_at": now,
        "updated_at": now,
    }
    result = await db.workspaces.insert_one(doc)
    doc["_id"] = result.inserted_id

    await db.users.update_one(
        {"_id": owner_id},
        {"$addToSet": {"workspaces": str(result.inserted_id)}, "$set": {"updated_at": now}},
    )
    logger.info(f"Workspace {result.inserted_id} created by {owner_id}")
    return public_workspace(doc)


async def get_workspace(db, workspace_id: str, user_id: str) -> dict:
    access = await require_member(db, workspace_id, user_id, "Not authorized to access this workspace")
    return public_workspace(access.workspace)


async def list_user_workspaces(db, user_id: str) -> List[dict]:
    cursor = db.workspaces.find({"members": user_id})
    workspaces = []
    async for doc in cursor:
        workspaces.append(public_workspace(doc))
    return workspaces


async def update_workspace(
    db, workspace_id: str, user_id: str,
    name: str = None, description: str = None, integrations: dict = None,
) -> dict:
    access = await require_owner(db, workspace_id, user_id, "Not authorized to update this workspace")

    update = {"$set": {"updated_at": utc_now()}}
    if name:
        update["$set"]["name"] = name
    if description is not None:
        update["$set"]["description"] = description
    # Merge per integration key so untouched integrations survive
    for key, value in (integrations or {}).items():
        update["$set"][f"integrations.{to_snake(key)}"] = value

    result = await db.workspaces.find_one_and_update(
        {"_id": access.workspace["_id"]},
        update,
        return_document=ReturnDocument.AFTER,
    )
    return public_workspace(result)


async def delete_workspace(db, workspace_id: str, user_id: str) -> None:
    """Delete a workspace and detach it from every member's list.

    Videos, versions and comments of the workspace are left in place.
    """
    access = await require_owner(db, workspace_id, user_id, "Not authorized to delete this workspace")
    workspace = access.workspace

    affected = recipients_for(workspace)

    async def write(session):
        # Workspace first: an unsessioned partial failure leaves only stale user refs
        await db.workspaces.delete_one({"_id": workspace["_id"]}, session=session)
        await db.users.update_many(
            {"_id": {"$in": affected}},
            {"$pull": {"workspaces": workspace_id}, "$set": {"updated_at": utc_now()}},
            session=session,
        )

    await run_atomic(db, write)
    logger.info(f"Workspace {workspace_id} deleted by {user_id}")


async def list_members(db, workspace_id: str, user_id: str) -> List[dict]:
    access = await require_member(db, workspace_id, user_id, "Not authorized to view members")
    workspace = access.workspace
    publishers = workspace.get("publishers") or []

    members = []
    async for user in db.users.find({"_id": {"$in": recipients_for(workspace)}}):
        members.append(MemberResponse(
            uid=user["_id"],
            email=user.get("email") or "",
            display_name=user.get("display_name") or "",
            photo_url=user.get("photo_url") or "",
            role=user.get("role") or "creator",
            is_owner=user["_id"] == workspace.get("owner"),
            can_publish=user["_id"] in publishers,
        ))

    # Owner first, then alphabetical by display name
    members.sort(key=lambda m: (not m.is_owner, m.display_name.lower()))
    return [m.model_dump(by_alias=True) for m in members]


async def add_member(db, workspace_id: str, user_id: str, email: str) -> dict:
    access = await require_owner(db, workspace_id, user_id, "Not authorized to add members")

    user = await db.users.find_one({"email": email})
    if not user:
        raise HTTPException(status_code=404, detail="User with that email not found")
    if is_member(access.workspace, user["_id"]):
        raise HTTPException(status_code=400, detail="User is already a member of this workspace")

    now = utc_now()
    result = await db.workspaces.find_one_and_update(
        {"_id": access.workspace["_id"]},
        {"$addToSet": {"members": user["_id"]}, "$set": {"updated_at": now}},
        return_document=ReturnDocument.AFTER,
    )
    await db.users.update_one(
        {"_id": user["_id"]},
        {"$addToSet": {"workspaces": workspace_id}, "$set": {"updated_at": now}},
    )
    return public_workspace(result)


async def remove_member(db, workspace_id: str, user_id: str, member_id: str) -> None:
    access = await require_owner(db, workspace_id, user_id, "Not authorized to remove members")
    if member_id == access.workspace.get("owner"):
        raise HTTPException(status_code=400, detail="The workspace owner cannot be removed")

    now = utc_now()
    # One document update keeps members and publishers consistent
    await db.workspaces.update_one(
        {"_id": access.workspace["_id"]},
        {"$pull": {"members": member_id, "publishers": member_id}, "$set": {"updated_at": now}},
    )
    await db.users.update_one(
        {"_id": member_id},
        {"$pull": {"workspaces": workspace_id}, "$set": {"updated_at": now}},
    )


async def grant_publisher(db, workspace_id: str, user_id: str, member_id: str) -> dict:
    access = await require_owner(db, workspace_id, user_id, "Only owner can change publish permissions")
    if member_id not in (access.workspace.get("members") or []):
        raise HTTPException(status_code=400, detail="User is not a member of this workspace")

    result = await db.workspaces.find_one_and_update(
        {"_id": access.workspace["_id"]},
        {"$addToSet": {"publishers": member_id}, "$set": {"updated_at": utc_now()}},
        return_document=ReturnDocument.AFTER,
    )
    return public_workspace(result)


async def revoke_publisher(db, workspace_id: str, user_id: str, member_id: str) -> dict:
    access = await require_owner(db, workspace_id, user_id, "Only owner can change publish permissions")

    result = await db.workspaces.find_one_and_update(
        {"_id": access.workspace["_id"]},
        {"$pull": {"publishers": member_id}, "$set": {"updated_at": utc_now()}},
        return_document=ReturnDocument.AFTER,
    )
    return public_workspace(result)
