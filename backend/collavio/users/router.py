from fastapi import APIRouter, Depends, HTTPException
from typing import Optional

from collavio.auth.dependencies import get_current_user
from collavio.database import get_db
from collavio.utils.helpers import utc_now, serialize_doc
from collavio.utils.schemas import CamelModel

router = APIRouter(prefix="/users", tags=["Users"])


class ProfileUpdate(CamelModel):
    display_name: Optional[str] = None
    photo_url: Optional[str] = None


def _profile(doc: dict) -> dict:
    user = serialize_doc(doc)
    return {
        "uid": user["id"],
        "email": user.get("email", ""),
        "displayName": user.get("displayName", ""),
        "photoUrl": user.get("photoUrl", ""),
        "createdAt": user.get("createdAt"),
        "updatedAt": user.get("updatedAt"),
    }


@router.get("/profile")
async def get_profile(current_user: dict = Depends(get_current_user)):
    return _profile(current_user)


@router.put("/profile")
async def update_profile(
    req: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    if not req.display_name and not req.photo_url:
        raise HTTPException(status_code=400, detail="No update data provided")

    update = {"updated_at": utc_now()}
    if req.display_name:
        update["display_name"] = req.display_name
    if req.photo_url:
        update["photo_url"] = req.photo_url

    await db.users.update_one({"_id": current_user["id"]}, {"$set": update})
    user = await db.users.find_one({"_id": current_user["id"]})
    return _profile(user)
