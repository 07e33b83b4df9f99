from fastapi import APIRouter, Depends
from typing import Optional
from pymongo.errors import DuplicateKeyError

from collavio.auth.schemas import RegisterRequest, UserResponse, AuthResponse
from collavio.auth.dependencies import get_current_identity, get_current_user, new_user_doc
from collavio.database import get_db
from collavio.utils.helpers import utc_now

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=AuthResponse)
async def register_or_login(
    req: Optional[RegisterRequest] = None,
    identity=Depends(get_current_identity),
    db=Depends(get_db),
):
    """Create the caller's user record, or fill profile gaps on an existing one."""
    req = req or RegisterRequest()
    # Token claims win over the client-supplied body
    display_name = (identity.display_name or req.display_name or "").strip()
    photo_url = identity.photo_url or req.photo_url or ""
    email = identity.email or req.email or ""

    user = await db.users.find_one({"_id": identity.uid})
    if user is None:
        user = new_user_doc(identity)
        user.update({"display_name": display_name, "photo_url": photo_url, "email": email})
        try:
            await db.users.insert_one(user)
            return AuthResponse(user=UserResponse.from_doc(user))
        except DuplicateKeyError:
            # A concurrent first request created the record; fill its gaps below
            user = await db.users.find_one({"_id": identity.uid})

    patch = {}
    if not user.get("display_name") and display_name:
        patch["display_name"] = display_name
    if not user.get("photo_url") and photo_url:
        patch["photo_url"] = photo_url
    if not user.get("email") and email:
        patch["email"] = email
    if patch:
        patch["updated_at"] = utc_now()
        await db.users.update_one({"_id": identity.uid}, {"$set": patch})
        user.update(patch)

    return AuthResponse(user=UserResponse.from_doc(user))


@router.get("/me", response_model=AuthResponse)
async def get_me(current_user: dict = Depends(get_current_user)):
    return AuthResponse(user=UserResponse.from_doc(current_user))
