import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pymongo.errors import DuplicateKeyError

from collavio.auth.identity import InvalidTokenError
from collavio.database import get_db
from collavio.utils.helpers import utc_now

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_identity(request: Request):
    return request.app.state.identity


def new_user_doc(identity) -> dict:
    now = utc_now()
    return {
        "_id": identity.uid,
        "email": identity.email,
        "display_name": identity.display_name,
        "photo_url": identity.photo_url,
        "role": "creator",
        "workspaces": [],
        "created_at": now,
        "updated_at": now,
    }


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    identity_provider=Depends(get_identity),
):
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return await identity_provider.verify_token(credentials.credentials)
    except InvalidTokenError as e:
        logger.info(f"Rejected identity token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    identity=Depends(get_current_identity),
    db=Depends(get_db),
):
    user = await db.users.find_one({"_id": identity.uid})
    if user is None:
        # First authenticated request for this UID
        user = new_user_doc(identity)
        try:
            await db.users.insert_one(user)
        except DuplicateKeyError:
            user = await db.users.find_one({"_id": identity.uid})

    user["id"] = user["_id"]
    return user
