from fastapi import APIRouter, Depends, Query
from typing import Optional

from collavio.integrations.schemas import ConnectRequest, YTClonePublishRequest
from collavio.integrations import service
from collavio.integrations.ytclone_client import get_ytclone_client
from collavio.auth.dependencies import get_current_user
from collavio.database import get_db

router = APIRouter(prefix="/integrations", tags=["Integrations"])


@router.get("/youtube-clone/status")
async def get_ytclone_status(
    workspace_id: str = Query(..., min_length=1, alias="workspaceId"),
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.get_status(db, current_user["id"], workspace_id)


@router.post("/youtube-clone/connect")
async def connect_ytclone(
    req: ConnectRequest,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
    client=Depends(get_ytclone_client),
):
    """Link a workspace to a YouTube Clone channel by token or by channel secret."""
    return await service.connect(db, client, current_user["id"], req)


@router.post("/youtube-clone/publish/{video_id}")
async def publish_to_ytclone(
    video_id: str,
    req: Optional[YTClonePublishRequest] = None,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
    client=Depends(get_ytclone_client),
):
    req = req or YTClonePublishRequest()
    return await service.publish(
        db, client, current_user["id"], video_id,
        title=req.title, description=req.description,
    )
