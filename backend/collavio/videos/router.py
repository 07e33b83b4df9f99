from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from typing import Optional

from collavio.auth.dependencies import get_current_user
from collavio.config import settings
from collavio.database import get_db
from collavio.storage.unified import IncomingFile, get_storage
from collavio.videos import service
from collavio.videos.schemas import StatusUpdate, PublishRequest

router = APIRouter(prefix="/videos", tags=["Videos"])


async def read_upload(upload: Optional[UploadFile]) -> Optional[IncomingFile]:
    if upload is None or not upload.filename:
        return None
    # One byte past the limit is enough to detect an oversized file
    data = await upload.read(settings.MAX_UPLOAD_BYTES + 1)
    return IncomingFile(
        filename=upload.filename,
        content_type=upload.content_type or "",
        data=data,
    )


@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_video(
    request: Request,
    video: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    description: str = Form(""),
    workspace_id: Optional[str] = Form(None, alias="workspaceId"),
    version: str = Form("1"),  # ignored: new videos always start at version 1
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
    storage=Depends(get_storage),
):
    """Upload a new video into a workspace as version 1."""
    return await service.upload_video(
        db, storage,
        user_id=current_user["id"],
        title=title,
        description=description,
        workspace_id=workspace_id,
        video_file=await read_upload(video),
        thumb_file=await read_upload(thumbnail),
        base_url=str(request.base_url),
    )


@router.post("/{video_id}/versions", status_code=status.HTTP_201_CREATED)
async def upload_version(
    video_id: str,
    request: Request,
    video: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    title: str = Form(""),
    description: str = Form(""),
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
    storage=Depends(get_storage),
):
    """Append a new version to an existing video."""
    return await service.upload_version(
        db, storage,
        user_id=current_user["id"],
        video_id=video_id,
        title=title,
        description=description,
        video_file=await read_upload(video),
        thumb_file=await read_upload(thumbnail),
        base_url=str(request.base_url),
    )


@router.patch("/{video_id}/status")
async def update_status(
    video_id: str,
    req: StatusUpdate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.update_status(db, current_user["id"], video_id, req.status)


@router.post("/{video_id}/publish")
async def publish_video(
    video_id: str,
    req: Optional[PublishRequest] = None,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    req = req or PublishRequest()
    return await service.publish_video(
        db, current_user["id"], video_id,
        title=req.title, description=req.description, thumbnail_url=req.thumbnail_url,
    )


@router.get("/workspace/{workspace_id}")
async def list_workspace_videos(
    workspace_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.list_workspace_videos(db, current_user["id"], workspace_id)


@router.get("/{video_id}/versions")
async def list_versions(
    video_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.list_versions(db, current_user["id"], video_id)


@router.get("/{video_id}")
async def get_video(
    video_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.get_video(db, current_user["id"], video_id)
