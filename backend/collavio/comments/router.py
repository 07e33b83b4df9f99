from fastapi import APIRouter, Depends, status

from collavio.comments.schemas import CommentCreate
from collavio.comments import service
from collavio.auth.dependencies import get_current_user
from collavio.database import get_db

router = APIRouter(prefix="/comments", tags=["Comments"])


@router.post("/{video_id}", status_code=status.HTTP_201_CREATED)
async def add_comment(
    video_id: str,
    req: CommentCreate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.add_comment(
        db, current_user["id"], video_id,
        content=req.content, timestamp=req.timestamp, workspace_id=req.workspace_id,
    )


@router.get("/{video_id}")
async def list_comments(
    video_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.list_comments(db, current_user["id"], video_id)
