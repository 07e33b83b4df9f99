from fastapi import APIRouter, Depends, status

from collavio.notifications.schemas import NotificationCreate
from collavio.notifications import service
from collavio.auth.dependencies import get_current_user
from collavio.database import get_db

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_notification(
    req: NotificationCreate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.create_notification(
        db,
        actor_id=current_user["id"],
        type=req.type,
        message=req.message,
        user_id=req.user_id,
        workspace_id=req.workspace_id,
        video_id=req.video_id,
    )


@router.get("")
async def list_notifications(
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.list_notifications(db, current_user["id"])


@router.put("/read-all")
async def mark_all_as_read(
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    updated = await service.mark_all_as_read(db, current_user["id"])
    return {"message": "All notifications marked as read", "updated": updated}


@router.put("/{notification_id}/read")
async def mark_as_read(
    notification_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    await service.mark_as_read(db, notification_id, current_user["id"])
    return {"message": "Notification marked as read"}
