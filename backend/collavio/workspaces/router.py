from fastapi import APIRouter, Depends, status

from collavio.workspaces.schemas import WorkspaceCreate, WorkspaceUpdate, AddMemberRequest
from collavio.workspaces import service
from collavio.auth.dependencies import get_current_user
from collavio.database import get_db

router = APIRouter(prefix="/workspaces", tags=["Workspaces"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_workspace(
    req: WorkspaceCreate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.create_workspace(db, req.name, req.description, current_user["id"])


@router.get("/user")
async def list_user_workspaces(
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.list_user_workspaces(db, current_user["id"])


@router.get("/{workspace_id}")
async def get_workspace(
    workspace_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.get_workspace(db, workspace_id, current_user["id"])


@router.put("/{workspace_id}")
async def update_workspace(
    workspace_id: str,
    req: WorkspaceUpdate,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.update_workspace(
        db, workspace_id, current_user["id"],
        name=req.name, description=req.description, integrations=req.integrations,
    )


@router.delete("/{workspace_id}")
async def delete_workspace(
    workspace_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    await service.delete_workspace(db, workspace_id, current_user["id"])
    return {"message": "Workspace deleted successfully"}


@router.get("/{workspace_id}/members")
async def get_members(
    workspace_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.list_members(db, workspace_id, current_user["id"])


@router.post("/{workspace_id}/members")
async def add_member(
    workspace_id: str,
    req: AddMemberRequest,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.add_member(db, workspace_id, current_user["id"], req.email)


@router.delete("/{workspace_id}/members/{user_id}")
async def remove_member(
    workspace_id: str,
    user_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    await service.remove_member(db, workspace_id, current_user["id"], user_id)
    return {"message": "Member removed successfully"}


@router.post("/{workspace_id}/publishers/{user_id}")
async def grant_publisher(
    workspace_id: str,
    user_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.grant_publisher(db, workspace_id, current_user["id"], user_id)


@router.delete("/{workspace_id}/publishers/{user_id}")
async def revoke_publisher(
    workspace_id: str,
    user_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    return await service.revoke_publisher(db, workspace_id, current_user["id"], user_id)
