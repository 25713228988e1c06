"""
Role management API routes.

Thin HTTP layer over RoleService: list, read, create, replace and delete
roles, and resolve a role's ancestors.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from rolegraph.core.database.engine import get_db
from rolegraph.features.permissions.store import PermissionStore
from rolegraph.features.policies.backend import SqlPolicyBackend
from rolegraph.features.roles.identity import format_id
from rolegraph.features.roles.schemas import RoleCreate, RoleResponse, RoleUpdate
from rolegraph.features.roles.service import RoleService, get_masked_roles
from rolegraph.features.roles.store import RoleStore
from rolegraph.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


def get_role_service(db: AsyncSession = Depends(get_db)) -> RoleService:
    """Wire the stores and policy backend onto the request's session."""
    roles = RoleStore(db)
    return RoleService(roles, PermissionStore(db), SqlPolicyBackend(db, roles))


@router.get("", response_model=List[RoleResponse])
async def list_roles(
    owner: Optional[str] = None,
    user: Optional[str] = None,
    prefix: Optional[str] = None,
    masked: bool = False,
    service: RoleService = Depends(get_role_service),
):
    """List roles of an owner, optionally by name prefix, or the roles granted to a user."""
    if user:
        return await service.get_roles_by_user(user)
    if not owner:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="owner or user is required"
        )

    if prefix:
        roles = await service.get_roles_by_name_prefix(owner, prefix)
    else:
        roles = await service.get_roles(owner)
    return get_masked_roles(roles) if masked else roles


@router.get("/count")
async def count_roles(owner: str = Query(..., min_length=1), service: RoleService = Depends(get_role_service)):
    return {"owner": owner, "count": await service.get_role_count(owner)}


@router.get("/{owner}/{name}", response_model=RoleResponse)
async def get_role(owner: str, name: str, service: RoleService = Depends(get_role_service)):
    role = await service.get_role(format_id(owner, name))
    if role is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
    return role


@router.get("/{owner}/{name}/ancestors", response_model=List[RoleResponse])
async def get_role_ancestors(owner: str, name: str, service: RoleService = Depends(get_role_service)):
    """Roles of the same owner that directly or indirectly contain this role."""
    role_id = format_id(owner, name)
    if await service.get_role(role_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
    return get_masked_roles(await service.get_ancestor_roles(role_id))


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(payload: RoleCreate, service: RoleService = Depends(get_role_service)):
    role_id = format_id(payload.owner, payload.name)
    if await service.get_role(role_id) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Role with this owner and name already exists"
        )

    await service.add_role(payload.to_model())
    return await service.get_role(role_id)


@router.put("/{owner}/{name}", response_model=RoleResponse)
async def update_role(owner: str, name: str, payload: RoleUpdate, service: RoleService = Depends(get_role_service)):
    """Replace a role. Renaming also rewrites every reference to it."""
    role = payload.to_model(owner)
    if not await service.update_role(format_id(owner, name), role):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not updated")
    return await service.get_role(role.get_id())


@router.delete("/{owner}/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(owner: str, name: str, service: RoleService = Depends(get_role_service)):
    role = await service.get_role(format_id(owner, name))
    if role is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Role not found")
    await service.delete_role(role)
