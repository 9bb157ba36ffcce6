"""
Admin user management endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crowdlend.core.cache import Cache
from crowdlend.core.database import get_db
from crowdlend.core.dependencies import get_cache, require_admin
from crowdlend.modules.admin.schemas import ReasonRequest, UserAdminResponse
from crowdlend.modules.admin.services import AdminService
from crowdlend.modules.users.models import User

router = APIRouter(prefix="/users", tags=["admin-users"])


@router.post("/{user_id}/block", response_model=UserAdminResponse)
async def block_user(
    user_id: int,
    data: ReasonRequest,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    admin: User = Depends(require_admin)
):
    """Blocked users can no longer log in or call authenticated endpoints"""
    return await AdminService(db, cache).block_user(admin.id, user_id, data.reason)


@router.post("/{user_id}/unblock", response_model=UserAdminResponse)
async def unblock_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    admin: User = Depends(require_admin)
):
    return await AdminService(db, cache).unblock_user(admin.id, user_id)
