"""
Admin dashboard endpoints.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crowdlend.core.cache import Cache
from crowdlend.core.database import get_db
from crowdlend.core.dependencies import get_cache, require_admin
from crowdlend.modules.admin.schemas import AuditLogListResponse, DashboardStats
from crowdlend.modules.admin.services import AdminService
from crowdlend.modules.users.models import User

router = APIRouter(tags=["admin-dashboard"])


@router.get("/dashboard", response_model=DashboardStats)
async def get_dashboard_stats(
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    admin: User = Depends(require_admin)
):
    """Platform-wide totals for users, campaigns, loans and the ledger"""
    return await AdminService(db, cache).dashboard_stats()


@router.get("/audit-logs", response_model=AuditLogListResponse)
async def get_audit_logs(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
    admin: User = Depends(require_admin)
):
    """Newest first"""
    logs, total = await AdminService(db, cache).audit_logs(limit, offset)
    return {"logs": logs, "total": total, "limit": limit, "offset": offset}
