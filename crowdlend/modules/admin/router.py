"""
Admin module sub-routers organized by domain.
"""
from fastapi import APIRouter

from crowdlend.modules.admin.routers.dashboard import router as dashboard_router
from crowdlend.modules.admin.routers.campaigns import router as campaigns_router
from crowdlend.modules.admin.routers.loans import router as loans_router
from crowdlend.modules.admin.routers.users import router as users_router

# Main admin router
router = APIRouter(prefix="/api/v1/admin")

# Include all sub-routers
router.include_router(dashboard_router)
router.include_router(campaigns_router)
router.include_router(loans_router)
router.include_router(users_router)
