from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from crowdlend.core.database import get_db
from crowdlend.core.dependencies import get_current_active_user
from crowdlend.modules.users.models import User
from crowdlend.modules.users import schemas
from crowdlend.modules.users.services import UserService

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/signup", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    data: schemas.SignupRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Register a new user.

    - Roles: any of CAMPAIGN_CREATOR, LENDER, BORROWER
    - Returns access and refresh tokens
    """
    return await UserService(db).signup(data)


@router.post("/login", response_model=schemas.AuthResponse)
async def login(
    data: schemas.LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login with email and password"""
    return await UserService(db).login(data)


@router.post("/refresh", response_model=schemas.AuthResponse)
async def refresh_tokens(
    data: schemas.RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    """Exchange a refresh token for a new token pair"""
    return await UserService(db).refresh(data.refresh_token)


@router.get("/profile", response_model=schemas.UserProfileResponse)
async def get_profile(current_user: User = Depends(get_current_active_user)):
    """Get current user's profile"""
    return current_user


@router.put("/profile", response_model=schemas.UserProfileResponse)
async def update_profile(
    data: schemas.ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Update profile information.

    - Email and roles cannot be changed here
    """
    return await UserService(db).update_profile(current_user.id, data)


@router.post("/change-password")
async def change_password(
    data: schemas.ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    await UserService(db).change_password(current_user.id, data.old_password, data.new_password)
    return {"message": "Password changed successfully"}
