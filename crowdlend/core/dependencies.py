from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from crowdlend.core.cache import Cache, get_redis
from crowdlend.core.database import get_db
from crowdlend.core.exceptions import AuthenticationError, ForbiddenError
from crowdlend.core.permissions import UserRole, has_any_role
from crowdlend.core.security import decode_token
from crowdlend.modules.users.models import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


async def get_cache() -> Cache:
    """Cache port bound to the shared Redis pool"""
    return Cache(await get_redis())


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user from JWT token"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(token)
        user_id = int(payload["sub"])
    except (AuthenticationError, ValueError):
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise credentials_exception

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """Ensure user account is active and not blocked"""
    if not current_user.is_active or current_user.is_blocked:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive or blocked. Please contact support."
        )

    return current_user


def require_roles(*roles: UserRole):
    """Dependency factory: the user must hold at least one of the given roles"""

    async def checker(current_user: User = Depends(get_current_active_user)) -> User:
        if not has_any_role(current_user.roles, roles):
            raise ForbiddenError("Insufficient permissions")
        return current_user

    return checker


require_admin = require_roles(UserRole.ADMIN)
