from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from typing import Optional
import logging

from crowdlend.core.exceptions import (
    AuthenticationError, ConflictError, ForbiddenError, NotFoundError
)
from crowdlend.core.ledger import utcnow
from crowdlend.core.security import (
    get_password_hash,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token
)
from crowdlend.modules.users.models import User
from crowdlend.modules.users import schemas

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for signup, login and profile management"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def require_user(self, user_id: int) -> User:
        user = await self.get_user(user_id)
        if not user:
            raise NotFoundError("User not found", "USER_NOT_FOUND")
        return user

    async def signup(self, data: schemas.SignupRequest) -> schemas.AuthResponse:
        """Register a new user and issue tokens"""
        if await self.get_user_by_email(data.email):
            raise ConflictError("Email already registered", "EMAIL_EXISTS")

        user = User(
            email=data.email,
            hashed_password=get_password_hash(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            roles=[role.value for role in data.roles]
        )

        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
        except IntegrityError:
            # Lost a race with a concurrent signup for the same email
            await self.db.rollback()
            raise ConflictError("Email already registered", "EMAIL_EXISTS")

        logger.info(f"User {user.id} registered with roles {user.roles}")
        return self._auth_response(user)

    async def login(self, data: schemas.LoginRequest) -> schemas.AuthResponse:
        """Authenticate with email and password"""
        user = await self.get_user_by_email(data.email)

        if not user or not verify_password(data.password, user.hashed_password):
            raise AuthenticationError("Invalid credentials", "INVALID_CREDENTIALS")

        if not user.is_active or user.is_blocked:
            raise ForbiddenError("Account is inactive or blocked", "ACCOUNT_INACTIVE")

        user.last_login_at = utcnow()
        await self.db.commit()
        await self.db.refresh(user)

        return self._auth_response(user)

    async def refresh(self, refresh_token: str) -> schemas.AuthResponse:
        """Exchange a refresh token for a new token pair"""
        payload = decode_token(refresh_token, expected_type="refresh")
        user = await self.get_user(int(payload["sub"]))

        if not user or not user.is_active or user.is_blocked:
            raise AuthenticationError("Invalid refresh token", "INVALID_TOKEN")

        return self._auth_response(user)

    async def update_profile(self, user_id: int, data: schemas.ProfileUpdate) -> User:
        user = await self.require_user(user_id)

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(user, field, value)

        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def change_password(self, user_id: int, old_password: str, new_password: str) -> None:
        user = await self.require_user(user_id)

        if not verify_password(old_password, user.hashed_password):
            raise AuthenticationError("Current password is incorrect", "INVALID_PASSWORD")

        user.hashed_password = get_password_hash(new_password)
        await self.db.commit()

    @staticmethod
    def create_tokens(user: User) -> dict:
        claims = {"sub": str(user.id), "email": user.email, "roles": list(user.roles)}
        return {
            "access_token": create_access_token(claims),
            "refresh_token": create_refresh_token(claims),
        }

    def _auth_response(self, user: User) -> schemas.AuthResponse:
        return schemas.AuthResponse(
            user=schemas.UserSummary.model_validate(user),
            **self.create_tokens(user)
        )
