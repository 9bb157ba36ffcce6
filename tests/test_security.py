"""
Unit tests for tokens, password hashing, role checks and the cache port
"""
import pytest
from datetime import timedelta
from unittest.mock import AsyncMock
from redis.exceptions import RedisError

from crowdlend.core.cache import Cache, CacheKeys
from crowdlend.core.exceptions import AuthenticationError
from crowdlend.core.permissions import UserRole, has_any_role
from crowdlend.core.security import (
    create_access_token, create_refresh_token, decode_token,
    get_password_hash, verify_password
)


class TestPasswords:

    @pytest.mark.unit
    def test_hash_and_verify(self):
        hashed = get_password_hash("CorrectHorse9")
        assert hashed != "CorrectHorse9"
        assert verify_password("CorrectHorse9", hashed)
        assert not verify_password("WrongHorse9", hashed)


class TestTokens:

    @pytest.mark.unit
    def test_access_token_round_trip(self):
        token = create_access_token({"sub": "7", "email": "a@crowdlend.io", "roles": ["LENDER"]})
        payload = decode_token(token)

        assert payload["sub"] == "7"
        assert payload["roles"] == ["LENDER"]
        assert payload["type"] == "access"

    @pytest.mark.unit
    def test_refresh_token_is_not_an_access_token(self):
        token = create_refresh_token({"sub": "7"})

        assert decode_token(token, expected_type="refresh")["sub"] == "7"
        with pytest.raises(AuthenticationError):
            decode_token(token)

    @pytest.mark.unit
    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "7"}, expires_delta=timedelta(seconds=-1))
        with pytest.raises(AuthenticationError):
            decode_token(token)

    @pytest.mark.unit
    def test_garbage_token_rejected(self):
        with pytest.raises(AuthenticationError) as exc_info:
            decode_token("not-a-jwt")
        assert exc_info.value.code == "INVALID_TOKEN"

    @pytest.mark.unit
    def test_token_without_subject_rejected(self):
        token = create_access_token({"email": "a@crowdlend.io"})
        with pytest.raises(AuthenticationError):
            decode_token(token)


class TestRoles:

    @pytest.mark.unit
    def test_intersection(self):
        assert has_any_role(["LENDER", "BORROWER"], [UserRole.BORROWER])
        assert has_any_role([UserRole.ADMIN], ["ADMIN"])

    @pytest.mark.unit
    def test_disjoint_sets(self):
        assert not has_any_role(["LENDER"], [UserRole.ADMIN, UserRole.BORROWER])

    @pytest.mark.unit
    def test_empty_roles(self):
        assert not has_any_role([], [UserRole.ADMIN])
        assert not has_any_role(None, [UserRole.ADMIN])


class TestCache:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_decodes_json(self, cache, redis_mock):
        redis_mock.get.return_value = '{"id": 1}'
        assert await cache.get("campaign:1") == {"id": 1}

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_errors_are_misses(self):
        redis = AsyncMock()
        redis.get.side_effect = RedisError("down")
        redis.set.side_effect = RedisError("down")
        redis.delete.side_effect = RedisError("down")
        redis.keys.side_effect = RedisError("down")
        cache = Cache(redis)

        assert await cache.get("campaign:1") is None
        await cache.set("campaign:1", {"id": 1})
        await cache.delete("campaign:1")
        await cache.delete_pattern(CacheKeys.CAMPAIGN_LISTS)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_delete_pattern(self, cache, redis_mock):
        redis_mock.keys.return_value = ["campaigns:list:1:20:", "campaigns:list:2:20:"]

        await cache.delete_pattern(CacheKeys.CAMPAIGN_LISTS)

        redis_mock.delete.assert_awaited_once_with("campaigns:list:1:20:", "campaigns:list:2:20:")

    @pytest.mark.unit
    def test_keys(self):
        assert CacheKeys.campaign(5) == "campaign:5"
        assert CacheKeys.loan(9) == "loan:9"
        assert CacheKeys.campaigns(1, 20, "ACTIVE|").startswith("campaigns:")
