"""Tests for registration and login."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from herodex.db.models import User
from herodex.errors import AccountValidationError
from herodex.services.auth_service import (
    ACCOUNT_EXISTS,
    INVALID_CREDENTIALS,
    PASSWORDS_DO_NOT_MATCH,
    AuthService,
    hash_password,
    verify_password,
)


async def _user_count(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(User))
    return int(result.scalar_one())


def test_password_hash_round_trip() -> None:
    hashed = hash_password("correct horse", rounds=4)

    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_verify_password_rejects_malformed_hash() -> None:
    assert verify_password("anything", "not-a-bcrypt-hash") is False


@pytest.mark.asyncio
async def test_register_creates_account_with_lowercased_email(
    session: AsyncSession, auth_service: AuthService
) -> None:
    user = await auth_service.register("bruce", "Bruce@Example.COM", "hunter22", "hunter22")

    assert user.username == "bruce"
    assert user.email == "bruce@example.com"
    stored = await session.get(User, user.id)
    assert stored is not None
    assert stored.password_hash != "hunter22"


@pytest.mark.asyncio
async def test_register_rejects_mismatched_passwords(
    session: AsyncSession, auth_service: AuthService
) -> None:
    with pytest.raises(AccountValidationError, match=PASSWORDS_DO_NOT_MATCH):
        await auth_service.register("bruce", "bruce@example.com", "hunter22", "hunter23")

    assert await _user_count(session) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("username", "email"),
    [("bruce", "other@example.com"), ("other", "BRUCE@example.com")],
)
async def test_register_rejects_taken_username_or_email(
    session: AsyncSession, auth_service: AuthService, username: str, email: str
) -> None:
    await auth_service.register("bruce", "bruce@example.com", "hunter22", "hunter22")

    with pytest.raises(AccountValidationError, match=ACCOUNT_EXISTS):
        await auth_service.register(username, email, "hunter22", "hunter22")

    assert await _user_count(session) == 1


@pytest.mark.asyncio
async def test_register_rejects_blank_fields(auth_service: AuthService) -> None:
    with pytest.raises(AccountValidationError):
        await auth_service.register("  ", "bruce@example.com", "hunter22", "hunter22")


@pytest.mark.asyncio
@pytest.mark.parametrize("identifier", ["bruce", "BRUCE@example.com"])
async def test_authenticate_by_username_or_email(
    auth_service: AuthService, identifier: str
) -> None:
    created = await auth_service.register("bruce", "bruce@example.com", "hunter22", "hunter22")

    user = await auth_service.authenticate(identifier, "hunter22")

    assert user == created


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("identifier", "password"),
    [("bruce", "wrong"), ("nobody", "hunter22"), ("", "")],
)
async def test_authenticate_rejects_bad_credentials(
    auth_service: AuthService, identifier: str, password: str
) -> None:
    await auth_service.register("bruce", "bruce@example.com", "hunter22", "hunter22")

    with pytest.raises(AccountValidationError, match=INVALID_CREDENTIALS):
        await auth_service.authenticate(identifier, password)
