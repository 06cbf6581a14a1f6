"""
Authentication and roles

Users sign in with email and password and receive a bearer token.
Readers may browse; admins may change the glossary and manage users.
"""
import uuid
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from loguru import logger

from config import settings
from database import get_db, UserRepository, UserModel, UserRoleEnum
from utils.encryption import issue_token, read_token, hash_password, verify_password

MIN_PASSWORD_LENGTH = 8

# Missing or non-bearer credentials reach require_user as None
bearer_scheme = HTTPBearer(auto_error=False)


class AuthError(Exception):
    """Raised when registration or login fails"""


def role_for_email(email: str) -> str:
    """The configured admin email gets the admin role, everyone else reads"""
    if settings.ADMIN_EMAIL and email.lower() == settings.ADMIN_EMAIL.lower():
        return UserRoleEnum.ADMIN.value
    return UserRoleEnum.READER.value


async def register_user(email: str, password: str) -> UserModel:
    """
    Create a user profile.

    Raises:
        AuthError: if the email is taken or the password is too short
    """
    email = email.strip().lower()
    if len(password) < MIN_PASSWORD_LENGTH:
        raise AuthError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    async with get_db() as session:
        repo = UserRepository(session)
        if await repo.get_by_email(email):
            raise AuthError("Email already registered")
        user = await repo.create(
            user_id=str(uuid.uuid4()),
            email=email,
            password_hash=hash_password(password),
            role=role_for_email(email),
        )
    return user


async def authenticate(email: str, password: str) -> Optional[str]:
    """Return an access token for valid credentials, otherwise None"""
    async with get_db() as session:
        user = await UserRepository(session).get_by_email(email.strip())

    if user is None or not verify_password(password, user.password_hash):
        logger.info(f"Failed login attempt for {email}")
        return None
    return issue_token(user.id)


async def require_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> UserModel:
    """FastAPI dependency: the signed-in user (401 otherwise)"""
    user_id = read_token(credentials.credentials) if credentials else None
    if not user_id:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    async with get_db() as session:
        user = await UserRepository(session).get(user_id)

    if user is None:
        raise HTTPException(status_code=401, detail="User no longer exists")
    return user


async def require_admin(user: UserModel = Depends(require_user)) -> UserModel:
    """FastAPI dependency: the signed-in user, who must be an admin (403 otherwise)"""
    if not user.is_admin:
        logger.warning(f"User {user.email} attempted an admin action")
        raise HTTPException(status_code=403, detail="Admin role required")
    return user
