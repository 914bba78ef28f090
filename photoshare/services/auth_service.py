from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from photoshare.config import settings
from photoshare.db.session import get_db, transaction
from photoshare.errors import AccountBlocked, Conflict, Forbidden, InvalidCredentials, Unauthenticated
from photoshare.models.user import User, UserRole
from photoshare.schemas.auth_schema import TokenData
from photoshare.schemas.user_schema import UserCreate

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)
bearer_scheme = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token whose subject is the user id"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": str(user_id), "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenData]:
    """Decode a JWT access token, None when invalid or expired"""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    if payload.get("type") != "access":
        return None

    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        return None

    return TokenData(user_id=int(subject))


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_identifier(self, identifier: str) -> Optional[User]:
        """Find a user by email or case-insensitive username"""
        key = identifier.strip().lower()
        stmt = select(User).where(or_(User.email == key, User.username_lower == key))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create_user(
        self,
        user_data: UserCreate,
        role: UserRole = UserRole.USER,
    ) -> User:
        """Create a new user, rejecting taken emails and usernames"""
        stmt = select(User).where(
            or_(User.email == user_data.email.lower(), User.username_lower == user_data.username.lower())
        )
        result = await self.db.execute(stmt)
        existing = result.scalars().first()

        if existing:
            if existing.email == user_data.email.lower():
                raise Conflict("Email already registered")
            raise Conflict("Username already taken")

        user = User(
            username=user_data.username,
            email=user_data.email,
            hashed_password=get_password_hash(user_data.password),
            role=role,
            bio="",
            post_count=0,
            total_likes_received=0,
        )

        try:
            async with transaction(self.db):
                self.db.add(user)
        except IntegrityError:
            # Lost a race against a concurrent registration
            raise Conflict("Email or username already in use")

        logger.info(f"Registered user {user.id} ({user.username})")
        return user

    async def authenticate_user(self, identifier: str, password: str) -> User:
        """Check a credential pair; raises rather than returning None"""
        user = await self.get_user_by_identifier(identifier)

        if not user or not verify_password(password, user.hashed_password):
            raise InvalidCredentials()

        if not user.is_active:
            raise AccountBlocked(user.status.value)

        return user

    async def resolve_token(self, token: Optional[str]) -> User:
        """Resolve a bearer token to a live user record"""
        if not token:
            raise Unauthenticated("Authentication required")

        token_data = decode_access_token(token)
        if token_data is None:
            raise Unauthenticated("Invalid or expired token")

        user = await self.db.get(User, token_data.user_id)
        if user is None:
            raise Unauthenticated("User no longer exists")

        return user


def _token(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    return credentials.credentials if credentials else None


async def get_authenticated_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Dependency: any authenticated user, whatever the account status"""
    return await AuthService(db).resolve_token(_token(credentials))


async def get_current_user(
    user: User = Depends(get_authenticated_user),
) -> User:
    """Dependency: authenticated user with an active account"""
    if not user.is_active:
        raise AccountBlocked(user.status.value)
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Dependency: the caller when a valid token for an active user is sent, else anonymous"""
    token = _token(credentials)
    if not token:
        return None
    try:
        user = await AuthService(db).resolve_token(token)
    except Unauthenticated:
        return None
    return user if user.is_active else None


async def require_admin(
    user: User = Depends(get_current_user),
) -> User:
    """Dependency: active administrator"""
    if not user.is_admin:
        raise Forbidden("Admin access required")
    return user
