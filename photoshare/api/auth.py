from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from photoshare.db.session import get_db
from photoshare.errors import InternalFailure
from photoshare.models.user import User
from photoshare.schemas.auth_schema import LoginRequest
from photoshare.schemas.common import ok
from photoshare.schemas.user_schema import UserCreate, UserPrivate
from photoshare.services.auth_service import AuthService, create_access_token, get_authenticated_user

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """Register a new user"""
    try:
        auth_service = AuthService(db)
        user = await auth_service.create_user(user_data)
        token = create_access_token(user.id)

        return ok(
            {"user": UserPrivate.model_validate(user), "token": token},
            message="Registration successful",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Registration error: {e}")
        raise InternalFailure("Registration failed")


@router.post("/login")
async def login(
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login with email or username and return a token"""
    try:
        auth_service = AuthService(db)
        user = await auth_service.authenticate_user(credentials.identifier, credentials.password)
        token = create_access_token(user.id)

        return ok(
            {"user": UserPrivate.model_validate(user), "token": token},
            message="Login successful",
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error: {e}")
        raise InternalFailure("Login failed")


@router.get("/me")
async def get_me(current_user: User = Depends(get_authenticated_user)):
    """Current caller's own profile"""
    return ok({"user": UserPrivate.model_validate(current_user)})


@router.post("/logout")
async def logout(current_user: User = Depends(get_authenticated_user)):
    """Tokens are stateless; the client drops its copy"""
    logger.info(f"User {current_user.id} logged out")
    return ok(message="Logged out successfully")
