"""
User endpoints for API v1.

Registration and login return the user together with a bearer token.
``/me`` echoes the authenticated actor, and administrators can list
all users.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from geo_events_api.app.core.security import get_current_actor, require_roles
from geo_events_api.app.schemas.user import Actor, AuthResponse, UserLogin, UserRead, UserRegister
from geo_events_api.app.services.user_service import UserService


router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_user(user: UserRegister) -> AuthResponse:
    """Register a new user and return it with an access token."""
    return await UserService.register(user)


@router.post("/login", response_model=AuthResponse)
async def login_user(credentials: UserLogin) -> AuthResponse:
    """Authenticate a user and return a fresh token.

    Wrong e-mail or password yields 401 ``Invalid credentials``.
    """
    return await UserService.login(credentials)


@router.get("/me", response_model=Actor)
async def read_current_user(actor: Actor = Depends(get_current_actor)) -> Actor:
    return actor


@router.get("/", response_model=List[UserRead])
async def list_users(actor: Actor = Depends(require_roles("admin"))) -> List[UserRead]:
    return await UserService.list_users()
