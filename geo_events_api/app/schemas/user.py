"""
Pydantic models for user data.

Defines schemas for registering and authenticating users, reading
user information and the ``Actor`` resolved from a bearer token.
Password hashes never appear in any of these models.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

Role = Literal["user", "admin"]


class UserRegister(BaseModel):
    """Schema for registering a user.

    Fields default to empty strings so that ``UserService`` can report
    every invalid field at once.
    """

    name: str = Field("", examples=["John Doe"])
    email: str = Field("", examples=["john.doe@example.com"])
    password: str = Field("", examples=["password123"])


class UserLogin(BaseModel):
    email: str = Field("", examples=["john.doe@example.com"])
    password: str = Field("", examples=["password123"])


class UserRead(BaseModel):
    """Schema for reading a user from the API."""

    id: str
    name: str
    email: str
    role: Role = "user"
    created_at: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }


class AuthResponse(BaseModel):
    """Returned by registration and login."""

    user: UserRead
    token: str


class Actor(BaseModel):
    """The authenticated identity making a request."""

    id: str
    email: str
    role: Role = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
