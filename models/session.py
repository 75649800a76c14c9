"""
Session Schemas

Authenticated identity returned by /api/auth/me, /login and /register.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from utils.validators import FormValidator, ValidationError


class Role(str, Enum):
    """User role as issued by the backend"""
    ADMIN = "admin"
    MEMBER = "member"


class User(BaseModel):
    """User profile"""
    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    id: str
    email: str
    name: str = ""
    role: Role
    phone: Optional[str] = None
    profile_picture: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    @property
    def is_member(self) -> bool:
        return self.role is Role.MEMBER


class LoginRequest(BaseModel):
    """POST /api/auth/login body"""
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)

    @classmethod
    def from_form(cls, email: Optional[str], password: Optional[str]) -> "LoginRequest":
        """
        Build the request from form input; the email is trimmed and lower-cased.

        Raises:
            ValidationError: with a message for the member
        """
        if not (email or "").strip() or not (password or "").strip():
            raise ValidationError("Please enter both email and password", field="email")
        return cls(email=FormValidator.email(email).lower(), password=password)


class RegisterRequest(BaseModel):
    """POST /api/auth/register body"""
    email: str = Field(..., min_length=3)
    name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

    @classmethod
    def from_form(cls, email: Optional[str], name: Optional[str], password: Optional[str]) -> "RegisterRequest":
        email = FormValidator.email(email).lower()
        name = FormValidator.max_length(FormValidator.required(name, "Name"), 100, "Name")
        FormValidator.required(password, "Password")
        return cls(email=email, name=name, password=password)


class LoginResponse(BaseModel):
    """Body of a successful login/registration"""
    model_config = ConfigDict(extra="ignore")

    session_token: str = Field(..., min_length=1)
    user: User
