"""
Mosaic Backend — Authentication Schemas
=========================================

What:  Request/response contracts for /auth/register and /auth/login.
"""

from pydantic import BaseModel, Field, field_validator


class CredentialsRequest(BaseModel):
    """Email + password body shared by registration and login."""
    email: str = Field(min_length=3, max_length=255, description="Account email address")
    password: str = Field(min_length=6, max_length=128, description="Account password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Emails are compared case-insensitively; require a local part and a domain."""
        email = v.strip().lower()
        local, _, domain = email.partition("@")
        if not local or not domain:
            raise ValueError("Invalid email address")
        return email


class RegisterResponse(BaseModel):
    id: int = Field(description="New user id")
    email: str = Field(description="Registered email address")

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    """Bearer token returned by a successful login."""
    token: str = Field(description="JWT to send as 'Authorization: Bearer <token>'")
