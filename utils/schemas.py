"""
Pydantic request / response schemas for the Todo List API.

Request bodies are validated before any store access; a mismatch is
rendered as a 400 ``{"error": "Invalid input"}`` by ``api.middleware``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.password import MAX_PASSWORD_BYTES


# ═══════════════════════════════════════════════════════════════════════════════
# Auth
# ═══════════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=64)
    password: str = Field(..., min_length=6, max_length=128)

    @field_validator("username")
    @classmethod
    def _username_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("username must not be blank")
        return value

    @field_validator("password")
    @classmethod
    def _password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode()) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class LoginRequest(BaseModel):
    username: str
    password: str


class UserSummary(BaseModel):
    id: int
    username: str


class AuthResponse(BaseModel):
    token: str
    user: UserSummary


class MessageResponse(BaseModel):
    message: str


# ═══════════════════════════════════════════════════════════════════════════════
# Tasks
# ═══════════════════════════════════════════════════════════════════════════════


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    attachments: List[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("title must not be blank")
        return value


class TaskUpdate(BaseModel):
    """Partial update; at least one field must be present."""

    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("title must not be blank")
        return value

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    description: str = ""
    completed: bool = False
    attachments: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


# ═══════════════════════════════════════════════════════════════════════════════
# Anonymous lists
# ═══════════════════════════════════════════════════════════════════════════════


class ListCreate(BaseModel):
    list_name: Optional[str] = Field(None, max_length=255)


class ListRename(BaseModel):
    list_name: str = Field(..., min_length=1, max_length=255)


class ListOut(BaseModel):
    id: str
    list_name: str
    share_path: str
    share_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AnonymousTaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    list_id: str
    title: str
    description: str = ""
    completed: bool = False
    attachments: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
