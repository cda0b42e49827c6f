"""
Auth API routes — register, login, logout.

Route prefix: /api/auth
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from auth.dependencies import get_auth_service
from auth.service import AuthService
from utils.schemas import AuthResponse, LoginRequest, MessageResponse, RegisterRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/register", response_model=AuthResponse)
async def register(
    req: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Register a new user and log them in."""
    return await service.register(req.username, req.password)


@router.post("/login", response_model=AuthResponse)
async def login(
    req: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> Dict[str, Any]:
    """Login with username + password."""
    return await service.login(req.username, req.password)


@router.post("/logout", response_model=MessageResponse)
async def logout() -> Dict[str, str]:
    """Tokens are stateless; the client just discards its copy."""
    return {"message": "Logged out"}
