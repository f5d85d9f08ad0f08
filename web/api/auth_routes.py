"""Auth API routes: admin login."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from portal.services.admin_auth import check_admin_credentials
from web.auth import TokenIssuer, get_token_issuer

logger = logging.getLogger("portal.auth")

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class LoginResponse(BaseModel):
    success: bool = True
    token: str


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, issuer: TokenIssuer = Depends(get_token_issuer)):
    """Check admin credentials and return the admin token."""
    username = body.username.strip()
    if not check_admin_credentials(body.username, body.password):
        logger.info("Admin login failed for %r", username)
        return JSONResponse(
            status_code=401,
            content={"success": False, "message": "Invalid username or password"},
        )
    logger.info("Admin login succeeded for %r", username)
    return LoginResponse(token=issuer.issue(username))
