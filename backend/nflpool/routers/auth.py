import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from jwt.exceptions import InvalidTokenError as JWTError

from nflpool.database import get_db
from nflpool.models.user import UserLogin, UserResponse
from nflpool.services.audit_service import log_audit
from nflpool.services.auth_service import (
    blocklist_access_token,
    clear_auth_cookie,
    create_access_token,
    decode_jwt,
    get_current_user,
    set_auth_cookie,
    verify_password,
)

logger = logging.getLogger("nflpool.auth")
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login")
async def login(body: UserLogin, request: Request, response: Response, db=Depends(get_db)):
    """Login with email and password."""
    user = await db.users.find_one({"email": body.email.lower(), "is_deleted": False})
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )

    if user.get("is_banned"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been suspended.",
        )

    user_id = str(user["_id"])

    if not verify_password(body.password, user["hashed_password"]):
        await log_audit(
            actor_id=user_id, target_id=user_id, action="LOGIN_FAILED", request=request,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )

    set_auth_cookie(response, create_access_token(user_id))
    await log_audit(actor_id=user_id, target_id=user_id, action="LOGIN_SUCCESS", request=request)
    logger.info("User logged in: %s", user_id)
    return {"message": "Login successful."}


@router.post("/logout")
async def logout(request: Request, response: Response):
    """Logout: clear the cookie and revoke the access token."""
    token = request.cookies.get("access_token")
    if token:
        try:
            payload = decode_jwt(token)
        except JWTError:
            payload = {}
        if payload.get("jti") and payload.get("exp"):
            await blocklist_access_token(
                payload["jti"], datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            )

    clear_auth_cookie(response)
    return {"message": "Logged out."}


@router.get("/me", response_model=UserResponse)
async def get_me(user=Depends(get_current_user)):
    """Get current user profile."""
    return UserResponse(
        id=str(user["_id"]),
        email=user["email"],
        display_name=user.get("display_name", ""),
        is_admin=user.get("is_admin", False),
    )
