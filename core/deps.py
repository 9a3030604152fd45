import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from core.context import AppContext, get_context
from core.errors import StorageFailure
from models.user import UserRole

logger = logging.getLogger(__name__)

# Standard credentials exception
CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)

# Admin Roles Defined
ADMIN_ROLES = [UserRole.ADMIN.value]


# Basic Check Matches Firebase Auth Token (no profile needed yet, used by user sync)
async def get_token_claims(
    request: Request,
    context: Annotated[AppContext, Depends(get_context)],
) -> dict:
    # 1) Extract & Analyze Authorization Header
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = auth_header.split(" ", 1)[1]

    # 2) Verify This Points to a Real User Account
    try:
        decoded = context.verify_id_token(token)
    except Exception:
        raise CREDENTIALS_EXCEPTION

    uid = decoded.get("uid")
    if not uid:
        raise CREDENTIALS_EXCEPTION

    return {
        "uid": uid,
        "email": decoded.get("email", ""),
        "name": decoded.get("name"),
    }


# Full Check: token plus the stored profile (role comes from the profile, not the token)
async def get_current_user(
    claims: Annotated[dict, Depends(get_token_claims)],
    context: Annotated[AppContext, Depends(get_context)],
) -> dict:
    uid = claims["uid"]
    try:
        profile = context.user_store.get(uid)
    except StorageFailure as e:
        logger.error(f"Firestore error fetching profile for {uid}: {e.detail}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not fetch user profile.",
        )

    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User profile not found. Sync the account first.",
        )

    return {
        "uid": uid,
        "name": profile.name,
        "email": profile.email,
        "role": profile.role.value,
        "is_admin": profile.role.value in ADMIN_ROLES,
    }


# Admin Role Check Dependency
async def require_admin_role(current_user: Annotated[dict, Depends(get_current_user)]) -> dict:
    # Check That User Has Adequate Permissions
    if not current_user["is_admin"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User doesn't have sufficient privileges for this action",
        )

    # Passes Check Endpoint
    return current_user
