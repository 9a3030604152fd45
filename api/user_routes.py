from typing import Annotated, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.context import AppContext, get_context
from core.deps import get_current_user, get_token_claims, require_admin_role
from core.errors import RecordNotFound, ValidationError
from models.user import UserProfileUpdate
from services.user_sync import sync_user

router = APIRouter()


class SyncUserPayload(BaseModel):
    name: Optional[str] = None
    pps: Optional[str] = None
    phone: Optional[str] = None


# First call after sign-in: creates the profile (and decides the role) if missing
@router.post("/sync")
def sync_current_user(
    context: Annotated[AppContext, Depends(get_context)],
    claims: Annotated[dict, Depends(get_token_claims)],
    payload: Optional[SyncUserPayload] = None,
):
    extra = UserProfileUpdate(**payload.model_dump()) if payload else None
    profile = sync_user(
        context.user_store,
        uid=claims["uid"],
        email=claims["email"],
        admin_email=context.settings.admin_email,
        display_name=claims.get("name"),
        extra=extra,
    )
    return {"status": "success", "data": profile}


# Sign out everywhere: refresh tokens issued so far stop working
@router.post("/sign-out")
def sign_out(
    context: Annotated[AppContext, Depends(get_context)],
    claims: Annotated[dict, Depends(get_token_claims)],
):
    context.revoke_refresh_tokens(claims["uid"])
    return {"status": "success", "message": "Signed out."}


@router.get("/me")
def get_me(user: Annotated[dict, Depends(get_current_user)]):
    return {"status": "success", "data": user}


@router.get("")
def list_users(
    context: Annotated[AppContext, Depends(get_context)],
    admin: Annotated[dict, Depends(require_admin_role)],
):
    return {"status": "success", "data": context.user_store.list_all()}


@router.patch("/{uid}")
def update_user(
    uid: str,
    changes: UserProfileUpdate,
    context: Annotated[AppContext, Depends(get_context)],
    admin: Annotated[dict, Depends(require_admin_role)],
):
    fields = changes.model_dump(exclude_unset=True)
    if not fields:
        raise ValidationError("Nothing to change.")
    if context.user_store.get(uid) is None:
        raise RecordNotFound(f"User {uid} not found.")
    context.user_store.update(uid, fields)
    return {"status": "success", "data": context.user_store.get(uid)}


@router.delete("/{uid}")
def delete_user(
    uid: str,
    context: Annotated[AppContext, Depends(get_context)],
    admin: Annotated[dict, Depends(require_admin_role)],
):
    if uid == admin["uid"]:
        raise ValidationError("You cannot delete your own account.")
    context.user_store.delete(uid)
    return {"status": "success", "message": f"User {uid} deleted."}
