"""Admin user management — assigning a user's role."""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from gateway.access.identity import Identity, SupabaseAdminClient
from gateway.access.roles import Role, role_label
from gateway.api.deps import get_admin_client, require_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/users", tags=["admin"])


class UpdateRoleRequest(BaseModel):
    role: Role


@router.patch("/{user_id}/role")
async def update_user_role(user_id: str, body: UpdateRoleRequest,
                           identity: Identity = Depends(require_role(Role.ADMIN)),
                           admin: SupabaseAdminClient = Depends(get_admin_client)):
    """Set a user's role. Admins cannot demote themselves."""
    if user_id == identity.user.id and body.role != Role.ADMIN:
        raise HTTPException(status_code=400, detail="You cannot remove your own admin role")

    try:
        updated = await admin.set_role(user_id, body.role)
    except httpx.HTTPError as exc:
        logger.error("Role update for %s failed: %s", user_id, exc)
        raise HTTPException(status_code=502, detail="Identity service rejected the role update")

    logger.info("Role updated: %s -> %s by %s", user_id, body.role.value, identity.user.email)

    metadata = updated.get("app_metadata") or {}
    return {
        "message": "Role updated",
        "user": {
            "id": updated.get("id", user_id),
            "email": updated.get("email"),
            "role": metadata.get("role", body.role.value),
            "role_label": role_label(body.role),
        },
    }
