from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from supabase import Client

from clubsphere.errors import ForbiddenError
from clubsphere.infra.supabase_client import get_store
from clubsphere.utils.security import PAYMENTS_READ_ANY, has_capability, require_user
from clubsphere.members.service import get_member_overview

router = APIRouter(tags=["Members API"])

@router.get("/member-overview")
def member_overview(
    email: Optional[str] = Query(default=None),
    user: Dict[str, Any] = Depends(require_user),
    store: Client = Depends(get_store),
):
    """Vue d'ensemble du membre connecté (un admin peut consulter un autre email)."""
    own_email = user.get("email") or ""
    if email and email.lower() != own_email.lower() and not has_capability(user, PAYMENTS_READ_ANY):
        raise ForbiddenError("Accès interdit")
    return get_member_overview(store, email or own_email)
