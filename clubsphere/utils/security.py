"""
Authentification et autorisation déclaratives.
- get_current_user: Bearer -> identité vérifiée (IdentityVerifier)
- require_capability(cap): contrôle unique par requête à partir du rôle résolu
"""
from typing import Any, Dict, FrozenSet

from fastapi import Depends, Request
from supabase import Client

from clubsphere.auth.service import IdentityVerifier
from clubsphere.errors import ForbiddenError, UnauthorizedError
from clubsphere.infra.supabase_client import get_store

CHECKOUT_CREATE = "checkout:create"
PAYMENTS_CONFIRM = "payments:confirm"
PAYMENTS_READ_OWN = "payments:read_own"
PAYMENTS_READ_ANY = "payments:read_any"

_MEMBER_CAPABILITIES = frozenset({CHECKOUT_CREATE, PAYMENTS_CONFIRM, PAYMENTS_READ_OWN})

ROLE_CAPABILITIES: Dict[str, FrozenSet[str]] = {
    "member": _MEMBER_CAPABILITIES,
    "clubManager": _MEMBER_CAPABILITIES,
    "admin": _MEMBER_CAPABILITIES | {PAYMENTS_READ_ANY},
}

def bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip()
    return ""

def get_identity_verifier(store: Client = Depends(get_store)) -> IdentityVerifier:
    return IdentityVerifier(store)

def get_current_user(
    request: Request,
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> Dict[str, Any]:
    token = bearer_token(request)
    if not token:
        raise UnauthorizedError("Unauthorized Access!")
    return verifier.verify(token)

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

def has_capability(user: Dict[str, Any], capability: str) -> bool:
    return capability in ROLE_CAPABILITIES.get((user or {}).get("role") or "", frozenset())

def require_capability(capability: str):
    def _dep(user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
        if not has_capability(user, capability):
            raise ForbiddenError("Accès interdit")
        return user
    return _dep
