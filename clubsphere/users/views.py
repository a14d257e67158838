"""Endpoints du profil utilisateur (création au premier login, lecture par email)."""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from supabase import Client

from clubsphere.errors import NotFoundError
from clubsphere.infra.supabase_client import get_store
from clubsphere.users import repository as users_repository

router = APIRouter(prefix="/users", tags=["Users API"])


class UserCreateRequest(BaseModel):
    # un éventuel champ "role" envoyé par le client est ignoré
    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    email: EmailStr
    name: Optional[str] = None
    photo_url: Optional[str] = Field(default=None, alias="photoURL")


@router.get("/{email}")
def get_user(email: str, store: Client = Depends(get_store)):
    user = users_repository.get_user_by_email(store, email)
    if not user:
        raise NotFoundError("User not found")
    return {
        "name": user.get("name"),
        "email": user.get("email"),
        "role": user.get("role") or "member",
        "photoURL": user.get("photo_url"),
        "createdAt": user.get("created_at"),
    }

@router.post("", status_code=201)
def create_user(body: UserCreateRequest, store: Client = Depends(get_store)):
    """Crée le profil applicatif; 409 si l'email existe déjà."""
    created = users_repository.create_user(store, {
        "email": str(body.email),
        "name": body.name,
        "photo_url": body.photo_url,
    })
    return {"message": "User created", "userId": created.get("id")}
