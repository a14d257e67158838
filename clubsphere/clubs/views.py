"""Endpoints publics de consultation des clubs (approuvés uniquement)."""
from fastapi import APIRouter, Depends
from supabase import Client

from clubsphere.errors import NotFoundError
from clubsphere.infra.supabase_client import get_store
from clubsphere.utils.validators import parse_uuid
from clubsphere.clubs import repository as clubs_repository

router = APIRouter(tags=["Clubs API"])

@router.get("/club")
def list_clubs(store: Client = Depends(get_store)):
    return clubs_repository.list_approved_clubs(store)

@router.get("/club/{club_id}")
def get_club(club_id: str, store: Client = Depends(get_store)):
    """Récupère un club par identifiant: 400 si l'identifiant est invalide, 404 si introuvable."""
    club = clubs_repository.get_club(store, parse_uuid(club_id, "Identifiant de club"))
    if not club:
        raise NotFoundError("Club introuvable")
    return club

@router.get("/featured-clubs")
def featured_clubs(store: Client = Depends(get_store)):
    """Les 6 derniers clubs approuvés."""
    return clubs_repository.list_featured_clubs(store, limit=6)
