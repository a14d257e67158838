from typing import List, Optional, Iterable
import logging

from supabase import Client

from clubsphere.errors import StorageError
from clubsphere.infra.supabase_client import first_row

logger = logging.getLogger(__name__)

CLUBS_TABLE = "club"

def list_approved_clubs(store: Client) -> List[dict]:
    try:
        res = store.table(CLUBS_TABLE).select("*").eq("status", "approved").execute()
        return res.data or []
    except Exception:
        logger.exception("clubs.repository.list_approved_clubs failed")
        raise StorageError("Lecture des clubs impossible")

def list_featured_clubs(store: Client, limit: int = 6) -> List[dict]:
    """Derniers clubs approuvés (les plus récents d'abord)."""
    try:
        res = (
            store.table(CLUBS_TABLE)
            .select("*")
            .eq("status", "approved")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("clubs.repository.list_featured_clubs failed")
        raise StorageError("Lecture des clubs impossible")

def get_club(store: Client, club_id: str) -> Optional[dict]:
    if not club_id:
        return None
    try:
        res = store.table(CLUBS_TABLE).select("*").eq("id", club_id).limit(1).execute()
    except Exception:
        logger.exception("clubs.repository.get_club failed id=%s", club_id)
        raise StorageError("Lecture du club impossible")
    return first_row(res)

def get_clubs_by_ids(store: Client, ids: Iterable[str]) -> List[dict]:
    ids = [str(i) for i in ids if i]
    if not ids:
        return []
    try:
        res = store.table(CLUBS_TABLE).select("*").in_("id", ids).execute()
        return res.data or []
    except Exception:
        logger.exception("clubs.repository.get_clubs_by_ids failed ids=%s", ids)
        raise StorageError("Lecture des clubs impossible")
