from typing import List, Optional, Iterable
import logging

from supabase import Client

from clubsphere.errors import StorageError
from clubsphere.infra.supabase_client import first_row

logger = logging.getLogger(__name__)

EVENTS_TABLE = "events"

def list_events(store: Client) -> List[dict]:
    try:
        res = store.table(EVENTS_TABLE).select("*").order("event_date", desc=False).execute()
        return res.data or []
    except Exception:
        logger.exception("events.repository.list_events failed")
        raise StorageError("Lecture des événements impossible")

def get_event(store: Client, event_id: str) -> Optional[dict]:
    if not event_id:
        return None
    try:
        res = store.table(EVENTS_TABLE).select("*").eq("id", event_id).limit(1).execute()
    except Exception:
        logger.exception("events.repository.get_event failed id=%s", event_id)
        raise StorageError("Lecture de l'événement impossible")
    return first_row(res)

def get_events_by_ids(store: Client, ids: Iterable[str]) -> List[dict]:
    ids = [str(i) for i in ids if i]
    if not ids:
        return []
    try:
        res = store.table(EVENTS_TABLE).select("*").in_("id", ids).execute()
        return res.data or []
    except Exception:
        logger.exception("events.repository.get_events_by_ids failed ids=%s", ids)
        raise StorageError("Lecture des événements impossible")
