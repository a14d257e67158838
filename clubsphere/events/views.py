"""Endpoints des événements.
- Listing et détail publics.
- /events/{id}/register: inscription via l'initiateur de checkout (Stripe si payant,
  inscription directe si gratuit). Un éventuel paymentId envoyé par le client est ignoré.
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends
from supabase import Client

from clubsphere.errors import NotFoundError
from clubsphere.infra.supabase_client import get_store
from clubsphere.utils.rate_limit import optional_rate_limit
from clubsphere.utils.security import CHECKOUT_CREATE, require_capability
from clubsphere.utils.validators import parse_uuid
from clubsphere.events import repository as events_repository
from clubsphere.payments.dependencies import get_checkout_initiator
from clubsphere.payments.models import EVENT
from clubsphere.payments.service import CheckoutInitiator

router = APIRouter(prefix="/events", tags=["Events API"])

@router.get("")
def list_events(store: Client = Depends(get_store)):
    return events_repository.list_events(store)

@router.get("/{event_id}")
def get_event(event_id: str, store: Client = Depends(get_store)):
    event = events_repository.get_event(store, parse_uuid(event_id, "Identifiant d'événement"))
    if not event:
        raise NotFoundError("Événement introuvable")
    return event

@router.post("/{event_id}/register", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def register_to_event(
    event_id: str,
    user: Dict[str, Any] = Depends(require_capability(CHECKOUT_CREATE)),
    initiator: CheckoutInitiator = Depends(get_checkout_initiator),
):
    return initiator.initiate(EVENT, user, event_id)
