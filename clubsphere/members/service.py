"""Tableau de bord membre: clubs rejoints, inscriptions et événements à venir."""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from dateutil import parser as date_parser
from supabase import Client

from clubsphere.clubs import repository as clubs_repository
from clubsphere.events import repository as events_repository
from clubsphere.payments import repository as payments_repository

def _parse_date(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = date_parser.isoparse(str(value))
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

def get_member_overview(store: Client, email: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Agrège pour un utilisateur:
    - totalClubsJoined: adhésions actives
    - totalEventsRegistered: inscriptions au statut 'registered'
    - upcomingEvents: événements inscrits à date future, triés par date
    Les événements introuvables ou sans date valide sont ignorés.
    """
    now = now or datetime.now(timezone.utc)
    memberships = payments_repository.list_active_memberships(store, email)
    registrations = payments_repository.list_registrations(store, email, status="registered")

    events = events_repository.get_events_by_ids(store, {r.get("event_id") for r in registrations})
    clubs = clubs_repository.get_clubs_by_ids(store, {e.get("club_id") for e in events})
    club_names = {str(c.get("id")): c.get("club_name") for c in clubs}

    upcoming: List[Dict[str, Any]] = []
    for event in events:
        event_date = _parse_date(event.get("event_date"))
        if event_date is None or event_date < now:
            continue
        upcoming.append({
            "eventTitle": event.get("title"),
            "eventDate": event.get("event_date"),
            "clubName": club_names.get(str(event.get("club_id"))),
        })
    upcoming.sort(key=lambda e: _parse_date(e["eventDate"]))

    return {
        "totalClubsJoined": len(memberships),
        "totalEventsRegistered": len(registrations),
        "upcomingEvents": upcoming,
    }
