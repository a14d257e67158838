"""
Registre central des routers.
- Paiements: checkout, confirmation, webhook, historique
- Consultation: clubs, événements, utilisateurs, vue membre
- Health
"""
from fastapi import FastAPI

from clubsphere.clubs.views import router as clubs_router
from clubsphere.events.views import router as events_router
from clubsphere.health.router import router as health_router
from clubsphere.members.views import router as members_router
from clubsphere.payments.views import router as payments_router
from clubsphere.users.views import router as users_router

def register_routers(app: FastAPI) -> None:
    app.include_router(payments_router)
    app.include_router(clubs_router)
    app.include_router(events_router)
    app.include_router(users_router)
    app.include_router(members_router)
    app.include_router(health_router)

    @app.get("/", include_in_schema=False)
    def root():
        return "My ClubSphere server is running..."
