"""
Factory d'application utilisée par les entrypoints (clubsphere.asgi, python -m clubsphere).
Ordonne les étapes d'initialisation de manière lisible et testable.
"""
from fastapi import FastAPI

from clubsphere import __version__
from clubsphere.logging_setup import configure_logging
from .exceptions import register_exception_handlers
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_security_middleware
from .routers import register_routers

def create_app() -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - logs, middlewares de base (CORS, TrustedHost), en-têtes de sécurité
      - gestionnaires d'exceptions
      - tous les routers
    Les clients Supabase/Stripe sont créés à la première requête et rangés dans app.state.
    """
    configure_logging()
    app = FastAPI(title="ClubSphere API", version=__version__, lifespan=lifespan)
    register_basic_middlewares(app)
    register_security_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
