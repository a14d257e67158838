"""
Gestionnaires d'exceptions.
- Erreurs du domaine (ClubSphereError): JSON {"detail": ...} avec le code HTTP porté par l'erreur.
- HTTPException: réponse JSON FastAPI standard.
Les 5xx sont journalisées; les 4xx sont des issues normales côté client.
"""
import logging
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from clubsphere.errors import ClubSphereError, PaymentProviderError

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ClubSphereError)
    async def domain_error(request: Request, exc: ClubSphereError):
        if exc.status_code >= 500:
            logger.error("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
        headers = None
        if isinstance(exc, PaymentProviderError) and exc.retryable:
            headers = {"Retry-After": "5"}
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)

    @app.exception_handler(HTTPException)
    async def http_error(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=getattr(exc, "headers", None))
