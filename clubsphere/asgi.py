"""
ASGI entrypoint: expose `app` pour les process managers / déploiements
(ex: gunicorn -k uvicorn.workers.UvicornWorker clubsphere.asgi:app).
"""

from clubsphere.app_setup.factory import create_app

app = create_app()
