"""
Configuration des logs applicatifs (stdlib logging).
Appelée une fois au démarrage par la factory; les modules utilisent logging.getLogger(__name__).
"""
import logging

from clubsphere.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

def configure_logging(level: str = LOG_LEVEL) -> None:
    root = logging.getLogger()
    # uvicorn installe ses propres handlers: on ne double pas la sortie
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(getattr(logging, (level or "info").upper(), logging.INFO))
