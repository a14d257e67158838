"""
ClubSphere: backend des adhésions aux clubs et des inscriptions aux événements.
Le cœur métier est le flux de paiement (checkout Stripe -> confirmation -> registre idempotent).
"""

__version__ = "1.0.0"
