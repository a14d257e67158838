"""
Taxonomie d'erreurs du domaine.
Chaque erreur porte le code HTTP sous lequel elle est exposée; la conversion en JSON
est faite une seule fois par le handler enregistré dans app_setup.exceptions.
"""
from typing import Optional


class ClubSphereError(Exception):
    status_code = 500
    default_message = "Erreur interne"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ClubSphereError):
    status_code = 400
    default_message = "Requête invalide"


class InvalidSessionError(ClubSphereError):
    status_code = 400
    default_message = "Session de paiement introuvable"


class UnauthorizedError(ClubSphereError):
    status_code = 401
    default_message = "Non authentifié"


class ForbiddenError(ClubSphereError):
    status_code = 403
    default_message = "Accès interdit"


class NotFoundError(ClubSphereError):
    status_code = 404
    default_message = "Ressource introuvable"


class ConflictError(ClubSphereError):
    """Violation d'unicité: le registre la récupère localement en renvoyant la ligne existante."""
    status_code = 409
    default_message = "Déjà enregistré"


class PaymentProviderError(ClubSphereError):
    """Échec côté Stripe. retryable=True pour les timeouts/erreurs réseau (503), sinon 502."""
    default_message = "Prestataire de paiement indisponible"

    def __init__(self, message: Optional[str] = None, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable
        self.status_code = 503 if retryable else 502


class StorageError(ClubSphereError):
    status_code = 500
    default_message = "Erreur de persistance"
