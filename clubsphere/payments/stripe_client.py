"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
Instancié une fois par application (clé, secret webhook, timeout) puis injecté
dans l'initiateur de checkout et le résolveur de confirmation.
"""
import logging
from typing import Any, Dict, List, Optional

import stripe

from clubsphere.errors import InvalidSessionError, PaymentProviderError, ValidationError

logger = logging.getLogger(__name__)

def _as_dict(obj: Any) -> Dict[str, Any]:
    """StripeObject -> dict (récursif si le SDK le permet)."""
    if obj is None:
        return {}
    for attr in ("to_dict_recursive", "to_dict"):
        fn = getattr(obj, attr, None)
        if callable(fn):
            return fn()
    return dict(obj)

# module clubsphere.payments.stripe_client
class StripeProvider:
    def __init__(
        self,
        api_key: str,
        webhook_secret: str = "",
        timeout: float = 15.0,
        max_retries: int = 2,
    ):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.timeout = timeout
        self.max_retries = max_retries
        self._configured = False

    def require_stripe(self):
        """
        Prépare le module stripe prêt à l'emploi.
        - Timeout borné sur chaque appel HTTP (RequestsClient) et retries réseau limités.
        - En absence de clé, les appels échouent en PaymentProviderError (pas d'appel réseau).
        """
        if not self.api_key:
            raise PaymentProviderError("STRIPE_SECRET_KEY manquant")
        if not self._configured:
            stripe.default_http_client = stripe.RequestsClient(timeout=self.timeout)
            stripe.max_network_retries = self.max_retries
            self._configured = True
        return stripe

    def create_session(
        self,
        *,
        line_items: List[Dict[str, Any]],
        metadata: Dict[str, str],
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
        mode: str = "payment",
    ) -> Dict[str, Any]:
        """
        Crée une session Stripe Checkout.
        Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
        """
        self.require_stripe()
        params: Dict[str, Any] = {
            "line_items": line_items,
            "mode": mode,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if customer_email:
            params["customer_email"] = customer_email
        try:
            session = stripe.checkout.Session.create(api_key=self.api_key, **params)
        except stripe.APIConnectionError as e:
            logger.warning("stripe.create_session network failure: %s", e)
            raise PaymentProviderError("Stripe injoignable, réessayez", retryable=True)
        except stripe.StripeError as e:
            logger.exception("stripe.create_session failed")
            raise PaymentProviderError(f"Création de session impossible: {getattr(e, 'user_message', None) or e}")
        return _as_dict(session)

    def retrieve_session(self, session_id: str) -> Dict[str, Any]:
        """
        Récupère une session Stripe Checkout par son identifiant (source de vérité du paiement).
        - Session inconnue -> InvalidSessionError
        - Timeout / réseau -> PaymentProviderError(retryable=True)
        """
        if not session_id:
            raise ValidationError("session_id manquant")
        self.require_stripe()
        try:
            session = stripe.checkout.Session.retrieve(session_id, api_key=self.api_key)
        except stripe.InvalidRequestError as e:
            logger.info("stripe.retrieve_session unknown session_id=%s: %s", session_id, e)
            raise InvalidSessionError("Session introuvable")
        except stripe.APIConnectionError as e:
            logger.warning("stripe.retrieve_session network failure session_id=%s: %s", session_id, e)
            raise PaymentProviderError("Stripe injoignable, réessayez", retryable=True)
        except stripe.StripeError:
            logger.exception("stripe.retrieve_session failed session_id=%s", session_id)
            raise PaymentProviderError("Lecture de session impossible")
        return _as_dict(session)

    def construct_event(self, payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
        """
        Parse et valide un événement Stripe signé (webhook).
        - Valide la signature via Webhook.construct_event (STRIPE_WEBHOOK_SECRET)
        - Pas de secret configuré: l'événement est refusé (le webhook n'a pas d'autre authentification)
        """
        if not self.webhook_secret:
            logger.error("stripe.construct_event refused: STRIPE_WEBHOOK_SECRET manquant")
            raise ValidationError("Webhook Stripe non configuré")
        try:
            event = stripe.Webhook.construct_event(payload, sig_header or "", self.webhook_secret)
        except stripe.SignatureVerificationError:
            raise ValidationError("Signature Stripe invalide")
        except ValueError:
            raise ValidationError("Invalid Stripe webhook payload")
        return _as_dict(event)
