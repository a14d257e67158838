def test_create_checkout_session_unauthenticated(client, provider, ids):
    r = client.post("/create-checkout-session", json={"clubId": ids.club})
    assert r.status_code == 401
    assert r.json() == {"detail": "Unauthorized Access!"}
    assert provider.created == []


def test_create_checkout_session_with_invalid_token(client, ids):
    r = client.post("/create-checkout-session", json={"clubId": ids.club},
                    headers={"Authorization": "Bearer forged"})
    assert r.status_code == 401


def test_create_checkout_session_authenticated(client, provider, member_headers, ids):
    # clubName / membershipFee envoyés par le client ne changent pas le tarif
    r = client.post(
        "/create-checkout-session",
        json={"clubId": ids.club, "clubName": "Hacked", "membershipFee": 0.01},
        headers=member_headers,
    )
    assert r.status_code == 200
    body = r.json()
    assert body["url"] == "https://checkout.stripe.test/pay/cs_test_1"
    assert body["state"] == "PENDING_PAYMENT"
    line = provider.created[0]["line_items"][0]
    assert line["price_data"]["unit_amount"] == 2500
    assert line["price_data"]["product_data"]["name"] == "Chess Club Membership Fee"


def test_create_checkout_session_free_club(client, provider, store, member_headers, ids):
    r = client.post("/create-checkout-session", json={"clubId": ids.free_club}, headers=member_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["url"] is None
    assert body["free"] is True
    assert body["membership"]["status"] == "active"
    assert provider.created == []
    assert store.count("memberships") == 1


def test_create_checkout_session_errors(client, member_headers, ids):
    assert client.post("/create-checkout-session", json={"clubId": "nope"}, headers=member_headers).status_code == 400
    assert client.post("/create-checkout-session", json={"clubId": ids.pending_club},
                       headers=member_headers).status_code == 404
    assert client.post("/create-checkout-session", json={}, headers=member_headers).status_code == 422


def test_generic_checkout(client, provider, member_headers, ids):
    r = client.post("/checkout", json={"kind": "event", "targetId": ids.event}, headers=member_headers)
    assert r.status_code == 200
    assert provider.created[0]["metadata"]["purchase_kind"] == "event"

    r = client.post("/checkout", json={"kind": "donation", "targetId": ids.event}, headers=member_headers)
    assert r.status_code == 400


def test_event_register_paid_and_free(client, provider, store, member_headers, ids):
    r = client.post(f"/events/{ids.event}/register", headers=member_headers)
    assert r.status_code == 200
    assert r.json()["sessionId"] == "cs_test_1"
    assert store.count("eventRegistrations") == 0

    r = client.post(f"/events/{ids.free_event}/register", headers=member_headers)
    assert r.status_code == 200
    assert r.json()["registration"]["event_id"] == ids.free_event
    assert store.count("eventRegistrations") == 1


def test_provider_outage_maps_to_503(client, provider, member_headers, ids, monkeypatch):
    from clubsphere.errors import PaymentProviderError

    def _down(**kwargs):
        raise PaymentProviderError("Stripe injoignable, réessayez", retryable=True)

    monkeypatch.setattr(provider, "create_session", _down)
    r = client.post("/create-checkout-session", json={"clubId": ids.club}, headers=member_headers)
    assert r.status_code == 503
    assert r.headers.get("Retry-After") == "5"
