import json


def _event(event_type="checkout.session.completed", session_id="cs_test_paid"):
    return json.dumps({"type": event_type, "data": {"object": {"id": session_id}}})


def test_webhook_rejects_bad_signature(client, store, paid_session):
    paid_session()
    r = client.post("/webhook/stripe", content=_event(), headers={"stripe-signature": "forged"})
    assert r.status_code == 400
    assert store.writes() == []


def test_webhook_completed_writes_entitlement(client, store, paid_session):
    paid_session()
    r = client.post("/webhook/stripe", content=_event(), headers={"stripe-signature": "valid-signature"})
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["state"] == "PAID_CONFIRMED"
    assert store.count("payments") == 1
    assert store.count("memberships") == 1


def test_webhook_redelivery_is_idempotent(client, store, paid_session, member_headers):
    paid_session()
    headers = {"stripe-signature": "valid-signature"}
    client.post("/webhook/stripe", content=_event(), headers=headers)
    client.post("/webhook/stripe", content=_event(), headers=headers)
    r = client.patch("/payment-success", params={"session_id": "cs_test_paid"}, headers=member_headers)
    assert r.json()["duplicate"] is True
    assert store.count("payments") == 1


def test_webhook_ignores_other_events(client, store):
    r = client.post("/webhook/stripe", content=_event("customer.created"),
                    headers={"stripe-signature": "valid-signature"})
    assert r.status_code == 200
    assert r.json()["status"] == "ignored"
    assert store.writes() == []
