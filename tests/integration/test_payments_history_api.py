def _seed_payments(store, ids):
    store.seed(
        "payments",
        {"transaction_id": "pi_1", "user_email": ids.member, "amount": 25.0, "type": "membership",
         "created_at": "2025-03-01T10:00:00+00:00"},
        {"transaction_id": "pi_2", "user_email": ids.member, "amount": 12.5, "type": "event",
         "created_at": "2025-03-05T10:00:00+00:00"},
        {"transaction_id": "pi_3", "user_email": ids.other, "amount": 25.0, "type": "membership",
         "created_at": "2025-03-02T10:00:00+00:00"},
    )


def test_member_sees_own_payments_newest_first(client, store, member_headers, ids):
    _seed_payments(store, ids)
    r = client.get("/payments", headers=member_headers)
    assert r.status_code == 200
    assert [p["transaction_id"] for p in r.json()] == ["pi_2", "pi_1"]

    r = client.get("/payments", params={"email": ids.member}, headers=member_headers)
    assert len(r.json()) == 2


def test_member_cannot_read_other_payments(client, store, member_headers, ids):
    _seed_payments(store, ids)
    r = client.get("/payments", params={"email": ids.other}, headers=member_headers)
    assert r.status_code == 403


def test_admin_reads_any_payments(client, store, admin_headers, ids):
    _seed_payments(store, ids)
    assert len(client.get("/payments", headers=admin_headers).json()) == 3
    r = client.get("/payments", params={"email": ids.other}, headers=admin_headers)
    assert [p["transaction_id"] for p in r.json()] == ["pi_3"]


def test_payments_requires_auth(client):
    assert client.get("/payments").status_code == 401


def test_payments_requires_read_own_capability(app, client, store, ids):
    from clubsphere.utils.security import get_current_user

    _seed_payments(store, ids)
    app.dependency_overrides[get_current_user] = lambda: {"id": "u-x", "email": ids.member, "role": "visitor"}
    r = client.get("/payments")
    assert r.status_code == 403
