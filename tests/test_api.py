from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from ecopoints import models
from ecopoints.db import get_db
from ecopoints.main import app


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_register_login_and_profile(client):
    resp = client.post(
        "/auth/register",
        json={"email": "Resident@Example.com", "password": "recycle-123", "full_name": "Noor"},
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["user"]["points_balance"] == 0

    duplicate = client.post("/auth/register", json={"email": "resident@example.com", "password": "recycle-123"})
    assert duplicate.status_code == 409

    bad = client.post("/auth/login", json={"email": "resident@example.com", "password": "wrong-pass"})
    assert bad.status_code == 401

    login = client.post("/auth/login", json={"email": "resident@example.com", "password": "recycle-123"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["email"] == "resident@example.com"
    assert me.json()["role"] == "citizen"


def test_redeem_flow_over_http(client, make_user, make_voucher, auth_headers):
    user = make_user(points=100)
    voucher = make_voucher(points_required=40, quantity=3)
    headers = auth_headers(user)

    catalogue = client.get("/rewards/vouchers")
    assert [item["id"] for item in catalogue.json()] == [voucher.id]

    resp = client.post(f"/rewards/vouchers/{voucher.id}/redeem", headers=headers)
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["status"] == "pending"
    assert body["voucher"]["title"] == voucher.title

    assert client.get("/rewards/vouchers").json()[0]["quantity"] == 2
    ledger = client.get("/rewards/ledger", headers=headers).json()
    assert [entry["points_delta"] for entry in ledger] == [-40]
    mine = client.get("/rewards/redemptions", headers=headers).json()
    assert [item["id"] for item in mine] == [body["id"]]
    assert client.get("/auth/me", headers=headers).json()["points_balance"] == 60


def test_redeem_error_mapping(client, make_user, make_voucher, auth_headers):
    poor = make_user(points=10)
    headers = auth_headers(poor)
    voucher = make_voucher(points_required=40, quantity=3)
    empty = make_voucher(quantity=0, title="Sold out voucher")

    insufficient = client.post(f"/rewards/vouchers/{voucher.id}/redeem", headers=headers)
    assert insufficient.status_code == 409
    assert insufficient.json()["code"] == "insufficient_balance"
    assert insufficient.json()["required"] == 40
    assert insufficient.json()["available"] == 10

    out_of_stock = client.post(f"/rewards/vouchers/{empty.id}/redeem", headers=headers)
    assert out_of_stock.status_code == 409
    assert out_of_stock.json()["code"] == "out_of_stock"

    missing = client.post("/rewards/vouchers/9999/redeem", headers=headers)
    assert missing.status_code == 404

    assert client.post(f"/rewards/vouchers/{voucher.id}/redeem").status_code == 401


def test_admin_routes_require_admin(client, make_user, auth_headers):
    citizen = make_user()
    resp = client.get("/admin/vouchers/", headers=auth_headers(citizen))
    assert resp.status_code == 403


def test_admin_voucher_crud(client, make_user, auth_headers):
    headers = auth_headers(make_user(role="admin"))
    payload = {
        "partner_name": "Repair Cafe",
        "title": "Small appliance repair",
        "description": "Labour for one small appliance repair.",
        "points_required": 150,
        "quantity": 3,
        "status": "active",
    }

    created = client.post("/admin/vouchers/", json=payload, headers=headers)
    assert created.status_code == 201, created.text
    voucher_id = created.json()["id"]
    assert created.json()["partner_logo_url"]

    invalid = client.post("/admin/vouchers/", json={**payload, "points_required": 0}, headers=headers)
    assert invalid.status_code == 422

    updated = client.put(f"/admin/vouchers/{voucher_id}", json={**payload, "status": "inactive"}, headers=headers)
    assert updated.json()["status"] == "inactive"
    assert client.get("/rewards/vouchers").json() == []

    assert client.delete(f"/admin/vouchers/{voucher_id}", headers=headers).status_code == 204
    assert client.delete(f"/admin/vouchers/{voucher_id}", headers=headers).status_code == 404


def test_admin_fulfills_and_discards(client, db_session, make_user, make_voucher, auth_headers):
    admin_headers = auth_headers(make_user(role="admin"))
    citizen = make_user(points=100)
    citizen_headers = auth_headers(citizen)
    voucher = make_voucher(points_required=40, quantity=3)

    first = client.post(f"/rewards/vouchers/{voucher.id}/redeem", headers=citizen_headers).json()
    second = client.post(f"/rewards/vouchers/{voucher.id}/redeem", headers=citizen_headers).json()

    pending = client.get("/admin/redemptions/?status=pending", headers=admin_headers).json()
    assert {item["id"] for item in pending} == {first["id"], second["id"]}
    assert pending[0]["user"]["id"] == citizen.id

    fulfilled = client.post(
        f"/admin/redemptions/{first['id']}/fulfill",
        json={"coupon_code": "CODE123"},
        headers=admin_headers,
    )
    assert fulfilled.status_code == 200, fulfilled.text
    assert fulfilled.json()["status"] == "completed"
    assert fulfilled.json()["coupon_code"] == "CODE123"

    again = client.post(
        f"/admin/redemptions/{first['id']}/fulfill",
        json={"coupon_code": "OTHER"},
        headers=admin_headers,
    )
    assert again.status_code == 409

    assert client.delete(f"/admin/redemptions/{second['id']}", headers=admin_headers).status_code == 204
    assert client.delete(f"/admin/redemptions/{second['id']}", headers=admin_headers).status_code == 404

    db_session.expire_all()
    assert db_session.get(models.User, citizen.id).points_balance == 20
    assert db_session.get(models.Voucher, voucher.id).quantity == 1

    notes = client.get("/notifications/?status=unread", headers=citizen_headers).json()
    assert len(notes) == 1
    assert "CODE123" in notes[0]["message"]
    read = client.post(f"/notifications/{notes[0]['id']}/read", headers=citizen_headers)
    assert read.json()["status"] == "read"
    assert client.get("/notifications/?status=unread", headers=citizen_headers).json() == []
    assert client.post("/notifications/9999/read", headers=citizen_headers).status_code == 404


def test_notifications_filter_and_read_all(client, db_session, make_user, auth_headers):
    from ecopoints.services.notifications import notify_user

    citizen = make_user()
    headers = auth_headers(citizen)
    notify_user(db_session, citizen.id, "Your voucher is ready", category="voucher")
    notify_user(db_session, citizen.id, "Collection moved to Tuesday")
    db_session.commit()

    vouchers_only = client.get("/notifications/?category=voucher", headers=headers).json()
    assert [note["message"] for note in vouchers_only] == ["Your voucher is ready"]

    marked = client.post("/notifications/read-all", headers=headers)
    assert marked.json() == {"updated": 2}
    assert client.post("/notifications/read-all", headers=headers).json() == {"updated": 0}
    assert client.get("/notifications/?status=unread", headers=headers).json() == []


def test_admin_points_adjustments(client, make_user, auth_headers):
    headers = auth_headers(make_user(role="admin"))
    citizen = make_user(points=10)

    granted = client.post(f"/admin/points/{citizen.id}/grant", json={"points": 15}, headers=headers)
    assert granted.status_code == 200, granted.text
    assert granted.json()["points_balance"] == 25
    assert granted.json()["entry"]["log_type"] == "grant"

    deducted = client.post(
        f"/admin/points/{citizen.id}/deduct",
        json={"points": 100, "reason": "Duplicate pickup claim"},
        headers=headers,
    )
    assert deducted.json()["points_balance"] == 0
    assert deducted.json()["entry"]["points_delta"] == -25

    nothing = client.post(f"/admin/points/{citizen.id}/deduct", json={"points": 5}, headers=headers)
    assert nothing.json()["entry"] is None

    missing = client.post("/admin/points/9999/grant", json={"points": 5}, headers=headers)
    assert missing.status_code == 404

    log = client.get(f"/admin/points/log?user_id={citizen.id}", headers=headers).json()
    assert [entry["log_type"] for entry in log] == ["deduct", "grant"]

    summary = client.get("/admin/points/summary", headers=headers).json()
    assert summary["total_outstanding"] == 0


def test_store_failure_returns_503_and_changes_nothing(client, session_factory, make_user, make_voucher, auth_headers):
    user = make_user(points=100)
    voucher = make_voucher(points_required=40, quantity=3)
    headers = auth_headers(user)

    def _fail_flush(session, flush_context, instances):
        raise OperationalError("INSERT INTO voucher_redemptions", {}, Exception("database is locked"))

    def _failing_db():
        db = session_factory()
        event.listen(db, "before_flush", _fail_flush)
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _failing_db
    resp = client.post(f"/rewards/vouchers/{voucher.id}/redeem", headers=headers)

    assert resp.status_code == 503
    assert resp.json() == {"detail": "Could not complete the redemption. Nothing was charged; please try again."}
    check = session_factory()
    try:
        assert check.get(models.User, user.id).points_balance == 100
        assert check.get(models.Voucher, voucher.id).quantity == 3
        assert check.query(models.VoucherRedemption).count() == 0
        assert check.query(models.PointsLogEntry).count() == 0
    finally:
        check.close()


def test_admin_redemptions_show_prefixed_phone(client, make_user, make_voucher, auth_headers):
    admin_headers = auth_headers(make_user(role="admin"))
    local = make_user(points=100, phone_number="0771234567")
    international = make_user(points=100, phone_number="+967771234568")
    voucher = make_voucher(points_required=40, quantity=5)
    for citizen in (local, international):
        client.post(f"/rewards/vouchers/{voucher.id}/redeem", headers=auth_headers(citizen))

    listed = client.get("/admin/redemptions/", headers=admin_headers).json()

    phones = {item["user"]["id"]: item["user"]["phone_number"] for item in listed}
    assert phones == {local.id: "+967771234567", international.id: "+967771234568"}


def test_cashout_flow_over_http(client, make_user, auth_headers):
    admin_headers = auth_headers(make_user(role="admin"))
    citizen = make_user(points=100, phone_number="0700000001")
    headers = auth_headers(citizen)
    body = {
        "points": 60,
        "amount": "30.00",
        "bank_name": "National Bank",
        "account_holder": "Noor Resident",
        "account_number": "123456789012",
    }

    created = client.post("/rewards/cashouts", json=body, headers=headers)
    assert created.status_code == 201, created.text
    cashout_id = created.json()["id"]
    assert client.post("/rewards/cashouts", json={**body, "account_number": "12"}, headers=headers).status_code == 422
    too_much = client.post("/rewards/cashouts", json={**body, "points": 500}, headers=headers)
    assert too_much.json()["code"] == "insufficient_balance"

    pending = client.get("/admin/cashouts/?status=pending", headers=admin_headers).json()
    assert [item["id"] for item in pending] == [cashout_id]
    assert pending[0]["user"]["phone_number"] == "+967700000001"

    approved = client.post(f"/admin/cashouts/{cashout_id}/approve", headers=admin_headers)
    assert approved.status_code == 200, approved.text
    assert approved.json()["status"] == "completed"
    assert client.post(f"/admin/cashouts/{cashout_id}/cancel", headers=admin_headers).status_code == 409
    assert client.get("/auth/me", headers=headers).json()["points_balance"] == 40
    assert [item["status"] for item in client.get("/rewards/cashouts", headers=headers).json()] == ["completed"]

    assert client.delete(f"/admin/cashouts/{cashout_id}", headers=admin_headers).status_code == 204
    assert client.post("/admin/cashouts/9999/approve", headers=admin_headers).status_code == 404


def test_badges_and_settings_over_http(client, db_session, make_user, auth_headers):
    from ecopoints.services.badges import seed_default_badges

    seed_default_badges(db_session)
    headers = auth_headers(make_user(role="admin"))
    citizen = make_user()

    catalogue = client.get("/admin/points/badges", headers=headers).json()
    badge_id = catalogue[0]["id"]
    granted = client.post(f"/admin/points/{citizen.id}/badges/{badge_id}", headers=headers)
    assert granted.status_code == 201, granted.text
    assert granted.json()["badge"]["id"] == badge_id

    duplicate = client.post(f"/admin/points/{citizen.id}/badges/{badge_id}", headers=headers)
    assert duplicate.status_code == 409
    assert duplicate.json()["code"] == "conflict"

    mine = client.get("/rewards/badges", headers=auth_headers(citizen)).json()
    assert [badge["id"] for badge in mine] == [badge_id]
    assert client.delete(f"/admin/points/{citizen.id}/badges/{badge_id}", headers=headers).status_code == 204
    assert client.get(f"/admin/points/{citizen.id}/badges", headers=headers).json() == []

    assert client.get("/admin/points/settings", headers=headers).json()["recycling_per_kg"] == 10
    saved = client.put(
        "/admin/points/settings",
        json={"auto_grant_enabled": False, "recycling_per_kg": 8, "organic_per_kg": 4, "donation_per_piece": 1},
        headers=headers,
    )
    assert saved.json()["auto_grant_enabled"] is False
    assert client.get("/admin/points/settings", headers=headers).json()["recycling_per_kg"] == 8
