"""Registration, login gating and approval over HTTP."""
from partner_portal.models.partner import ApprovalStatus

from conftest import PASSWORD, auth_headers, create_partner

REGISTRATION = {
    "email": "New.Dealer@Example.com",
    "password": "dealer-pass",
    "phone": "9123456780",
    "first_name": "Anita",
    "company_name": "Anita Water Works",
    "gst_number": "36aabcu9603r1zm",
    "role": "Sub Dealer",
}


async def test_registration_starts_pending(client):
    response = await client.post("/api/v1/auth/register", json=REGISTRATION)

    assert response.status_code == 201
    partner = response.json()["partner"]
    assert partner["email"] == "new.dealer@example.com"
    assert partner["role"] == "sub dealer"
    assert partner["approval_status"] == "pending"
    assert partner["gst_number"] == "36AABCU9603R1ZM"


async def test_register_rejects_admin_role_and_bad_gst(client):
    response = await client.post("/api/v1/auth/register", json={**REGISTRATION, "role": "admin"})
    assert response.status_code == 422

    response = await client.post("/api/v1/auth/register", json={**REGISTRATION, "gst_number": "12345"})
    assert response.status_code == 422


async def test_duplicate_email_is_rejected(client, dealer):
    response = await client.post(
        "/api/v1/auth/register", json={**REGISTRATION, "email": "dealer@example.com"}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Email already registered"


async def test_pending_account_cannot_log_in_until_approved(client, admin):
    await client.post("/api/v1/auth/register", json=REGISTRATION)
    login = {"email": "new.dealer@example.com", "password": "dealer-pass"}

    response = await client.post("/api/v1/auth/login", json=login)
    assert response.status_code == 403
    assert "pending approval" in response.json()["error"]
    assert "access_token" not in response.json()

    partners = await client.get(
        "/api/v1/partners", params={"approval_status": "pending"}, headers=auth_headers(admin)
    )
    assert partners.json()["total"] == 1
    partner_id = partners.json()["items"][0]["id"]

    response = await client.put(
        f"/api/v1/partners/{partner_id}/approval",
        json={"status": "Approved"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["approved_by"] == str(admin.id)

    response = await client.post("/api/v1/auth/login", json=login)
    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["partner"]["approval_status"] == "approved"

    me = await client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"}
    )
    assert me.status_code == 200
    assert me.json()["total_orders"] == 0


async def test_wrong_password(client, dealer):
    response = await client.post(
        "/api/v1/auth/login", json={"email": "dealer@example.com", "password": "not-it"}
    )
    assert response.status_code == 401


async def test_rejected_account_cannot_log_in(client, db):
    await create_partner(db, "rejected@example.com", approval_status=ApprovalStatus.REJECTED)

    response = await client.post(
        "/api/v1/auth/login", json={"email": "rejected@example.com", "password": PASSWORD}
    )
    assert response.status_code == 403
    assert "rejected" in response.json()["error"]


async def test_rejection_revokes_existing_token(client, admin, dealer):
    headers = auth_headers(dealer)
    assert (await client.get("/api/v1/auth/me", headers=headers)).status_code == 200

    response = await client.put(
        f"/api/v1/partners/{dealer.id}/approval",
        json={"status": "rejected"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["approved_at"] is None

    assert (await client.get("/api/v1/auth/me", headers=headers)).status_code == 403


async def test_only_admin_can_approve(client, db, dealer):
    other = await create_partner(db, "pending@example.com", approval_status=ApprovalStatus.PENDING)

    response = await client.put(
        f"/api/v1/partners/{other.id}/approval",
        json={"status": "approved"},
        headers=auth_headers(dealer),
    )
    assert response.status_code == 403


async def test_admin_onboarded_partner_can_log_in(client, admin):
    response = await client.post(
        "/api/v1/partners",
        json={**REGISTRATION, "email": "onboarded@example.com"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    assert response.json()["approval_status"] == "approved"

    response = await client.post(
        "/api/v1/auth/login", json={"email": "onboarded@example.com", "password": "dealer-pass"}
    )
    assert response.status_code == 200


async def test_missing_token(client):
    response = await client.get("/api/v1/auth/me")
    assert response.status_code in (401, 403)


async def test_partner_edits_only_display_name_and_address(client, dealer):
    response = await client.patch(
        "/api/v1/auth/me",
        json={"display_name": "Kumar Aqua", "address": "12 MG Road", "phone": "9000000001"},
        headers=auth_headers(dealer),
    )

    assert response.status_code == 200
    partner = response.json()
    assert partner["display_name"] == "Kumar Aqua"
    assert partner["address"] == "12 MG Road"
    assert partner["phone"] == "9876543210"
