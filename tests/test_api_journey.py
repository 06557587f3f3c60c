from __future__ import annotations

from equiptrack.models import User


def _register(client, email: str, first_name: str = "Alice") -> dict:
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": "Secret123", "firstName": first_name, "lastName": "Martin"},
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_register_login_create_assign_and_conflict(client) -> None:
    registered = _register(client, "alice@example.com")
    assert registered["user"]["email"] == "alice@example.com"
    assert registered["user"]["firstName"] == "Alice"
    assert "passwordHash" not in registered["user"]

    login = client.post("/api/auth/login", json={"email": "ALICE@example.com", "password": "Secret123"})
    assert login.status_code == 200
    assert login.headers["Cache-Control"] == "no-store"
    headers = _auth(login.json()["data"]["token"])

    first = client.post("/api/equipments", json={"name": "Drill", "category": "Tools"}, headers=headers)
    assert first.status_code == 201
    first_data = first.json()["data"]
    assert first_data["status"] == "IN_SERVICE"
    assert first_data["eventCount"] == 1
    assert first_data["creator"]["email"] == "alice@example.com"

    assigned = client.post(f"/api/equipments/{first_data['id']}/nfc-tag", json={"tagId": "NFC-001"}, headers=headers)
    assert assigned.status_code == 200
    assert assigned.json()["data"]["tag"]["tagId"] == "NFC-001"

    second = client.post("/api/equipments", json={"name": "Ladder", "category": "Safety"}, headers=headers)
    second_id = second.json()["data"]["id"]
    conflict = client.post(f"/api/equipments/{second_id}/nfc-tag", json={"tagId": "NFC-001"}, headers=headers)
    assert conflict.status_code == 409
    assert conflict.json()["code"] == "TAG_ALREADY_ASSIGNED"
    assert "Drill" in conflict.json()["error"]

    detail = client.get(f"/api/equipments/{first_data['id']}", headers=headers).json()["data"]
    assert detail["tag"]["tagId"] == "NFC-001"
    assert {event["metadata"]["action"] for event in detail["events"]} == {"create", "tag_assign"}
    assert detail["events"][0]["user"]["firstName"] == "Alice"

    scanned = client.get("/api/equipments/by-tag/NFC-001", headers=headers)
    assert scanned.status_code == 200
    assert scanned.json()["data"]["id"] == first_data["id"]


def test_missing_and_invalid_tokens_are_rejected(client) -> None:
    missing = client.get("/api/equipments")
    assert missing.status_code == 401
    assert missing.json()["code"] == "TOKEN_MISSING"

    invalid = client.get("/api/equipments", headers=_auth("garbage"))
    assert invalid.status_code == 401
    assert invalid.json()["code"] == "TOKEN_INVALID"
    assert invalid.headers["WWW-Authenticate"] == "Bearer"


def test_deactivated_user_is_locked_out(client, db_session) -> None:
    token = _register(client, "alice@example.com")["token"]
    assert client.get("/api/auth/me", headers=_auth(token)).status_code == 200

    user = db_session.query(User).filter(User.email == "alice@example.com").one()
    user.is_active = False
    db_session.commit()

    response = client.get("/api/auth/me", headers=_auth(token))
    assert response.status_code == 401
    assert response.json()["code"] == "TOKEN_INVALID"


def test_validation_errors_use_envelope(client) -> None:
    weak = client.post(
        "/api/auth/register",
        json={"email": "alice@example.com", "password": "alllowercase1", "firstName": "Alice", "lastName": "Martin"},
    )
    assert weak.status_code == 400
    assert weak.json()["code"] == "VALIDATION_ERROR"
    assert any(item["field"] == "password" for item in weak.json()["details"])

    token = _register(client, "alice@example.com")["token"]
    bad_tag = client.post(
        "/api/equipments",
        json={"name": "D", "category": "Tools"},
        headers=_auth(token),
    )
    assert bad_tag.status_code == 400
    assert any(item["field"] == "name" for item in bad_tag.json()["details"])


def test_duplicate_registration_is_conflict(client) -> None:
    _register(client, "alice@example.com")

    response = client.post(
        "/api/auth/register",
        json={"email": "Alice@Example.com", "password": "Secret123", "firstName": "Alice", "lastName": "Martin"},
    )

    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATE_EMAIL"


def test_list_update_statistics_export_and_delete(client) -> None:
    headers = _auth(_register(client, "alice@example.com")["token"])
    ids = []
    for index in range(3):
        response = client.post(
            "/api/equipments",
            json={"name": f"Item {index}", "category": "Tools", "location": "Workshop A"},
            headers=headers,
        )
        ids.append(response.json()["data"]["id"])

    listing = client.get("/api/equipments?page=0&limit=500&sortBy=name&sortOrder=asc", headers=headers)
    assert listing.status_code == 200
    pagination = listing.json()["data"]["pagination"]
    assert pagination == {
        "currentPage": 1,
        "totalPages": 1,
        "totalItems": 3,
        "itemsPerPage": 20,
        "hasNextPage": False,
        "hasPrevPage": False,
    }
    assert [item["name"] for item in listing.json()["data"]["equipments"]] == ["Item 0", "Item 1", "Item 2"]

    updated = client.put(f"/api/equipments/{ids[0]}", json={"status": "LOANED"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["data"]["status"] == "LOANED"
    assert updated.json()["data"]["eventCount"] == 2

    stats = client.get("/api/equipments/statistics", headers=headers).json()["data"]
    assert stats["totalEquipments"] == 3
    assert stats["byStatus"] == {"IN_SERVICE": 2, "LOANED": 1}
    assert stats["byCategory"] == [{"category": "Tools", "count": 3}]
    assert stats["recentActivity"][0]["equipment"]["name"]

    export = client.get("/api/equipments/export", headers=headers)
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    assert "equipments_export_" in export.headers["content-disposition"]
    assert len(export.text.strip().splitlines()) == 4

    deleted = client.delete(f"/api/equipments/{ids[0]}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json()["data"]["success"] is True
    assert client.get(f"/api/equipments/{ids[0]}", headers=headers).status_code == 404


def test_profile_and_password_change(client) -> None:
    headers = _auth(_register(client, "alice@example.com")["token"])

    profile = client.get("/api/auth/me", headers=headers).json()["data"]
    assert profile["counts"] == {"equipmentsCreated": 0, "events": 0}

    updated = client.put("/api/auth/me", json={"lastName": "Durand"}, headers=headers)
    assert updated.json()["data"]["lastName"] == "Durand"

    mismatch = client.post(
        "/api/auth/change-password",
        json={"currentPassword": "Secret123", "newPassword": "Changed456", "confirmPassword": "Changed457"},
        headers=headers,
    )
    assert mismatch.status_code == 400

    changed = client.post(
        "/api/auth/change-password",
        json={"currentPassword": "Secret123", "newPassword": "Changed456", "confirmPassword": "Changed456"},
        headers=headers,
    )
    assert changed.status_code == 200
    relogin = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "Changed456"})
    assert relogin.status_code == 200


def test_forgot_password_answers_the_same_for_unknown_accounts(client, redis_stub) -> None:
    _register(client, "alice@example.com")

    known = client.post("/api/auth/forgot-password", json={"email": "alice@example.com"})
    unknown = client.post("/api/auth/forgot-password", json={"email": "nobody@example.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()
    assert len(redis_stub.store) == 1


def test_security_headers_are_set(client) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
