"""HTTP surface: cookie sessions, envelopes and status codes."""

NETFLIX = {
    "name": "Netflix",
    "price": "19.99",
    "category": "Streaming",
    "billingCycle": "Monthly",
    "startDate": "2024-01-01",
}


def _signup(client, name="A", email="a@x.com", password="secret1"):
    return client.post(
        "/api/auth/signup",
        json={"name": name, "email": email, "password": password, "confirmPassword": password},
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_signup_sets_session_cookie(client):
    response = _signup(client)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["user"]["email"] == "a@x.com"
    assert "passwordHash" not in body["user"]
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith("token=")
    assert "HttpOnly" in set_cookie
    assert "samesite=strict" in set_cookie.lower()

    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.json()["user"]["id"] == body["user"]["id"]


def test_duplicate_signup_is_a_conflict(client):
    _signup(client)
    response = _signup(client, name="B")
    assert response.status_code == 409
    assert response.json() == {"success": False, "message": "Email already in use"}


def test_signup_validation_errors_use_the_envelope(client):
    response = client.post("/api/auth/signup", json={"name": "A", "email": "a@x.com"})
    assert response.status_code == 400
    assert response.json()["success"] is False

    response = _signup(client, password="abc")
    assert response.status_code == 400
    assert response.json()["message"] == "Password must be at least 6 characters long"


def test_protected_routes_require_a_cookie(client):
    for method, path in [
        ("get", "/api/auth/me"),
        ("get", "/api/subscriptions"),
        ("post", "/api/subscriptions/delete-all"),
        ("get", "/api/user/email-history"),
        ("delete", "/api/auth/delete-account"),
    ]:
        response = getattr(client, method)(path)
        assert response.status_code == 401, path
        assert response.json()["success"] is False


def test_garbage_cookie_is_rejected(client):
    client.cookies.set("token", "not-a-jwt")
    assert client.get("/api/auth/me").status_code == 401


def test_login_and_logout(client):
    _signup(client)
    client.post("/api/auth/logout")
    assert client.get("/api/auth/me").status_code == 401

    bad = client.post("/api/auth/login", json={"email": "a@x.com", "password": "wrong-one"})
    assert bad.status_code == 401
    assert bad.json()["message"] == "Invalid credentials"

    good = client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret1"})
    assert good.status_code == 200
    assert client.get("/api/auth/me").status_code == 200


def test_subscription_crud(client):
    _signup(client)

    created = client.post("/api/subscriptions", json=NETFLIX)
    assert created.status_code == 201
    subscription = created.json()["subscription"]
    assert subscription["billingCycle"] == "Monthly"
    assert subscription["nextPayment"] == "2024-02-01"

    listed = client.get("/api/subscriptions").json()["subscriptions"]
    assert [item["id"] for item in listed] == [subscription["id"]]

    updated = client.put(f"/api/subscriptions/{subscription['id']}", json={"price": 24.99})
    assert updated.status_code == 200
    assert updated.json()["subscription"]["price"] == "24.99"

    deleted = client.delete(f"/api/subscriptions/{subscription['id']}")
    assert deleted.json() == {"success": True, "message": "Subscription deleted successfully"}
    assert client.get(f"/api/subscriptions/{subscription['id']}").status_code == 404


def test_subscriptions_of_other_users_are_not_found(client):
    _signup(client)
    subscription_id = client.post("/api/subscriptions", json=NETFLIX).json()["subscription"]["id"]
    client.post("/api/auth/logout")

    _signup(client, name="B", email="b@x.com")
    assert client.get(f"/api/subscriptions/{subscription_id}").status_code == 404
    assert client.delete(f"/api/subscriptions/{subscription_id}").status_code == 404


def test_invalid_billing_cycle(client):
    _signup(client)
    response = client.post("/api/subscriptions", json={**NETFLIX, "billingCycle": "Fortnightly"})
    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid billing cycle")


def test_delete_all(client):
    _signup(client)

    empty = client.post("/api/subscriptions/delete-all").json()
    assert empty["message"] == "No subscriptions found to delete"
    assert empty["count"] == 0

    for name in ("Netflix", "Spotify"):
        client.post("/api/subscriptions", json={**NETFLIX, "name": name})
    result = client.post("/api/subscriptions/delete-all").json()
    assert (result["count"], result["archived"], result["skipped"]) == (2, 2, 0)
    assert client.get("/api/subscriptions").json()["subscriptions"] == []


def test_profile_and_preferences(client):
    _signup(client)

    profile = client.put("/api/auth/profile", json={"name": "Alice", "bio": "hi"}).json()["user"]
    assert (profile["name"], profile["bio"]) == ("Alice", "hi")
    assert profile["notificationPreferences"]["reminderFrequency"] == "3days"

    response = client.put(
        "/api/auth/notification-preferences",
        json={"paymentReminders": False, "reminderFrequency": "weekly"},
    )
    assert response.status_code == 200
    assert response.json()["notificationPreferences"] == {
        "paymentReminders": False,
        "reminderFrequency": "weekly",
        "monthlyReports": True,
    }


def test_change_email_and_history(client):
    _signup(client)

    response = client.post(
        "/api/auth/change-email",
        json={"newEmail": "new@x.com", "password": "secret1"},
        headers={"x-forwarded-for": "203.0.113.7, 10.0.0.1", "user-agent": "pytest"},
    )
    assert response.status_code == 200
    assert response.json()["data"] == {"previousEmail": "a@x.com", "newEmail": "new@x.com"}
    assert client.get("/api/auth/me").json()["user"]["email"] == "new@x.com"

    history = client.get("/api/user/email-history").json()["data"]
    entry = history["emailHistory"][0]
    assert (entry["previousEmail"], entry["ipAddress"], entry["userAgent"]) == ("a@x.com", "203.0.113.7", "pytest")
    assert history["pagination"] == {"total": 1, "page": 1, "limit": 10, "pages": 1}

    wrong = client.post("/api/auth/change-email", json={"newEmail": "c@x.com", "password": "nope-nope"})
    assert wrong.status_code == 401


def test_forgot_password_responses_are_identical(client, sender):
    _signup(client)

    known = client.post("/api/auth/forgot-password", json={"email": "a@x.com"})
    unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@x.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()


def test_reset_password_with_bad_token(client):
    _signup(client)
    response = client.post(
        "/api/auth/reset-password",
        json={"email": "a@x.com", "token": "0" * 64, "password": "brand-new"},
    )
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired reset token"


def test_change_password(client):
    _signup(client)
    response = client.post(
        "/api/auth/change-password",
        json={"currentPassword": "secret1", "newPassword": "secret2", "confirmPassword": "secret2"},
    )
    assert response.status_code == 200
    client.post("/api/auth/logout")
    assert client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret2"}).status_code == 200


def test_delete_account_clears_cookie(client):
    _signup(client)
    client.post("/api/subscriptions", json=NETFLIX)

    response = client.delete("/api/auth/delete-account")

    assert response.status_code == 200
    assert response.json()["message"] == "Account successfully deleted"
    assert 'token=""' in response.headers["set-cookie"] or "Max-Age=0" in response.headers["set-cookie"]
    assert client.get("/api/auth/me").status_code == 401
    assert client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret1"}).status_code == 401


def test_admin_routes_are_for_the_configured_user_only(client):
    _signup(client, name="Admin", email="admin@x.com")
    client.post("/api/auth/logout")

    _signup(client)
    client.post("/api/subscriptions", json=NETFLIX)
    user_id = client.get("/api/auth/me").json()["user"]["id"]
    forbidden = client.get("/api/admin/user-registry")
    assert forbidden.status_code == 403
    assert forbidden.json() == {"success": False, "message": "Unauthorized access"}
    client.delete("/api/auth/delete-account")

    client.post("/api/auth/login", json={"email": "admin@x.com", "password": "secret1"})
    deleted = client.get("/api/admin/deleted-users", params={"originalId": user_id}).json()
    assert deleted["pagination"]["total"] == 1
    record = deleted["data"][0]
    assert (record["subscriptionCount"], record["totalSpent"], record["deletedBy"]) == (1, "19.99", "user")

    archived = client.get("/api/admin/deleted-subscriptions", params={"userId": user_id}).json()
    assert archived["data"][0]["name"] == "Netflix"

    registry = client.get("/api/admin/user-registry").json()
    assert [item["currentEmail"] for item in registry["data"]] == ["admin@x.com"]

    bad_method = client.get("/api/admin/deleted-subscriptions", params={"deletionMethod": "shredded"})
    assert bad_method.status_code == 400


def test_admin_can_delete_a_user(client):
    _signup(client, name="Admin", email="admin@x.com")
    client.post("/api/auth/logout")
    user_id = _signup(client).json()["user"]["id"]
    client.post("/api/auth/logout")
    client.post("/api/auth/login", json={"email": "admin@x.com", "password": "secret1"})

    response = client.delete(f"/api/admin/users/{user_id}", params={"reason": "spam"})

    assert response.status_code == 200
    record = response.json()["deletedUser"]
    assert (record["originalId"], record["deletedBy"], record["reason"]) == (user_id, "admin", "spam")
    assert client.delete(f"/api/admin/users/{user_id}").status_code == 404
