from __future__ import annotations

REGISTRATION = {
    "email": "a@x.com",
    "username": "alice1",
    "password": "Secret123!",
    "confirmationPassword": "Secret123!",
}


def _register_and_verify(client, mailer) -> dict:
    created = client.post("/v1/accounts", json=REGISTRATION)
    assert created.status_code == 201
    verified = client.post("/v1/accounts/verify", json={"token": mailer.token_for("a@x.com")})
    assert verified.status_code == 200
    return verified.json()


def test_register_returns_pending_account_without_secrets(api_client):
    client, mailer = api_client
    response = client.post("/v1/accounts", json=REGISTRATION)

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "a@x.com"
    assert body["username"] == "alice1"
    assert body["active"] is False
    assert body["state"] == "pending_verification"
    assert "password_hash" not in body
    assert "verification_token" not in body
    assert len(mailer.sent) == 1


def test_register_reports_first_validation_error(api_client):
    client, _ = api_client
    response = client.post(
        "/v1/accounts",
        json={**REGISTRATION, "username": "x", "confirmationPassword": "nope"},
    )
    assert response.status_code == 422
    assert response.json() == {
        "detail": "Username must be at least 3 characters long.",
        "field": "username",
    }


def test_register_with_non_string_field_reports_that_field(api_client):
    client, mailer = api_client
    response = client.post("/v1/accounts", json={**REGISTRATION, "email": 5})

    assert response.status_code == 422
    body = response.json()
    assert body["field"] == "email"
    assert isinstance(body["detail"], str)
    assert mailer.sent == []


def test_register_duplicate_username_conflicts(api_client):
    client, _ = api_client
    client.post("/v1/accounts", json=REGISTRATION)
    response = client.post("/v1/accounts", json={**REGISTRATION, "email": "b@x.com"})
    assert response.status_code == 409
    assert response.json()["field"] == "username"


def test_register_mail_failure_returns_bad_gateway(api_client):
    client, mailer = api_client
    mailer.fail = True
    response = client.post("/v1/accounts", json=REGISTRATION)
    assert response.status_code == 502


def test_verification_link_and_replay(api_client):
    client, mailer = api_client
    client.post("/v1/accounts", json=REGISTRATION)
    token = mailer.token_for("a@x.com")

    first = client.get(f"/v1/accounts/verify/{token}")
    second = client.get(f"/v1/accounts/verify/{token}")

    assert first.status_code == 200
    assert first.json()["active"] is True
    assert second.status_code == 404
    assert second.json()["detail"] == "invalid or already-used token"


def test_login_before_verification_is_unauthorized(api_client):
    client, _ = api_client
    client.post("/v1/accounts", json=REGISTRATION)
    response = client.post("/v1/sessions", json={"email": "a@x.com", "password": "Secret123!"})
    assert response.status_code == 401
    assert response.json()["detail"] == "You must first verify your email address."


def test_login_sets_session_cookie_and_me_resolves_it(api_client):
    client, mailer = api_client
    account = _register_and_verify(client, mailer)

    response = client.post("/v1/sessions", json={"email": "a@x.com", "password": "Secret123!"})
    assert response.status_code == 200
    body = response.json()
    assert body["account"]["account_id"] == account["account_id"]
    assert body["session_id"]
    assert "sid" in response.cookies

    me = client.get("/v1/me")
    assert me.status_code == 200
    assert me.json()["username"] == "alice1"

    bearer = client.get("/v1/me", headers={"Authorization": f"Bearer {body['session_id']}"})
    assert bearer.status_code == 200


def test_login_wrong_password_and_unknown_email(api_client):
    client, mailer = api_client
    _register_and_verify(client, mailer)

    wrong = client.post("/v1/sessions", json={"email": "a@x.com", "password": "nope"})
    unknown = client.post("/v1/sessions", json={"email": "z@x.com", "password": "Secret123!"})

    assert wrong.status_code == 401
    assert unknown.status_code == 401


def test_me_without_session_is_unauthorized(api_client):
    client, _ = api_client
    assert client.get("/v1/me").status_code == 401
    assert (
        client.get("/v1/me", headers={"Authorization": "Bearer garbage"}).status_code == 401
    )


def test_logout_clears_cookie(api_client):
    client, mailer = api_client
    _register_and_verify(client, mailer)
    client.post("/v1/sessions", json={"email": "a@x.com", "password": "Secret123!"})

    response = client.delete("/v1/sessions")
    assert response.status_code == 204
    assert client.get("/v1/me").status_code == 401


def test_get_account_is_limited_to_own_record(api_client):
    client, mailer = api_client
    account = _register_and_verify(client, mailer)
    client.post("/v1/sessions", json={"email": "a@x.com", "password": "Secret123!"})

    own = client.get(f"/v1/accounts/{account['account_id']}")
    other = client.get("/v1/accounts/someone-else")

    assert own.status_code == 200
    assert other.status_code == 404
