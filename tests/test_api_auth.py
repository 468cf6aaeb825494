import json
from urllib.parse import parse_qs, urlparse

import httpx
from jose import jwt

from conftest import API, auth_header, login, signup
from expense_tracker.auth.federation import OAuth2Provider
from expense_tracker.auth.oauth import OAuthClient, ProviderConfig, encode_state
from expense_tracker.core.errors import TOKEN_REJECTION_MESSAGES, TokenRejectionReason
from expense_tracker.main import app


def test_root_and_health_are_public(client):
    assert client.get("/").status_code == 200
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] in ("healthy", "degraded")
    assert "X-Request-ID" in response.headers


def test_signup_creates_user_role(client):
    data = signup(client, "a@x.com", first_name="Ada", last_name="Lovelace")
    assert data["email"] == "a@x.com"
    assert data["firstName"] == "Ada"
    assert data["role"] == "user"
    assert "passwordHash" not in data and "password_hash" not in data


def test_signup_duplicate_email_conflicts(client):
    signup(client, "a@x.com")
    response = client.post(f"{API}/auth/signup", json={"email": "a@x.com", "password": "other"})
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "conflict"
    assert body["statusCode"] == 409


def test_signup_validation_error_is_400(client):
    response = client.post(f"{API}/auth/signup", json={"email": "not-an-email", "password": "p1"})
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_login_failure_is_uniform(client):
    signup(client, "a@x.com")
    wrong = client.post(f"{API}/auth/login", json={"email": "a@x.com", "password": "nope"})
    unknown = client.post(f"{API}/auth/login", json={"email": "b@x.com", "password": "p1"})
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json()["message"] == unknown.json()["message"] == "Invalid email or password"


def test_end_to_end_session(client, clock):
    signup(client, "a@x.com", password="p1")
    tokens = login(client, "a@x.com", "p1")
    assert tokens["access_token"] and tokens["refresh_token"]
    assert tokens["expires_in"] == 15 * 60

    profile = client.get(f"{API}/users/profile", headers=auth_header(tokens["access_token"]))
    assert profile.status_code == 200
    assert profile.json()["data"]["email"] == "a@x.com"

    clock.advance(minutes=16)
    expired = client.get(f"{API}/users/profile", headers=auth_header(tokens["access_token"]))
    assert expired.status_code == 401
    assert expired.json()["message"] == TOKEN_REJECTION_MESSAGES[TokenRejectionReason.EXPIRED]

    refreshed = client.post(f"{API}/auth/refresh", headers=auth_header(tokens["refresh_token"]))
    assert refreshed.status_code == 200
    new_tokens = refreshed.json()["data"]
    assert new_tokens["message"] == "Token refreshed successfully"
    assert new_tokens["refresh_token"] != tokens["refresh_token"]

    assert client.get(
        f"{API}/users/profile", headers=auth_header(new_tokens["access_token"])
    ).status_code == 200

    replay = client.post(f"{API}/auth/refresh", headers=auth_header(tokens["refresh_token"]))
    assert replay.status_code == 401
    assert replay.json()["message"] == "Invalid refresh token"


def test_bearer_failures_are_distinguishable(client, issuer):
    signup(client, "a@x.com")
    tokens = login(client, "a@x.com")
    url = f"{API}/users/profile"

    def message(headers):
        response = client.get(url, headers=headers)
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        return response.json()["message"]

    assert message({}) == TOKEN_REJECTION_MESSAGES[TokenRejectionReason.MISSING]
    assert message({"Authorization": f"Token {tokens['access_token']}"}) == \
        TOKEN_REJECTION_MESSAGES[TokenRejectionReason.MALFORMED_HEADER]
    assert message({"Authorization": "Bearer"}) == \
        TOKEN_REJECTION_MESSAGES[TokenRejectionReason.MALFORMED_HEADER]
    assert message(auth_header(tokens["refresh_token"])) == \
        TOKEN_REJECTION_MESSAGES[TokenRejectionReason.TYPE_MISMATCH]
    assert message(auth_header(tokens["access_token"] + "x")) == \
        TOKEN_REJECTION_MESSAGES[TokenRejectionReason.INVALID_SIGNATURE]

    forged = jwt.encode(
        {"sub": "1", "type": "access", "email": "a@x.com", "role": "admin", "exp": 9999999999},
        "guessed-secret",
        algorithm="HS256",
    )
    assert message(auth_header(forged)) == TOKEN_REJECTION_MESSAGES[TokenRejectionReason.INVALID_SIGNATURE]


def test_refresh_rejects_access_token(client):
    signup(client, "a@x.com")
    tokens = login(client, "a@x.com")
    response = client.post(f"{API}/auth/refresh", headers=auth_header(tokens["access_token"]))
    assert response.status_code == 401
    assert response.json()["message"] == TOKEN_REJECTION_MESSAGES[TokenRejectionReason.TYPE_MISMATCH]


def test_logout_twice_then_refresh_fails(client):
    signup(client, "a@x.com")
    tokens = login(client, "a@x.com")
    headers = auth_header(tokens["access_token"])

    assert client.post(f"{API}/auth/logout", headers=headers).status_code == 200
    assert client.post(f"{API}/auth/logout", headers=headers).status_code == 200

    response = client.post(f"{API}/auth/refresh", headers=auth_header(tokens["refresh_token"]))
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid refresh token"


def test_logout_requires_authentication(client):
    assert client.post(f"{API}/auth/logout").status_code == 401


def test_unknown_route_passes_through_to_404(client):
    response = client.get(f"{API}/nope")
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


# =============================================================================
# OAuth
# =============================================================================

def _github_client():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/token":
            return httpx.Response(200, json={"access_token": "gh-token"})
        if request.url.path == "/user":
            return httpx.Response(200, json={
                "id": 7, "login": "octo", "name": "Octo Cat", "email": "octo@x.com",
            })
        return httpx.Response(404)

    providers = {
        OAuth2Provider.GITHUB: ProviderConfig(
            auth_url="https://github.test/authorize",
            token_url="https://github.test/token",
            userinfo_url="https://api.github.test/user",
            scope="user:email",
            client_id="cid",
            client_secret="csecret",
            callback_url="http://testserver/api/v1/auth/github/callback",
        ),
    }
    return OAuthClient(providers=providers, transport=httpx.MockTransport(handler))


def test_oauth_start_redirects_with_state(client):
    app.state.oauth_client = _github_client()
    response = client.get(
        f"{API}/auth/github",
        params={"redirect_uri": "https://app.example.com/done"},
        follow_redirects=False,
    )
    assert response.status_code == 307
    location = response.headers["location"]
    assert location.startswith("https://github.test/authorize?")
    assert parse_qs(urlparse(location).query)["state"] == [encode_state("https://app.example.com/done")]


def test_oauth_unknown_provider_is_404(client):
    app.state.oauth_client = _github_client()
    assert client.get(f"{API}/auth/myspace", follow_redirects=False).status_code == 404


def test_oauth_callback_json_payload(client):
    app.state.oauth_client = _github_client()
    response = client.get(f"{API}/auth/github/callback", params={"code": "abc"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "octo@x.com"
    assert (data["firstName"], data["lastName"]) == ("Octo", "Cat")
    assert data["role"] == "user"

    # The federated account can use its tokens right away
    assert client.get(f"{API}/users/profile", headers=auth_header(data["access_token"])).status_code == 200


def test_oauth_callback_redirects_to_state_target(client):
    app.state.oauth_client = _github_client()
    target = "https://app.example.com/done"
    response = client.get(
        f"{API}/auth/github/callback",
        params={"code": "abc", "state": encode_state(target)},
        follow_redirects=False,
    )
    assert response.status_code == 302
    location = response.headers["location"]
    assert location.startswith(target + "?")

    query = parse_qs(urlparse(location).query)
    assert query["access_token"][0] and query["refresh_token"][0]
    user = json.loads(query["user"][0])
    assert user["email"] == "octo@x.com"
    assert set(user) == {"id", "email", "firstName", "lastName", "role"}


def test_oauth_callback_echoes_target_verbatim(client):
    app.state.oauth_client = _github_client()
    target = "https://app.example.com/done?next=/home"
    response = client.get(
        f"{API}/auth/github/callback",
        params={"code": "abc", "state": encode_state(target)},
        follow_redirects=False,
    )
    assert response.status_code == 302
    assert response.headers["location"].startswith(target + "?access_token=")


def test_oauth_callback_without_code_is_rejected(client):
    app.state.oauth_client = _github_client()
    response = client.get(f"{API}/auth/github/callback", params={"error": "access_denied"})
    assert response.status_code == 401


def test_oauth_login_for_existing_local_account(client):
    signup(client, "octo@x.com", first_name="Local", last_name="Name")
    app.state.oauth_client = _github_client()
    data = client.get(f"{API}/auth/github/callback", params={"code": "abc"}).json()["data"]
    assert data["firstName"] == "Local"
    assert login(client, "octo@x.com")["id"] == data["id"]


def test_expiry_window_is_access_ttl(client, clock):
    signup(client, "a@x.com")
    tokens = login(client, "a@x.com")
    clock.advance(seconds=tokens["expires_in"] - 1)
    assert client.get(f"{API}/users/profile", headers=auth_header(tokens["access_token"])).status_code == 200
    clock.advance(seconds=1)
    assert client.get(f"{API}/users/profile", headers=auth_header(tokens["access_token"])).status_code == 401
