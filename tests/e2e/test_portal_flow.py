from payslip_app.auth import get_api_user_by_email

REGISTRATION = {
    "name": "Dev Person",
    "email": "dev@example.com",
    "password": "password123",
    "confirmPassword": "password123",
}


def _register(client, **overrides):
    return client.post("/api/register", data={**REGISTRATION, **overrides}, follow_redirects=False)


def test_portal_pages_render(client):
    assert "Malaysian Payslip API" in client.get("/api").text
    docs = client.get("/api/docs")
    assert "X-API-Key" in docs.text
    assert "http://localhost:8000/api/calculate" in docs.text


def test_registration_validation(client):
    assert "All fields are required" in _register(client, name="").text
    assert "at least 8 characters" in _register(client, password="short", confirmPassword="short").text
    assert "Passwords do not match" in _register(client, confirmPassword="password124").text
    assert _register(client, email="bad-email").status_code == 400


def test_register_login_and_manage_keys(client):
    resp = _register(client)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/api/dashboard"
    assert "Welcome, Dev Person" in client.get("/api/dashboard").text

    assert "already exists" in _register(client).text

    resp = client.post("/api/dashboard?action=generate", data={"keyName": ""}, follow_redirects=False)
    assert resp.headers["location"] == "/api/dashboard?error=Key%20name%20is%20required"
    resp = client.post("/api/dashboard?action=generate", data={"keyName": "Production"})
    assert "API key generated successfully" in resp.text

    store = client.app.state.context.store
    user = get_api_user_by_email(store, "dev@example.com")
    api_key = user.api_keys[0]
    assert api_key.key in resp.text

    calc = client.post("/api/calculate", json={"salary": 3000}, headers={"X-API-Key": api_key.key})
    assert calc.status_code == 200
    assert get_api_user_by_email(store, "dev@example.com").api_keys[0].usage_count == 1

    resp = client.post("/api/dashboard?action=revoke", data={"keyId": ""}, follow_redirects=False)
    assert "error=Key%20ID%20is%20required" in resp.headers["location"]
    resp = client.post("/api/dashboard?action=revoke", data={"keyId": api_key.id})
    assert "API key revoked successfully" in resp.text
    assert client.post("/api/calculate", json={}, headers={"X-API-Key": api_key.key}).status_code == 401

    resp = client.post("/api/dashboard?action=explode", data={}, follow_redirects=False)
    assert "error=Invalid%20action" in resp.headers["location"]


def test_login_logout_cycle(client):
    _register(client)
    client.get("/api/logout")
    assert client.get("/api/dashboard", follow_redirects=False).headers["location"] == "/api/login"

    bad = client.post("/api/login", data={"email": "dev@example.com", "password": "wrong-password"})
    assert bad.status_code == 400
    assert "Invalid email or password" in bad.text

    good = client.post("/api/login", data={"email": "dev@example.com", "password": "password123"}, follow_redirects=False)
    assert good.headers["location"] == "/api/dashboard"
    client.get("/api/v1/logout")
    assert client.get("/api/dashboard", follow_redirects=False).status_code == 303


def test_stats_show_masked_internal_keys(client, api_key):
    assert client.get("/api/stats", follow_redirects=False).headers["location"] == "/api/login"
    client.post("/api/calculate", json={"salary": 1000}, headers={"X-API-Key": api_key})
    client.post("/api/save-payslip", json={"userId": "siti@example.com", "data": {"companyName": "X"}})
    _register(client)

    resp = client.get("/api/stats")
    assert resp.status_code == 200
    assert "default-internal" in resp.text
    assert f"{api_key[:8]}...{api_key[-4:]}" in resp.text
    assert api_key not in resp.text
    assert "Total API requests:</strong> 1" in resp.text
    assert "Total payslips generated:</strong> 1" in resp.text
