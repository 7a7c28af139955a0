API = "/api/v1"


async def test_business_registration_creates_profile(client):
    response = await client.post(
        f"{API}/auth/register",
        json={
            "email": "owner@acme.com",
            "password": "secret123",
            "business_name": "Acme Coffee",
            "industry": "Food",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["role"] == "business"
    assert "password_hash" not in body["user"]

    headers = {"Authorization": f"Bearer {body['access_token']}"}
    profile = (await client.get(f"{API}/businesses/me", headers=headers)).json()
    assert profile["name"] == "Acme Coffee"
    assert profile["industry"] == "Food"
    assert profile["status"] == "active"
    assert profile["contact_email"] == "owner@acme.com"


async def test_duplicate_email_rejected(client, make_business):
    await make_business(email="owner@acme.com")

    response = await client.post(
        f"{API}/auth/register/customer", json={"email": "OWNER@acme.com", "password": "secret123"}
    )

    assert response.status_code == 400
    assert response.json() == {"message": "Email already registered"}


async def test_short_password_rejected(client):
    response = await client.post(
        f"{API}/auth/register/customer", json={"email": "fan@acme.com", "password": "123"}
    )

    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid password")


async def test_login_and_me(client, make_customer):
    await make_customer(email="fan@acme.com")

    response = await client.post(f"{API}/auth/login", json={"email": "fan@acme.com", "password": "secret123"})
    assert response.status_code == 200

    headers = {"Authorization": f"Bearer {response.json()['access_token']}"}
    me = await client.get(f"{API}/auth/me", headers=headers)
    assert me.json()["email"] == "fan@acme.com"
    assert me.json()["role"] == "customer"


async def test_wrong_password(client, make_customer):
    await make_customer(email="fan@acme.com")

    response = await client.post(f"{API}/auth/login", json={"email": "fan@acme.com", "password": "wrong-pass"})

    assert response.status_code == 401
    assert response.json() == {"message": "Incorrect email or password"}
    assert response.headers["www-authenticate"] == "Bearer"


async def test_refresh_token_flow(client):
    response = await client.post(
        f"{API}/auth/register/customer", json={"email": "fan@acme.com", "password": "secret123"}
    )
    tokens = response.json()

    response = await client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "fan@acme.com"

    # an access token is not a refresh token
    response = await client.post(f"{API}/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert response.status_code == 401


async def test_refresh_token_cannot_authenticate_requests(client):
    response = await client.post(
        f"{API}/auth/register/customer", json={"email": "fan@acme.com", "password": "secret123"}
    )
    headers = {"Authorization": f"Bearer {response.json()['refresh_token']}"}

    response = await client.get(f"{API}/auth/me", headers=headers)

    assert response.status_code == 401
    assert response.json() == {"message": "Could not validate credentials"}


async def test_garbage_token(client):
    response = await client.get(f"{API}/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_admin_routes_need_admin(client, make_business, admin_headers):
    business = await make_business()

    assert (await client.get(f"{API}/admin/users", headers=business)).status_code == 403

    response = await client.get(f"{API}/admin/users", headers=admin_headers)
    assert response.status_code == 200
    assert {u["email"] for u in response.json()} == {"owner@acme.com", "admin@refrr.com"}


async def test_health_and_headers(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["x-frame-options"] == "DENY"
    assert response.headers["x-content-type-options"] == "nosniff"
    assert "x-request-id" in response.headers


async def test_detailed_health_probes_database(client):
    response = await client.get("/health/detailed")

    assert response.json()["dependencies"]["database"] == {"status": "ok"}


async def test_unknown_route_uses_message_body(client):
    response = await client.get(f"{API}/nothing-here")

    assert response.status_code == 404
    assert response.json() == {"message": "Not Found"}
