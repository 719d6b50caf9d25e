import pytest
from httpx import AsyncClient

from models.database import Volunteer

from conftest import ADMIN_PASSWORD, VOLUNTEER_PASSWORD, make_volunteer


# ------------------------- 工具函数 -------------------------
async def login(client: AsyncClient, email: str, password: str) -> dict:
    resp = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert resp.status_code == 200, f"登录失败: {resp.text}"
    return resp.json()["data"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


# ------------------------- 登录 -------------------------
@pytest.mark.asyncio
async def test_faculty_and_volunteer_login(client: AsyncClient, seed_admin, seed_volunteer):
    admin = await login(client, "ADMIN@example.com", ADMIN_PASSWORD)
    assert admin["role"] == "admin"
    assert admin["user_id"] == seed_admin.id

    volunteer = await login(client, "asha@example.com", VOLUNTEER_PASSWORD)
    assert volunteer["role"] == "volunteer"
    assert volunteer["access_token"] and volunteer["refresh_token"]


@pytest.mark.asyncio
async def test_wrong_password_and_passwordless_volunteer_fail(client: AsyncClient, db_session, seed_admin):
    make_volunteer(db_session, "Imported", email="imported@example.com")

    wrong = await client.post("/api/auth/login", json={"email": "admin@example.com", "password": "nope"})
    assert wrong.status_code == 401
    assert wrong.json()["detail"]["code"] == "auth_failed"

    passwordless = await client.post("/api/auth/login", json={"email": "imported@example.com", "password": "x"})
    assert passwordless.status_code == 401


@pytest.mark.asyncio
async def test_profile_refresh_and_logout(client: AsyncClient, seed_volunteer):
    tokens = await login(client, "asha@example.com", VOLUNTEER_PASSWORD)

    profile = await client.get("/api/auth/profile", headers=bearer(tokens["access_token"]))
    assert profile.status_code == 200
    assert profile.json()["data"]["email"] == "asha@example.com"

    refreshed = await client.post("/api/auth/refresh", headers=bearer(tokens["refresh_token"]))
    assert refreshed.status_code == 200
    new_tokens = refreshed.json()["data"]

    # 旧 refresh 令牌轮换后失效
    reused = await client.post("/api/auth/refresh", headers=bearer(tokens["refresh_token"]))
    assert reused.status_code == 401
    # access 令牌不能用于刷新
    wrong_type = await client.post("/api/auth/refresh", headers=bearer(new_tokens["access_token"]))
    assert wrong_type.status_code == 401

    logout = await client.post("/api/auth/logout", headers=bearer(new_tokens["access_token"]))
    assert logout.status_code == 200
    after = await client.get("/api/auth/profile", headers=bearer(new_tokens["access_token"]))
    assert after.status_code == 401


@pytest.mark.asyncio
async def test_missing_or_malformed_authorization(client: AsyncClient):
    assert (await client.get("/api/auth/profile")).status_code == 401
    assert (await client.get("/api/auth/profile", headers={"Authorization": "Token abc"})).status_code == 401


# ------------------------- 注册 -------------------------
@pytest.mark.asyncio
async def test_volunteer_registration_claims_imported_account(client: AsyncClient, db_session):
    imported = make_volunteer(db_session, "Imported", email="imported@example.com", college_id="R100")

    resp = await client.post("/api/auth/register/volunteer", json={
        "name": "Imported Person",
        "email": "Imported@Example.com",
        "password": "NewPass123",
        "phone": "9999999999",
    })
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    assert data["id"] == imported.id
    assert data["has_password"] is True
    assert data["phone"] == "9999999999"
    assert db_session.query(Volunteer).count() == 1

    await login(client, "imported@example.com", "NewPass123")

    again = await client.post("/api/auth/register/volunteer", json={
        "name": "Imported Person", "email": "imported@example.com", "password": "OtherPass123",
    })
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_volunteer_registration_rejects_faculty_email_and_short_password(client: AsyncClient, seed_faculty):
    faculty_email = await client.post("/api/auth/register/volunteer", json={
        "name": "Rao", "email": "rao@example.com", "password": "LongEnough1",
    })
    assert faculty_email.status_code == 409

    short = await client.post("/api/auth/register/volunteer", json={
        "name": "Kim", "email": "kim@example.com", "password": "short",
    })
    assert short.status_code == 400


@pytest.mark.asyncio
async def test_faculty_registration_is_admin_only(client: AsyncClient, admin_headers, faculty_headers,
                                                 seed_volunteer):
    payload = {"name": "Dr. Mehta", "email": "mehta@example.com", "password": "FacultyPass2", "role": "faculty"}

    forbidden = await client.post("/api/auth/register/faculty", json=payload, headers=faculty_headers)
    assert forbidden.status_code == 403

    created = await client.post("/api/auth/register/faculty", json=payload, headers=admin_headers)
    assert created.status_code == 201
    assert created.json()["data"]["role"] == "faculty"

    duplicate = await client.post("/api/auth/register/faculty", json=payload, headers=admin_headers)
    assert duplicate.status_code == 409

    volunteer_email = await client.post("/api/auth/register/faculty", json={
        **payload, "email": "asha@example.com"
    }, headers=admin_headers)
    assert volunteer_email.status_code == 409
