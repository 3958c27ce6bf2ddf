# tests/test_auth.py
import pytest

from cartshare.core.security import create_access_token

LOGIN_URL = "/api/v1/auth/login"
ME_URL = "/api/v1/auth/me"


@pytest.mark.asyncio
async def test_login_success(client, staff_user):
    resp = await client.post(
        LOGIN_URL,
        data={"username": staff_user.email, "password": "Staff1234"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["access_token"]
    assert body["token_type"] == "bearer"
    assert body["expires_in"] == 3600
    assert body["user"]["email"] == staff_user.email
    assert body["user"]["last_login_at"] is not None


@pytest.mark.asyncio
async def test_login_wrong_password(client, staff_user):
    resp = await client.post(
        LOGIN_URL,
        data={"username": staff_user.email, "password": "wrong-pass"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert resp.status_code == 400, resp.text
    assert "incorrect" in resp.text.lower()


@pytest.mark.asyncio
async def test_inactive_staff_cannot_login(client, inactive_staff_user):
    resp = await client.post(
        LOGIN_URL,
        data={"username": inactive_staff_user.email, "password": "Staff1234"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert resp.status_code == 403, resp.text


@pytest.mark.asyncio
async def test_me_returns_current_staff(client, staff_user, staff_headers):
    resp = await client.get(ME_URL, headers=staff_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["id"] == str(staff_user.id)


@pytest.mark.asyncio
async def test_me_requires_valid_token(client):
    assert (await client.get(ME_URL)).status_code == 401
    garbage = await client.get(ME_URL, headers={"Authorization": "Bearer not-a-jwt"})
    assert garbage.status_code == 401


@pytest.mark.asyncio
async def test_token_for_deactivated_staff_is_refused(client, inactive_staff_user):
    token = create_access_token(subject=inactive_staff_user.id)
    resp = await client.get(ME_URL, headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_token_for_unknown_subject_is_refused(client):
    token = create_access_token(subject="00000000-0000-0000-0000-000000000000")
    resp = await client.get(ME_URL, headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
