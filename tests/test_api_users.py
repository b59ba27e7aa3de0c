from sqlalchemy import func, select

from auth_api.models.refresh_token import RefreshToken
from tests.conftest import PASSWORD

USERS = "/api/v1/users"


def _login(client, email):
    r = client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    assert r.status_code == 200
    return r.json()


def test_users_endpoints_require_admin(client, make_user):
    assert client.get(f"{USERS}/").status_code == 401

    make_user(email="plain@x.com")
    access = _login(client, "plain@x.com")["accessToken"]
    r = client.get(f"{USERS}/", headers={"Authorization": f"Bearer {access}"})
    assert r.status_code == 403
    assert r.json()["code"] == "FORBIDDEN"


def test_create_get_update_user(client, admin_headers):
    r = client.post(f"{USERS}/", headers=admin_headers, json={
        "email": "Staff@x.com", "password": PASSWORD, "firstName": "Staff", "roles": ["admin"],
    })
    assert r.status_code == 201
    created = r.json()
    assert created["email"] == "staff@x.com"
    assert created["roles"] == ["admin"]
    assert "passwordHash" not in created

    r = client.get(f"{USERS}/{created['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["firstName"] == "Staff"

    r = client.patch(f"{USERS}/{created['id']}", headers=admin_headers, json={
        "lastName": "Member", "roles": ["user", "admin"], "isEmailVerified": True,
    })
    assert r.status_code == 200
    assert r.json()["lastName"] == "Member"
    assert r.json()["roles"] == ["admin", "user"]

    r = client.post(f"{USERS}/", headers=admin_headers, json={"email": "staff@x.com", "password": PASSWORD})
    assert r.status_code == 409
    r = client.post(f"{USERS}/", headers=admin_headers, json={
        "email": "other@x.com", "password": PASSWORD, "roles": ["root"],
    })
    assert r.status_code == 422


def test_update_email_conflict(client, admin_headers, make_user):
    make_user(email="one@x.com")
    two = make_user(email="two@x.com")
    r = client.patch(f"{USERS}/{two.id}", headers=admin_headers, json={"email": "ONE@x.com"})
    assert r.status_code == 409


def test_missing_user(client, admin_headers):
    r = client.get(f"{USERS}/9999", headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["message"] == "User with ID 9999 not found."
    assert client.delete(f"{USERS}/9999", headers=admin_headers).status_code == 404


def test_list_users_paginates_and_filters(client, admin_headers, make_user):
    make_user(email="amy@x.com")
    make_user(email="bob@x.com", active=False)
    make_user(email="cat@x.com")

    r = client.get(f"{USERS}/", headers=admin_headers, params={"page": 1, "limit": 2, "sortBy": "email", "sortOrder": "asc"})
    assert r.status_code == 200
    page = r.json()
    assert page["total"] == 4
    assert page["totalPages"] == 2
    assert page["hasNextPage"] is True
    assert page["hasPrevPage"] is False
    assert [u["email"] for u in page["data"]] == ["admin@x.com", "amy@x.com"]

    r = client.get(f"{USERS}/", headers=admin_headers, params={"page": 2, "limit": 2, "sortBy": "email", "sortOrder": "asc"})
    assert [u["email"] for u in r.json()["data"]] == ["bob@x.com", "cat@x.com"]
    assert r.json()["hasNextPage"] is False
    assert r.json()["hasPrevPage"] is True

    r = client.get(f"{USERS}/", headers=admin_headers, params={"isActive": "false"})
    assert [u["email"] for u in r.json()["data"]] == ["bob@x.com"]

    r = client.get(f"{USERS}/", headers=admin_headers, params={"role": "admin"})
    assert [u["email"] for u in r.json()["data"]] == ["admin@x.com"]

    r = client.get(f"{USERS}/", headers=admin_headers, params={"search": "CA"})
    assert [u["email"] for u in r.json()["data"]] == ["cat@x.com"]

    assert client.get(f"{USERS}/", headers=admin_headers, params={"limit": 101}).status_code == 422
    assert client.get(f"{USERS}/", headers=admin_headers, params={"sortOrder": "up"}).status_code == 422


def test_delete_user_removes_sessions(client, admin_headers, make_user, db):
    user = make_user(email="gone@x.com")
    refresh = _login(client, "gone@x.com")["refreshToken"]

    r = client.delete(f"{USERS}/{user.id}", headers=admin_headers)
    assert r.status_code == 204
    count = db.scalar(select(func.count()).select_from(RefreshToken).where(RefreshToken.user_id == user.id))
    assert count == 0
    assert client.post("/api/v1/auth/refresh", json={"refreshToken": refresh}).status_code == 401


def test_toggle_status_blocks_refresh_and_access(client, admin_headers, make_user):
    user = make_user(email="flip@x.com")
    tokens = _login(client, "flip@x.com")

    r = client.patch(f"{USERS}/{user.id}/toggle-status", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["isActive"] is False
    assert client.post("/api/v1/auth/refresh", json={"refreshToken": tokens["refreshToken"]}).status_code == 401
    r = client.post("/api/v1/auth/logout-all", headers={"Authorization": f"Bearer {tokens['accessToken']}"})
    assert r.status_code == 401
    assert client.post("/api/v1/auth/login", json={"email": "flip@x.com", "password": PASSWORD}).status_code == 401

    r = client.patch(f"{USERS}/{user.id}/toggle-status", headers=admin_headers)
    assert r.json()["isActive"] is True
    assert _login(client, "flip@x.com")["accessToken"]


def test_admin_password_change_revokes_sessions(client, admin_headers, make_user):
    user = make_user(email="pw@x.com")
    refresh = _login(client, "pw@x.com")["refreshToken"]

    r = client.patch(f"{USERS}/{user.id}", headers=admin_headers, json={"password": "BrandNew123!"})
    assert r.status_code == 200
    assert client.post("/api/v1/auth/refresh", json={"refreshToken": refresh}).status_code == 401


def test_admin_cannot_set_password_bcrypt_would_truncate(client, admin_headers, make_user):
    r = client.post(f"{USERS}/", headers=admin_headers, json={"email": "big@x.com", "password": "A" * 73})
    assert r.status_code == 422
    user = make_user(email="pw2@x.com")
    r = client.patch(f"{USERS}/{user.id}", headers=admin_headers, json={"password": "A" * 73})
    assert r.status_code == 422
