import threading

import pytest
from conftest import ADMIN_CODE, LISTED_ADMIN_EMAIL, bearer, make_profile

from core.config import get_settings
from core.exceptions import AuthenticationError, ConflictError, PermissionDeniedError, ValidationFailedError
from core.security import get_password_hash, verify_password
from database import activity_repo
from services import activity_log
from services.access_policy import AccessPolicy
from services.auth_service import AuthService


@pytest.fixture
def service():
    return AuthService()


def _login(client, email="mai@example.com", password="secret-pass"):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})


def test_access_policy():
    policy = AccessPolicy(["Boss@Example.com", ""])
    assert policy.is_admin({"role": "admin", "email": "a@x.com"})
    assert policy.is_admin({"role": "creator", "email": "boss@example.com"})
    assert not policy.is_admin({"role": "creator", "email": "linh@example.com"})
    assert not policy.is_admin(None)

    with pytest.raises(AuthenticationError):
        policy.require_admin(None)
    with pytest.raises(PermissionDeniedError):
        policy.require_admin({"role": "creator", "email": "linh@example.com"})


async def test_sign_up_role_follows_invite_code(service):
    creator = await service.sign_up("mai@example.com", "secret-pass", " Mai ", "vn")
    assert creator["role"] == "creator"
    assert creator["username"] == "Mai"
    assert creator["country"] == "VN"
    assert "hashed_password" not in creator

    admin = await service.sign_up("lead@example.com", "secret-pass", "Lead", None, admin_code=f" {ADMIN_CODE} ")
    assert admin["role"] == "admin"
    assert admin["is_admin"] is True

    with pytest.raises(ValidationFailedError):
        await service.sign_up("guess@example.com", "secret-pass", "Guess", None, admin_code="wrong")
    with pytest.raises(ConflictError):
        await service.sign_up("mai@example.com", "another-pass", "Mai 2", None)

    assert [log["action_type"] for log in activity_repo.list_logs(action_type=activity_log.SIGN_UP)] == [
        "SIGN_UP", "SIGN_UP"]


async def test_sign_in_records_login(service):
    await service.sign_up("mai@example.com", "secret-pass", "Mai", "TH")
    with pytest.raises(AuthenticationError):
        await service.sign_in("mai@example.com", "nope")
    with pytest.raises(AuthenticationError):
        await service.sign_in("ghost@example.com", "secret-pass")

    result = await service.sign_in("mai@example.com", "secret-pass", "10.0.0.7")
    assert result["token_type"] == "bearer"
    assert result["user"]["last_login"] is not None
    assert (await service.resolve_token(result["access_token"]))["email"] == "mai@example.com"
    assert await service.resolve_token("garbage") is None

    logs = activity_repo.list_logs(action_type=activity_log.LOGIN)
    assert logs[0]["metadata"] == {"ip": "10.0.0.7"}


async def test_elevate_needs_the_shared_code(service, creator):
    with pytest.raises(PermissionDeniedError):
        await service.elevate(creator, "guess")
    promoted = await service.elevate(creator, ADMIN_CODE)
    assert promoted["role"] == "admin"


async def test_elevation_is_disabled_without_a_configured_code(service, creator):
    get_settings().AUTH__ADMIN_INVITE_CODE = ""
    with pytest.raises(PermissionDeniedError):
        await service.elevate(creator, ADMIN_CODE)


def test_listed_email_is_admin(client):
    listed = make_profile(LISTED_ADMIN_EMAIL)
    me = client.get("/api/v1/auth/me", headers=bearer(listed)).json()["data"]
    assert me["role"] == "creator"
    assert me["is_admin"] is True
    assert client.post("/api/v1/schedule/shops", headers=bearer(listed),
                       json={"name": "Cebu", "country": "PH"}).status_code == 200


def test_login_sets_cookie_and_logout_clears_it(client):
    client.post("/api/v1/auth/signup", json={"email": "mai@example.com", "password": "secret-pass",
                                             "username": "Mai", "country": "VN"})
    response = _login(client)
    assert response.status_code == 200
    cookie_name = get_settings().AUTH__COOKIE_NAME
    assert cookie_name in response.cookies

    # cookie alone is enough for API calls
    me = client.get("/api/v1/auth/me")
    assert me.json()["data"]["email"] == "mai@example.com"

    updated = client.patch("/api/v1/auth/me", json={"username": "Mai Anh", "country": "my"})
    assert updated.json()["data"]["country"] == "MY"

    client.post("/api/v1/auth/logout")
    assert cookie_name not in client.cookies
    assert client.get("/api/v1/auth/me").status_code == 401
    assert activity_repo.list_logs(action_type=activity_log.LOGOUT)


def test_wrong_password_is_401(client):
    make_profile("mai@example.com")
    response = _login(client)
    assert response.status_code == 401
    assert response.json()["msg"] == "邮箱或密码错误"


def test_creators_list_is_admin_only(client, admin, creator, other_creator):
    assert client.get("/api/v1/auth/creators", headers=bearer(creator)).status_code == 403
    thai = client.get("/api/v1/auth/creators", headers=bearer(admin), params={"country": "th"}).json()["data"]
    assert [c["username"] for c in thai] == ["Somchai"]


def test_route_guard(client, creator, admin):
    anonymous = client.get("/dashboard", follow_redirects=False)
    assert anonymous.status_code == 302
    assert anonymous.headers["location"] == "/login"
    assert client.get("/admin/users", follow_redirects=False).headers["location"] == "/login"

    # mail sign-in callback passes through untouched
    assert client.get("/dashboard", params={"code": "abc"}, follow_redirects=False).status_code == 200

    signed_in = client.get("/login", headers=bearer(creator), follow_redirects=False)
    assert signed_in.status_code == 302
    assert signed_in.headers["location"] == "/dashboard"

    dashboard = client.get("/dashboard", headers=bearer(creator), follow_redirects=False)
    assert dashboard.status_code == 200
    assert dashboard.json()["data"]["user"]["is_admin"] is False

    not_admin = client.get("/admin", headers=bearer(creator), follow_redirects=False)
    assert not_admin.status_code == 302
    assert not_admin.headers["location"] == "/dashboard"
    assert client.get("/admin", headers=bearer(admin), follow_redirects=False).status_code == 200


def test_public_pages_and_health(client):
    assert client.get("/login", follow_redirects=False).status_code == 200
    health = client.get("/health").json()
    assert health["data"]["status"] == "healthy"


def test_unrecognised_hash_fails_verification():
    assert verify_password("secret-pass", "!") is False
    assert verify_password("secret-pass", "") is False
    assert verify_password("secret-pass", get_password_hash("secret-pass")) is True


async def test_activity_log_is_written_off_the_event_loop(monkeypatch, creator):
    loop_thread = threading.get_ident()
    writer_threads = []
    insert_log = activity_repo.insert_log

    def recording_insert(**kwargs):
        writer_threads.append(threading.get_ident())
        return insert_log(**kwargs)

    monkeypatch.setattr(activity_repo, "insert_log", recording_insert)
    await activity_log.log_activity(creator, activity_log.FANS_REPORT, "汇报涨粉 +3", {"hour": 8})

    assert writer_threads and writer_threads[0] != loop_thread
    logs = activity_repo.list_logs(action_type=activity_log.FANS_REPORT)
    assert logs[0]["user_email"] == "linh@example.com"
    assert logs[0]["metadata"] == {"hour": 8}
