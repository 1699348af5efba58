"""
인증 기본 플로우 통합 테스트.
- 가입 → 토큰으로 프로필 조회(같은 id), 로그인 성공/실패 응답 동일성,
  중복 식별자 409, 비활성 계정 차단, 전화번호 인증 대기 차단,
  프로필 수정 / PIN 변경까지 검증한다.
"""

from app.core.config import settings
from app.models.user import User
from app.services import accounts
from tests.helpers import auth_header, register_user, create_admin_in_db, setup_admin_and_user, get_user, unique_phone


def test_register_returns_tokens_and_resolves_same_user(client):
    data = register_user(client, email="Viewer@Test.com", first_name="Aline")

    assert data["access_token"]
    assert data["refresh_token"]
    assert data["token_type"] == "bearer"
    assert "refresh_token" in client.cookies

    user = data["user"]
    assert user["role"] == "user"
    assert user["email"] == "viewer@test.com"
    assert user["balance"] == 0 and user["bonus_balance"] == 0
    # 해시 / 코드 값은 응답에 포함되지 않음
    assert "pin_hash" not in user and "password_hash" not in user

    me = client.get("/auth/profile", headers=auth_header(data["access_token"]))
    assert me.status_code == 200, me.text
    assert me.json()["data"]["id"] == user["id"]


def test_register_rejects_unknown_fields_and_bad_pin(client):
    base = {"username": "someone", "phone_number": "+250788000111", "pin": "1234"}

    r = client.post("/auth/register", json={**base, "role": "admin"})
    assert r.status_code == 422

    r = client.post("/auth/register", json={**base, "pin": "12ab"})
    assert r.status_code == 422


def test_register_duplicate_identifiers_conflict(client):
    first = register_user(client, email="dup@test.com")["user"]

    r = client.post("/auth/register", json={"username": first["username"], "phone_number": "+250788999000", "pin": "1234"})
    assert r.status_code == 409
    assert r.json()["detail"] == "Username already taken"

    r = client.post("/auth/register", json={"username": "other_name", "phone_number": first["phone_number"], "pin": "1234"})
    assert r.status_code == 409
    assert r.json()["detail"] == "Phone number already in use"

    r = client.post(
        "/auth/register",
        json={"username": "third_name", "phone_number": "+250788999001", "pin": "1234", "email": "DUP@test.com"},
    )
    assert r.status_code == 409
    assert r.json()["detail"] == "Email already in use"


def test_register_identifiers_are_stripped_before_uniqueness_check(client):
    first = register_user(client, phone_number="+250700000123")["user"]

    r = client.post("/auth/register", json={"username": "second_name", "phone_number": "+250700000123 ", "pin": "1234"})
    assert r.status_code == 409
    assert r.json()["detail"] == "Phone number already in use"

    r = client.post("/auth/register", json={"username": f" {first['username']} ", "phone_number": "+250700000124", "pin": "1234"})
    assert r.status_code == 409
    assert r.json()["detail"] == "Username already taken"

    padded = register_user(client, username="  padded_name ", phone_number=" +250700000125")
    assert padded["user"]["username"] == "padded_name"
    assert padded["user"]["phone_number"] == "+250700000125"


def test_register_unique_index_race_returns_conflict(client, monkeypatch):
    # 다른 요청이 중복 검사 직후 먼저 커밋한 상황: 첫 검사만 건너뜀
    register_user(client, username="racer")
    real_ensure_unique = accounts.ensure_unique
    calls = []

    def ensure_unique_after_race(db, **kwargs):
        calls.append(kwargs)
        if len(calls) > 1:
            real_ensure_unique(db, **kwargs)

    monkeypatch.setattr(accounts, "ensure_unique", ensure_unique_after_race)

    r = client.post("/auth/register", json={"username": "racer", "phone_number": unique_phone(), "pin": "1234"})
    assert r.status_code == 409, r.text
    assert r.json()["detail"] == "Username already taken"
    assert len(calls) == 2

    monkeypatch.undo()
    ok = client.post("/auth/register", json={"username": "racer_two", "phone_number": unique_phone(), "pin": "1234"})
    assert ok.status_code == 201, ok.text


def test_login_with_username_or_phone(client, db_session):
    user = register_user(client, pin="4321")["user"]

    by_name = client.post("/auth/login", json={"identifier": user["username"], "secret": "4321"})
    assert by_name.status_code == 200, by_name.text
    assert by_name.json()["data"]["user"]["id"] == user["id"]

    by_phone = client.post("/auth/login", json={"identifier": user["phone_number"], "secret": "4321"})
    assert by_phone.status_code == 200, by_phone.text

    # 로그인 통계 갱신
    row = get_user(db_session, user["id"])
    assert row.login_count == 2
    assert row.last_active is not None


def test_wrong_secret_and_unknown_identifier_are_indistinguishable(client):
    user = register_user(client, pin="4321")["user"]

    wrong = client.post("/auth/login", json={"identifier": user["username"], "secret": "0000"})
    unknown = client.post("/auth/login", json={"identifier": "nobody_here", "secret": "0000"})

    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json() == {"detail": "Invalid credentials"}
    assert wrong.headers.get("www-authenticate") == "Bearer"


def test_password_login_is_admin_only(client, db_session):
    user = register_user(client)["user"]
    r = client.post("/auth/login", json={"identifier": user["username"], "secret": "not-a-pin-password"})
    assert r.status_code == 401

    admin = create_admin_in_db(db_session)
    r = client.post("/auth/login", json={"identifier": admin.username, "secret": "AdminPassw0rd!"})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["user"]["role"] == "admin"


def test_protected_route_requires_bearer_token(client):
    r = client.get("/auth/profile")
    assert r.status_code == 401

    r = client.get("/auth/profile", headers=auth_header("not-a-jwt"))
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid or expired token. Please log in again."


def test_deactivated_account_is_forbidden_even_with_valid_token(client, db_session):
    ctx = setup_admin_and_user(client, db_session)

    r = client.patch(
        f"/users/{ctx['user_id']}/status",
        json={"is_active": False},
        headers=auth_header(ctx["admin_token"]),
    )
    assert r.status_code == 200, r.text

    # 이미 발급된 access 토큰도 다음 요청부터 차단
    me = client.get("/auth/profile", headers=auth_header(ctx["user_token"]))
    assert me.status_code == 403
    assert me.json()["detail"] == "Your account has been deactivated"

    login = client.post("/auth/login", json={"identifier": ctx["username"], "secret": "1234"})
    assert login.status_code == 403


def test_pending_verification_blocks_until_phone_verified(client, monkeypatch):
    monkeypatch.setattr(settings, "REQUIRE_PHONE_VERIFICATION", True)
    data = register_user(client)
    token = data["access_token"]
    phone = data["user"]["phone_number"]
    assert data["user"]["pending_verification"] is True

    r = client.get("/auth/profile", headers=auth_header(token))
    assert r.status_code == 403
    assert r.json()["detail"].startswith("Account verification pending")

    sent = client.post("/verification/send-code", json={"phone_number": phone})
    assert sent.status_code == 200, sent.text
    code = sent.json()["data"]["code"]

    wrong_code = "000000" if code != "000000" else "111111"
    bad = client.post("/verification/verify", json={"phone_number": phone, "code": wrong_code})
    assert bad.status_code == 400

    ok = client.post("/verification/verify", json={"phone_number": phone, "code": code})
    assert ok.status_code == 200, ok.text
    assert ok.json()["data"]["phone_verified"] is True
    assert ok.json()["data"]["pending_verification"] is False

    # 같은 코드 재사용 불가
    again = client.post("/verification/verify", json={"phone_number": phone, "code": code})
    assert again.status_code == 400

    r = client.get("/auth/profile", headers=auth_header(token))
    assert r.status_code == 200


def test_send_code_response_same_for_unknown_number(client):
    r = client.post("/verification/send-code", json={"phone_number": "+250700123123"})
    assert r.status_code == 200
    assert "code" not in r.json()["data"]

    registered = client.get("/auth/verify-phone", params={"phone_number": "+250700123123"})
    assert registered.json()["data"]["registered"] is False


def test_welcome_bonus_credited_on_register(client, db_session, monkeypatch):
    monkeypatch.setattr(settings, "WELCOME_BONUS_AMOUNT", 150)
    data = register_user(client)

    assert data["user"]["bonus_balance"] == 150
    assert data["user"]["balance"] == 0

    r = client.get("/wallet/transactions", headers=auth_header(data["access_token"]))
    items = r.json()["data"]
    assert len(items) == 1
    assert items[0]["type"] == "welcome-bonus"
    assert items[0]["amount"] == 150


def test_edit_profile_and_change_pin(client, db_session):
    data = register_user(client, pin="1111")
    headers = auth_header(data["access_token"])

    empty = client.patch("/auth/profile", json={}, headers=headers)
    assert empty.status_code == 400

    bad_lang = client.patch("/auth/profile", json={"preferred_language": "german"}, headers=headers)
    assert bad_lang.status_code == 422

    r = client.patch("/auth/profile", json={"first_name": "Eric", "theme": "dark"}, headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["first_name"] == "Eric"
    assert r.json()["data"]["theme"] == "dark"

    wrong = client.post("/auth/change-pin", json={"current_pin": "2222", "new_pin": "3333"}, headers=headers)
    assert wrong.status_code == 401

    ok = client.post("/auth/change-pin", json={"current_pin": "1111", "new_pin": "3333"}, headers=headers)
    assert ok.status_code == 200, ok.text

    old = client.post("/auth/login", json={"identifier": data["user"]["username"], "secret": "1111"})
    assert old.status_code == 401
    new = client.post("/auth/login", json={"identifier": data["user"]["username"], "secret": "3333"})
    assert new.status_code == 200

    row = get_user(db_session, data["user"]["id"])
    assert isinstance(row, User)
    assert row.pin_hash != "3333"
