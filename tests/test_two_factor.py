"""
관리자 2단계 인증(TOTP) 통합 테스트.
- 2FA 설정 → 확인 → 관리자 로그인 시 mfa_token 발급 → TOTP 로 최종 로그인,
  잘못된 코드 / 만료된 mfa_token / 재사용된 코드 거부,
  일반 로그인(/auth/login) 으로 2FA 를 건너뛸 수 없음을 검증한다.
"""

import pyotp

from app.core.config import settings
from tests.helpers import auth_header, create_admin_in_db, login_admin, register_user, ADMIN_PASSWORD, ADMIN_PIN


def _wrong_code(secret, now) -> str:
    totp = pyotp.TOTP(secret)
    valid = {totp.at(now, counter_offset=offset) for offset in (-1, 0, 1)}
    return next(c for c in ("000000", "111111", "222222", "333333") if c not in valid)


def _enable_2fa(client, admin_token, clock) -> str:
    setup = client.post("/auth/2fa/setup", headers=auth_header(admin_token))
    assert setup.status_code == 200, setup.text
    secret = setup.json()["data"]["secret"]
    assert setup.json()["data"]["otpauth_url"].startswith("otpauth://totp/")

    code = pyotp.TOTP(secret).at(clock())
    verify = client.post("/auth/2fa/verify", json={"secret": secret, "code": code}, headers=auth_header(admin_token))
    assert verify.status_code == 200, verify.text
    # 설정에 쓴 코드는 이미 사용됨 → 다음 time-step 으로 이동
    clock.advance(seconds=30)
    return secret


def test_admin_login_with_totp(client, db_session, clock):
    admin = create_admin_in_db(db_session)
    secret = _enable_2fa(client, login_admin(client, admin), clock)

    step1 = client.post("/auth/admin/login", json={"identifier": admin.username, "password": ADMIN_PASSWORD})
    assert step1.status_code == 200, step1.text
    body = step1.json()["data"]
    assert body["requires_2fa"] is True
    assert "access_token" not in body

    # mfa_token 은 API 인증에 사용할 수 없음
    r = client.get("/auth/profile", headers=auth_header(body["mfa_token"]))
    assert r.status_code == 401

    bad = client.post("/auth/2fa/authenticate", json={"mfa_token": body["mfa_token"], "code": _wrong_code(secret, clock())})
    assert bad.status_code == 401

    code = pyotp.TOTP(secret).at(clock())
    step2 = client.post("/auth/2fa/authenticate", json={"mfa_token": body["mfa_token"], "code": code})
    assert step2.status_code == 200, step2.text
    assert step2.json()["data"]["user"]["is_two_factor_enabled"] is True

    me = client.get("/auth/profile", headers=auth_header(step2.json()["data"]["access_token"]))
    assert me.status_code == 200


def test_mfa_token_expires(client, db_session, clock):
    admin = create_admin_in_db(db_session)
    secret = _enable_2fa(client, login_admin(client, admin), clock)

    step1 = client.post("/auth/admin/login", json={"identifier": admin.username, "password": ADMIN_PASSWORD})
    mfa_token = step1.json()["data"]["mfa_token"]

    clock.advance(minutes=settings.MFA_TOKEN_EXPIRE_MINUTES, seconds=1)
    code = pyotp.TOTP(secret).at(clock())
    r = client.post("/auth/2fa/authenticate", json={"mfa_token": mfa_token, "code": code})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid or expired 2FA session"


def test_2fa_setup_is_admin_only(client):
    data = register_user(client)
    r = client.post("/auth/2fa/setup", headers=auth_header(data["access_token"]))
    assert r.status_code == 403


def test_admin_login_rejects_non_admin_and_wrong_password(client, db_session):
    admin = create_admin_in_db(db_session)

    wrong = client.post("/auth/admin/login", json={"identifier": admin.username, "password": "nope-nope"})
    assert wrong.status_code == 401

    unknown = client.post("/auth/admin/login", json={"identifier": "ghost_admin", "password": "nope-nope"})
    assert unknown.status_code == 401
    assert wrong.json() == unknown.json()


def test_plain_login_requires_totp_when_2fa_enabled(client, db_session, clock):
    admin = create_admin_in_db(db_session)
    secret = _enable_2fa(client, login_admin(client, admin), clock)

    mfa_tokens = []
    for secret_value in (ADMIN_PASSWORD, ADMIN_PIN):
        r = client.post("/auth/login", json={"identifier": admin.username, "secret": secret_value})
        assert r.status_code == 200, r.text
        body = r.json()["data"]
        assert body["requires_2fa"] is True
        assert "access_token" not in body and "refresh_token" not in body
        mfa_tokens.append(body["mfa_token"])

    # mfa_token 으로는 관리자 API 접근 불가
    r = client.get("/admin/logs", headers=auth_header(mfa_tokens[0]))
    assert r.status_code == 401

    code = pyotp.TOTP(secret).at(clock())
    step2 = client.post("/auth/2fa/authenticate", json={"mfa_token": mfa_tokens[1], "code": code})
    assert step2.status_code == 200, step2.text
    logs = client.get("/admin/logs", headers=auth_header(step2.json()["data"]["access_token"]))
    assert logs.status_code == 200


def test_totp_code_cannot_be_reused(client, db_session, clock):
    admin = create_admin_in_db(db_session)
    secret = _enable_2fa(client, login_admin(client, admin), clock)

    def mfa_token():
        r = client.post("/auth/admin/login", json={"identifier": admin.username, "password": ADMIN_PASSWORD})
        return r.json()["data"]["mfa_token"]

    code = pyotp.TOTP(secret).at(clock())
    first = client.post("/auth/2fa/authenticate", json={"mfa_token": mfa_token(), "code": code})
    assert first.status_code == 200, first.text

    replay = client.post("/auth/2fa/authenticate", json={"mfa_token": mfa_token(), "code": code})
    assert replay.status_code == 401
    assert replay.json()["detail"] == "Invalid 2FA code"

    clock.advance(seconds=30)
    fresh = client.post("/auth/2fa/authenticate", json={"mfa_token": mfa_token(), "code": pyotp.TOTP(secret).at(clock())})
    assert fresh.status_code == 200, fresh.text
