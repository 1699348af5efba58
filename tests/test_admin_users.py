"""
관리자 회원 관리 통합 테스트.
- 권한 검사, 목록/상세 조회, 권한 변경 규칙, 비활성화(Soft) 와
  영구 삭제(Hard) 의 차이, PIN 초기화, 관리자 생성, 관리자 로그 기록을 검증한다.
"""

import uuid

from sqlalchemy import select

from app.models.admin_log import AdminActionLog, AdminAction
from app.models.wallet import WalletTransaction
from tests.helpers import auth_header, create_admin_in_db, register_user, setup_admin_and_user, get_user


def _logs(db, action):
    db.expire_all()
    return db.scalars(select(AdminActionLog).where(AdminActionLog.action == action)).all()


def test_user_management_requires_admin(client, db_session):
    ctx = setup_admin_and_user(client, db_session)

    r = client.get("/users", headers=auth_header(ctx["user_token"]))
    assert r.status_code == 403

    r = client.get("/users")
    assert r.status_code == 401


def test_list_and_get_users(client, db_session):
    ctx = setup_admin_and_user(client, db_session)
    register_user(client, username="filter_me")
    headers = auth_header(ctx["admin_token"])

    r = client.get("/users", params={"username": "filter"}, headers=headers)
    assert r.status_code == 200, r.text
    assert [u["username"] for u in r.json()["data"]] == ["filter_me"]

    r = client.get("/users", params={"role": "admin"}, headers=headers)
    assert r.json()["pagination"]["total"] == 1

    r = client.get(f"/users/{ctx['user_id']}", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["username"] == ctx["username"]

    missing = client.get(f"/users/{uuid.uuid4()}", headers=headers)
    assert missing.status_code == 404


def test_role_change_rules_and_log(client, db_session):
    ctx = setup_admin_and_user(client, db_session)
    headers = auth_header(ctx["admin_token"])

    self_demote = client.patch(f"/users/{ctx['admin_id']}/role", json={"role": "user"}, headers=headers)
    assert self_demote.status_code == 400

    same = client.patch(f"/users/{ctx['user_id']}/role", json={"role": "user"}, headers=headers)
    assert same.status_code == 400

    promote = client.patch(f"/users/{ctx['user_id']}/role", json={"role": "admin"}, headers=headers)
    assert promote.status_code == 200, promote.text
    assert promote.json()["data"]["role"] == "admin"

    logs = _logs(db_session, AdminAction.SET_ROLE)
    assert len(logs) == 1
    assert (logs[0].before, logs[0].after) == ("user", "admin")
    assert str(logs[0].actor_id) == ctx["admin_id"]
    assert str(logs[0].target_user_id) == ctx["user_id"]


def test_inactive_admin_can_be_demoted_while_one_active_admin_remains(client, db_session):
    ctx = setup_admin_and_user(client, db_session)
    retired = create_admin_in_db(db_session)
    retired.is_active = False
    db_session.commit()

    r = client.patch(f"/users/{retired.id}/role", json={"role": "user"}, headers=auth_header(ctx["admin_token"]))
    assert r.status_code == 200, r.text
    assert r.json()["data"]["role"] == "user"
    assert get_user(db_session, str(retired.id)).role.value == "user"


def test_cannot_deactivate_self(client, db_session):
    ctx = setup_admin_and_user(client, db_session)

    r = client.patch(f"/users/{ctx['admin_id']}/status", json={"is_active": False}, headers=auth_header(ctx["admin_token"]))
    assert r.status_code == 400
    assert r.json()["detail"] == "You cannot deactivate your own account"


def test_soft_delete_keeps_data_and_can_be_reactivated(client, db_session):
    ctx = setup_admin_and_user(client, db_session)
    headers = auth_header(ctx["admin_token"])

    r = client.delete(f"/users/{ctx['user_id']}", headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["is_active"] is False

    row = get_user(db_session, ctx["user_id"])
    assert row is not None and row.is_active is False
    assert len(_logs(db_session, AdminAction.DEACTIVATE_USER)) == 1

    r = client.patch(f"/users/{ctx['user_id']}/status", json={"is_active": True}, headers=headers)
    assert r.status_code == 200, r.text
    assert get_user(db_session, ctx["user_id"]).is_active is True
    assert len(_logs(db_session, AdminAction.ACTIVATE_USER)) == 1

    me = client.get("/auth/profile", headers=auth_header(ctx["user_token"]))
    assert me.status_code == 200


def test_purge_removes_user_and_transactions_but_keeps_log(client, db_session):
    ctx = setup_admin_and_user(client, db_session)
    headers = auth_header(ctx["admin_token"])

    client.post(
        f"/users/{ctx['user_id']}/adjust-balance",
        json={"amount": 100, "type": "credit", "category": "topup"},
        headers=headers,
    )

    r = client.delete(f"/users/{ctx['user_id']}/purge", headers=headers)
    assert r.status_code == 200, r.text
    assert r.json()["data"]["username"] == ctx["username"]

    assert get_user(db_session, ctx["user_id"]) is None
    remaining = db_session.scalars(
        select(WalletTransaction).where(WalletTransaction.user_id == uuid.UUID(ctx["user_id"]))
    ).all()
    assert remaining == []

    purge_logs = _logs(db_session, AdminAction.PURGE_USER)
    assert len(purge_logs) == 1
    assert purge_logs[0].target_user_id is None
    assert purge_logs[0].target_label == ctx["username"]

    # 토큰은 남아 있어도 계정이 없으므로 401
    me = client.get("/auth/profile", headers=auth_header(ctx["user_token"]))
    assert me.status_code == 401

    logs = client.get("/admin/logs", params={"action": "PURGE_USER"}, headers=headers)
    assert logs.status_code == 200
    entry = logs.json()["data"][0]
    assert entry["target"] == {"id": None, "username": ctx["username"]}


def test_admin_reset_pin(client, db_session):
    ctx = setup_admin_and_user(client, db_session)

    r = client.post(
        f"/users/{ctx['user_id']}/reset-pin",
        json={"new_pin": "8080"},
        headers=auth_header(ctx["admin_token"]),
    )
    assert r.status_code == 200, r.text
    assert len(_logs(db_session, AdminAction.RESET_PIN)) == 1

    assert client.post("/auth/login", json={"identifier": ctx["username"], "secret": "1234"}).status_code == 401
    assert client.post("/auth/login", json={"identifier": ctx["username"], "secret": "8080"}).status_code == 200


def test_create_admin_and_logs_listing(client, db_session):
    ctx = setup_admin_and_user(client, db_session)
    headers = auth_header(ctx["admin_token"])

    payload = {
        "username": "second_admin",
        "phone_number": "+250788555444",
        "email": "second@test.com",
        "password": "SecondPassw0rd!",
        "pin": "4444",
    }
    r = client.post("/admin/users/create-admin", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    assert r.json()["data"]["role"] == "admin"

    dup = client.post("/admin/users/create-admin", json=payload, headers=headers)
    assert dup.status_code == 409

    login = client.post("/auth/admin/login", json={"identifier": "second@test.com", "password": "SecondPassw0rd!"})
    assert login.status_code == 200, login.text

    logs = client.get("/admin/logs", headers=headers)
    assert logs.status_code == 200
    body = logs.json()
    assert body["meta"]["total"] == 1
    assert body["data"][0]["action"] == "CREATE_ADMIN"
    assert body["data"][0]["actor"]["id"] == ctx["admin_id"]
    assert body["data"][0]["target"]["username"] == "second_admin"

    forbidden = client.get("/admin/logs", headers=auth_header(ctx["user_token"]))
    assert forbidden.status_code == 403
