# tests/helpers.py
import uuid
from sqlalchemy.orm import Session
from sqlalchemy import select

from app.models.user import User, Role
from app.core.security import get_password_hash

ADMIN_PASSWORD = "AdminPassw0rd!"
ADMIN_PIN = "9999"


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def unique_phone() -> str:
    return f"+2507{uuid.uuid4().int % 10**8:08d}"


def register_user(client, *, pin: str = "1234", **overrides) -> dict:
    """회원 가입 후 응답 data(토큰 + user) 반환"""
    payload = {
        "username": f"user_{uuid.uuid4().hex[:8]}",
        "phone_number": unique_phone(),
        "pin": pin,
    }
    payload.update(overrides)
    res = client.post("/auth/register", json=payload)
    assert res.status_code == 201, res.text
    return res.json()["data"]


def create_admin_in_db(db: Session, *, username: str | None = None, password: str = ADMIN_PASSWORD,
                       pin: str = ADMIN_PIN) -> User:
    admin = User(
        username=username or f"admin_{uuid.uuid4().hex[:8]}",
        phone_number=unique_phone(),
        email=f"admin_{uuid.uuid4().hex[:6]}@test.com",
        password_hash=get_password_hash(password),
        pin_hash=get_password_hash(pin),
        role=Role.ADMIN,
        is_active=True,
        phone_verified=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    return admin


def login_admin(client, admin: User, password: str = ADMIN_PASSWORD) -> str:
    res = client.post("/auth/admin/login", json={"identifier": admin.username, "password": password})
    assert res.status_code == 200, res.text
    return res.json()["data"]["access_token"]


def setup_admin_and_user(client, db: Session) -> dict:
    """
    ADMIN 토큰 + 일반 USER(user_id, token, username, phone_number) 세팅
    """
    admin = create_admin_in_db(db)
    admin_token = login_admin(client, admin)

    reg = register_user(client)
    return {
        "admin": admin,
        "admin_id": str(admin.id),
        "admin_token": admin_token,
        "user_id": reg["user"]["id"],
        "user_token": reg["access_token"],
        "username": reg["user"]["username"],
        "phone_number": reg["user"]["phone_number"],
    }


def get_user(db: Session, user_id: str) -> User | None:
    db.expire_all()
    return db.scalar(select(User).where(User.id == uuid.UUID(user_id)))
