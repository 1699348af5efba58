"""

ADMIN 초기 계정 생성 스크립트.

- 서버 최초 세팅 시 단 한 번 실행하는 용도
- .env에 정의된 ADMIN_* 환경 변수를 읽어
  ADMIN 계정(비밀번호 + PIN)을 생성한다.
- 이미 ADMIN 계정이 존재하면 생성하지 않고 종료한다.

사용 목적:
- 회원 관리 / 관리자 생성 API에 접근할 수 있는
  첫 관리자 계정을 안전하게 초기화하기 위함

사용 방법
- 가상환경 접속
- (.venv) ~\backend~$ python -m scripts.create_admin

"""

from dotenv import load_dotenv
load_dotenv()

from sqlalchemy import select, or_
from app.core.config import settings
from app.db.session import SessionLocal
from app.models.user import User, Role
from app.core.security import get_password_hash


def main():
    if not settings.ADMIN_PASSWORD or not settings.ADMIN_PIN:
        raise RuntimeError("ADMIN_PASSWORD and ADMIN_PIN must be set")

    db = SessionLocal()
    try:
        exists = db.scalar(
            select(User).where(User.role == Role.ADMIN)
        )
        if exists:
            print("✅ ADMIN already exists. Skip creation.")
            return

        taken = db.scalar(
            select(User).where(
                or_(
                    User.username == settings.ADMIN_USERNAME,
                    User.phone_number == settings.ADMIN_PHONE_NUMBER,
                    User.email == settings.ADMIN_EMAIL.lower(),
                )
            )
        )
        if taken:
            raise RuntimeError("Username, phone number or email already used by a non-admin account")

        user = User(
            username=settings.ADMIN_USERNAME,
            phone_number=settings.ADMIN_PHONE_NUMBER,
            email=settings.ADMIN_EMAIL.lower(),
            password_hash=get_password_hash(settings.ADMIN_PASSWORD),
            pin_hash=get_password_hash(settings.ADMIN_PIN),
            role=Role.ADMIN,
            is_active=True,
            phone_verified=True,
        )

        db.add(user)
        db.commit()

        print(f"🚀 ADMIN created: {user.username}")

    finally:
        db.close()


if __name__ == "__main__":
    main()
