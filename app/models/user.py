"""
user.py

사용자(User) 및 권한(Role) 모델 정의 파일.

이 파일은 플랫폼 계정의 식별 정보, 해시된 비밀 값(PIN / 비밀번호),
권한(Role), 활성/인증 상태, 재설정 코드, 지갑 잔액을 한 레코드로 관리한다.

모든 인증, 권한, 지갑, 관리자 기능의 기준이 되는 핵심 모델이다.

"""

import uuid
import datetime
from enum import Enum

from sqlalchemy import String, Integer, Boolean, DateTime, CheckConstraint, Uuid, Enum as SAEnum, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base



"""
사용자 권한(Role) 정의

- USER   : 일반 시청자 (PIN 로그인)
- ADMIN  : 관리자 (비밀번호 로그인 + 선택적 2FA)

"""

class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"



"""
사용자(User) 모델

- username / phone_number 는 필수 고유 식별자, email 은 선택 고유 값
- pin_hash / password_hash 는 bcrypt 해시만 저장 (평문 저장 금지)
- is_active=False 는 비활성(정지/Soft Delete) 상태
- pending_verification 은 전화번호 인증 전 상태 (ADMIN 제외 API 접근 불가)
- *_reset_* / verification_* 는 일회용 코드 다이제스트와 만료 시각
- balance / bonus_balance 는 지갑 잔액, 둘 다 0 미만 불가

"""

class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
        CheckConstraint("bonus_balance >= 0", name="ck_users_bonus_balance_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    username: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    phone_number: Mapped[str] = mapped_column(String(30), unique=True, index=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, index=True, nullable=True)

    first_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(50), nullable=True)
    preferred_language: Mapped[str | None] = mapped_column(String(20), nullable=True)
    theme: Mapped[str | None] = mapped_column(String(10), nullable=True)

    pin_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    role: Mapped[Role] = mapped_column(
        SAEnum(Role, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.USER,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    pending_verification: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    phone_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_two_factor_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    two_factor_secret: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # 마지막으로 사용된 TOTP time-step (같은 코드 재사용 방지)
    two_factor_last_step: Mapped[int | None] = mapped_column(Integer, nullable=True)

    password_reset_token: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    password_reset_expires: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    pin_reset_code: Mapped[str | None] = mapped_column(String(64), index=True, nullable=True)
    pin_reset_expires: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    verification_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    verification_code_expires: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    last_active: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    login_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bonus_balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    transactions = relationship(
        "WalletTransaction",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="WalletTransaction.created_at",
    )

    @property
    def total_balance(self) -> int:
        return (self.balance or 0) + (self.bonus_balance or 0)
