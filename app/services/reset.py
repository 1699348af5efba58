"""
services/reset.py

일회용 코드 기반 복구/인증 흐름(Reset-Flow) 비즈니스 로직 모음.

이 파일은 비밀번호 재설정, PIN 재설정, 전화번호 인증에 사용되는
일회용 코드의 발급과 사용을 하나의 흐름으로 관리한다.

상태 흐름 (계정 단위):
- Idle → (요청) → Pending : 코드 생성, 다이제스트 + 만료 시각 저장
- Pending → (올바른 코드, 만료 전) → Idle : 새 비밀 값 저장 + 코드/만료 제거 (한 UPDATE)
- Pending → (틀린 코드 / 만료) → Pending : InvalidOrExpiredToken, 상태 변화 없음

설계 원칙:
- 요청 단계는 계정 존재 여부와 무관하게 같은 응답 (호출 측에 None 반환)
- 코드 원문은 저장하지 않고 SHA-256 다이제스트만 저장
- 코드 저장은 프로필 수정 경로가 아닌 accounts.update_fields 직접 UPDATE
- 코드 사용은 "코드 일치 + 만료 전" 조건부 단일 UPDATE
  → 같은 코드로 두 번 성공하는 일이 없음 (동시 요청 포함)
- 만료 비교는 모두 SQL 안에서 수행

관련 파일:
- app.core.security        : 코드 생성 / 다이제스트 / 해시
- app.services.accounts    : 계정 조회 / 직접 UPDATE
- app.routers.auth         : 비밀번호 / PIN 재설정 API
- app.routers.verification : 전화번호 인증 API

"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import select, update, and_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidOrExpiredToken
from app.core.security import (
    code_digest,
    generate_numeric_code,
    generate_reset_token,
    get_password_hash,
)
from app.models.user import User, Role
from app.services import accounts

logger = logging.getLogger(__name__)

# 숫자 코드 충돌 시 재생성 횟수
_MAX_CODE_ATTEMPTS = 5


@dataclass(frozen=True)
class CodeFlow:
    name: str
    code_column: object
    expires_column: object
    expire_minutes: Callable[[], int]
    generate: Callable[[], str]


PASSWORD_RESET = CodeFlow(
    name="password_reset",
    code_column=User.password_reset_token,
    expires_column=User.password_reset_expires,
    expire_minutes=lambda: settings.PASSWORD_RESET_EXPIRE_MINUTES,
    generate=generate_reset_token,
)

PIN_RESET = CodeFlow(
    name="pin_reset",
    code_column=User.pin_reset_code,
    expires_column=User.pin_reset_expires,
    expire_minutes=lambda: settings.PIN_RESET_EXPIRE_MINUTES,
    generate=generate_numeric_code,
)

PHONE_VERIFICATION = CodeFlow(
    name="phone_verification",
    code_column=User.verification_code,
    expires_column=User.verification_code_expires,
    expire_minutes=lambda: settings.VERIFICATION_CODE_EXPIRE_MINUTES,
    generate=generate_numeric_code,
)


def _pending(flow: CodeFlow, digest: str, now: datetime):
    return and_(flow.code_column == digest, flow.expires_column > now)


"""
코드 발급 (내부 공통)

- 다른 계정에 아직 유효한 같은 코드가 있으면 재생성
- 코드 다이제스트와 만료 시각을 직접 UPDATE로 저장
- 이전에 발급한 코드는 덮어써져 더 이상 사용 불가

"""

def _issue(db: Session, flow: CodeFlow, user: User, *, now: datetime) -> str:
    for _ in range(_MAX_CODE_ATTEMPTS):
        code = flow.generate()
        digest = code_digest(code)
        taken = db.scalar(
            select(User.id).where(_pending(flow, digest, now), User.id != user.id)
        )
        if not taken:
            break
    else:
        raise RuntimeError(f"could not allocate a unique {flow.name} code")

    accounts.update_fields(
        db,
        user.id,
        **{
            flow.code_column.key: digest,
            flow.expires_column.key: now + timedelta(minutes=flow.expire_minutes()),
        },
    )
    logger.info("%s issued user_id=%s", flow.name, user.id)
    if not settings.is_production:
        logger.debug("%s code for user_id=%s: %s", flow.name, user.id, code)
    return code


"""
코드 사용 (내부 공통)

1) 다이제스트 + 만료 전 조건으로 계정 id 조회 → 없으면 InvalidOrExpiredToken
2) 같은 조건을 WHERE 에 다시 걸고, 새 값 저장 + 코드/만료 NULL 을 한 UPDATE 로
3) 갱신된 행이 1개가 아니면(동시 사용 등) InvalidOrExpiredToken

"""

def _redeem(db: Session, flow: CodeFlow, code: str, *, now: datetime,
            extra_where=None, message: str | None = None, **new_values) -> User:
    digest = code_digest(code.strip())
    criteria = _pending(flow, digest, now)
    if extra_where is not None:
        criteria = and_(criteria, extra_where)

    user_id = db.scalar(select(User.id).where(criteria))
    if user_id is None:
        raise InvalidOrExpiredToken(message)

    values = {flow.code_column.key: None, flow.expires_column.key: None}
    values.update(new_values)
    result = db.execute(
        update(User)
        .where(User.id == user_id, criteria)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise InvalidOrExpiredToken(message)

    logger.info("%s redeemed user_id=%s", flow.name, user_id)
    user = accounts.find_by_id(db, user_id)
    db.refresh(user)
    return user


"""
비밀번호 재설정 요청

- 식별자: 이메일 또는 username
- 비밀번호가 있는 계정만 대상 (관리자 계정)
- 대상이 없어도 None 반환 (호출 측은 항상 같은 응답)

"""

def request_password_reset(db: Session, identifier: str, *, now: datetime) -> str | None:
    user = accounts.find_by_email_or_username(db, identifier)
    if not user or not user.is_active or not user.password_hash:
        return None
    return _issue(db, PASSWORD_RESET, user, now=now)


def redeem_password_reset(db: Session, token: str, new_password: str, *, now: datetime) -> User:
    return _redeem(
        db,
        PASSWORD_RESET,
        token,
        now=now,
        extra_where=User.role == Role.ADMIN,
        password_hash=get_password_hash(new_password),
    )


"""
PIN 재설정 요청 / 사용

- 식별자: 전화번호, 코드: 6자리 숫자
- 사용 시 새 PIN 해시 저장과 코드 제거를 한 UPDATE 로

"""

def request_pin_reset(db: Session, phone_number: str, *, now: datetime) -> str | None:
    user = accounts.find_by_phone(db, phone_number)
    if not user or not user.is_active:
        return None
    return _issue(db, PIN_RESET, user, now=now)


def redeem_pin_reset(db: Session, code: str, new_pin: str, *, now: datetime) -> User:
    return _redeem(
        db,
        PIN_RESET,
        code,
        now=now,
        pin_hash=get_password_hash(new_pin),
    )


"""
전화번호 인증 코드 발급 / 확인

- 이미 인증된 번호나 없는 번호도 같은 응답 (None)
- 확인 성공 시 phone_verified=True, pending_verification=False

"""

def request_phone_verification(db: Session, phone_number: str, *, now: datetime) -> str | None:
    user = accounts.find_by_phone(db, phone_number)
    if not user or user.phone_verified:
        return None
    return _issue(db, PHONE_VERIFICATION, user, now=now)


def verify_phone(db: Session, phone_number: str, code: str, *, now: datetime) -> User:
    return _redeem(
        db,
        PHONE_VERIFICATION,
        code,
        now=now,
        extra_where=User.phone_number == phone_number.strip(),
        message="Invalid or expired verification code",
        phone_verified=True,
        pending_verification=False,
    )
