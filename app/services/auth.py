"""
services/auth.py

인증(Authentication) 비즈니스 로직 모음.

이 파일은 가입, 로그인, 토큰 재발급, 요청 인증(Auth Gate),
권한 검사, 본인 PIN/비밀번호 변경, 관리자 2FA 로그인을 담당한다.

주요 기능:
- 가입: 중복 식별자 검사 → 해시 저장 → 토큰 발급 (가입 보너스 선택)
- 로그인: 식별자 조회 → 비활성 확인 → 상수 시간 해시 검증 → 토큰 발급
- 재발급: refresh 토큰 검증 → 계정 재조회 → 새 access + refresh 발급
- 인증 게이트: Bearer 헤더 → 토큰 검증 → 계정 조회 → 상태/권한 검사
- 관리자 로그인: 비밀번호 확인 → (2FA 사용 시) MFA 토큰 → TOTP 확인

설계 원칙:
- HTTP / FastAPI 의존성 없음, 실패는 app.core.errors 타입으로만 표현
- "계정 없음" / "비밀번호 틀림" 은 같은 InvalidCredentials
- 토큰 서버 측 블랙리스트 없음: 요청마다 계정을 다시 조회하는 것이 유일한 무효화 지점
- 현재 시각(now)은 호출 측에서 주입

관련 파일:
- app.core.security        : 해시 / JWT / TOTP
- app.services.accounts    : 계정 조회·생성
- app.services.wallet      : 가입 보너스 지급
- app.routers.auth         : 인증 API

"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    AccountDeactivated,
    BadRequest,
    Forbidden,
    InvalidCredentials,
    InvalidToken,
    TokenExpired,
    Unauthenticated,
)
from app.core.security import (
    create_access_token,
    create_mfa_token,
    create_refresh_token,
    decode_token,
    dummy_verify,
    generate_totp_secret,
    get_password_hash,
    totp_provisioning_uri,
    verify_password,
    verify_totp,
)
from app.models.user import User, Role
from app.models.wallet import TransactionType
from app.services import accounts, wallet

logger = logging.getLogger(__name__)

PIN_RE = re.compile(r"^\d{4}$")


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass
class AuthResult:
    user: User
    tokens: TokenPair


def issue_tokens(user: User, *, now: datetime) -> TokenPair:
    user_id = str(user.id)
    return TokenPair(
        access_token=create_access_token(
            user_id=user_id, role=user.role.value, username=user.username, now=now
        ),
        refresh_token=create_refresh_token(user_id=user_id, now=now),
    )


"""
비밀 값 검증

- 4자리 숫자면 PIN 해시와, 그 외에는 비밀번호 해시와 비교
- 비밀번호 로그인은 ADMIN 계정만 허용

"""

def _verify_secret(user: User, secret: str) -> bool:
    if PIN_RE.match(secret):
        return verify_password(secret, user.pin_hash)
    if user.role != Role.ADMIN:
        dummy_verify()
        return False
    return verify_password(secret, user.password_hash)


"""
가입

- username / phone_number / email 중복 시 각각 Conflict
- PIN 은 bcrypt 해시로 저장, 권한은 항상 USER
- REQUIRE_PHONE_VERIFICATION 이 켜져 있으면 pending_verification=True
- WELCOME_BONUS_AMOUNT > 0 이면 같은 트랜잭션에서 보너스 잔액 지급

"""

def register(
    db: Session,
    *,
    username: str,
    phone_number: str,
    pin: str,
    now: datetime,
    email: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
) -> AuthResult:
    email = email.lower() if email else None
    accounts.ensure_unique(db, username=username, phone_number=phone_number, email=email)

    user = accounts.insert_user(
        db,
        username=username,
        phone_number=phone_number,
        email=email,
        first_name=first_name,
        last_name=last_name,
        pin_hash=get_password_hash(pin),
        role=Role.USER,
        is_active=True,
        pending_verification=settings.REQUIRE_PHONE_VERIFICATION,
    )

    if settings.WELCOME_BONUS_AMOUNT > 0:
        wallet.credit(
            db,
            user.id,
            settings.WELCOME_BONUS_AMOUNT,
            TransactionType.WELCOME_BONUS,
            "Welcome bonus",
            as_bonus=True,
            now=now,
        )
        db.refresh(user)

    logger.info("user registered user_id=%s username=%s", user.id, user.username)
    return AuthResult(user=user, tokens=issue_tokens(user, now=now))


"""
로그인

1) 식별자(username 또는 전화번호)로 계정 조회 → 없으면 InvalidCredentials
2) 비활성 계정이면 AccountDeactivated
3) 상수 시간 해시 비교 → 불일치면 InvalidCredentials
4) 2FA 가 켜진 계정은 PIN / 비밀번호만으로 토큰을 받지 못함 → MFA 토큰(str) 반환
5) 로그인 통계 갱신(best-effort) 후 토큰 발급

"""

def login(db: Session, *, identifier: str, secret: str, now: datetime) -> AuthResult | str:
    user = accounts.find_by_identifier(db, identifier)
    if not user:
        # 존재 여부가 응답 시간으로 드러나지 않도록 더미 검증
        dummy_verify()
        logger.info("login failed: unknown identifier")
        raise InvalidCredentials()

    if not user.is_active:
        raise AccountDeactivated()

    if not _verify_secret(user, secret):
        logger.info("login failed: bad secret user_id=%s", user.id)
        raise InvalidCredentials()

    if user.is_two_factor_enabled:
        return create_mfa_token(user_id=str(user.id), now=now)

    accounts.record_login(db, user.id, now=now)
    logger.info("login ok user_id=%s", user.id)
    return AuthResult(user=user, tokens=issue_tokens(user, now=now))


"""
관리자 로그인 (1단계)

- 식별자(username / 전화번호 / 이메일) + 비밀번호
- ADMIN 이 아니거나 비밀번호가 없으면 InvalidCredentials
- 2FA 가 켜져 있으면 토큰 대신 MFA 토큰(str) 반환

"""

def admin_login(db: Session, *, identifier: str, password: str, now: datetime) -> AuthResult | str:
    user = accounts.find_by_identifier(db, identifier) or accounts.find_by_email_or_username(db, identifier)
    if not user or user.role != Role.ADMIN:
        dummy_verify()
        raise InvalidCredentials()

    if not user.is_active:
        raise AccountDeactivated()

    if not verify_password(password, user.password_hash):
        logger.info("admin login failed user_id=%s", user.id)
        raise InvalidCredentials()

    if user.is_two_factor_enabled:
        return create_mfa_token(user_id=str(user.id), now=now)

    accounts.record_login(db, user.id, now=now)
    return AuthResult(user=user, tokens=issue_tokens(user, now=now))


"""
관리자 로그인 (2단계, TOTP)

- MFA 토큰 검증 → 계정 재조회 → TOTP 코드 확인 → 토큰 발급
- 이미 사용된 time-step 의 코드는 거부 (재사용 방지)
- 토큰/코드 문제는 모두 InvalidCredentials

"""

def complete_mfa_login(db: Session, *, mfa_token: str, code: str, now: datetime) -> AuthResult:
    try:
        claims = decode_token(mfa_token, "mfa_pending", now=now)
    except (InvalidToken, TokenExpired):
        raise InvalidCredentials("Invalid or expired 2FA session")

    user = accounts.find_by_id(db, claims.user_id)
    if not user or not user.is_active or not user.is_two_factor_enabled or not user.two_factor_secret:
        raise InvalidCredentials("Invalid or expired 2FA session")

    step = verify_totp(user.two_factor_secret, code, now=now)
    if step is None or not accounts.claim_totp_step(db, user.id, step):
        raise InvalidCredentials("Invalid 2FA code")

    accounts.record_login(db, user.id, now=now)
    return AuthResult(user=user, tokens=issue_tokens(user, now=now))


"""
토큰 재발급

- refresh 토큰 검증 (InvalidToken / TokenExpired 그대로 전달)
- 계정이 없거나 비활성이면 InvalidToken
- 매번 새 access + refresh 쌍 발급 (서버 측 refresh 추적 없음)

"""

def refresh(db: Session, *, refresh_token: str, now: datetime) -> TokenPair:
    claims = decode_token(refresh_token, "refresh", now=now)

    user = accounts.find_by_id(db, claims.user_id)
    if not user or not user.is_active:
        raise InvalidToken("Invalid refresh token")

    return issue_tokens(user, now=now)


def extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


"""
인증 게이트 (Auth Gate)

1) Bearer 토큰 없음 → Unauthenticated
2) 토큰 무효/만료 → Unauthenticated (어느 쪽인지 노출하지 않음)
3) 계정 없음 → Unauthenticated
4) 비활성 → Forbidden(deactivated)
5) 인증 대기 + ADMIN 아님 → Forbidden(verification_required)

"""

def authenticate(db: Session, authorization: str | None, *, now: datetime) -> User:
    token = extract_bearer_token(authorization)
    if token is None:
        raise Unauthenticated("You are not logged in. Please log in to get access.")

    try:
        claims = decode_token(token, "access", now=now)
    except (InvalidToken, TokenExpired):
        raise Unauthenticated("Invalid or expired token. Please log in again.")

    user = accounts.find_by_id(db, claims.user_id)
    if not user:
        raise Unauthenticated("The user belonging to this token no longer exists.")

    if not user.is_active:
        raise Forbidden("deactivated", "Your account has been deactivated")

    if user.pending_verification and user.role != Role.ADMIN:
        raise Forbidden("verification_required", "Account verification pending. Please complete verification.")

    return user


# 허용 권한 목록 검사
def authorize(user: User, allowed_roles: Iterable[Role]) -> User:
    if user.role not in set(allowed_roles):
        raise Forbidden("insufficient_role")
    return user


"""
PIN 변경

- 현재 PIN 확인 필수, 새 PIN 은 4자리 숫자
- 진행 중이던 PIN 재설정 코드도 함께 제거

"""

def change_pin(db: Session, user: User, *, current_pin: str, new_pin: str) -> None:
    if not verify_password(current_pin, user.pin_hash):
        raise InvalidCredentials("Current PIN is incorrect")
    if not PIN_RE.match(new_pin):
        raise BadRequest("PIN must be 4 digits")

    accounts.update_fields(
        db,
        user.id,
        pin_hash=get_password_hash(new_pin),
        pin_reset_code=None,
        pin_reset_expires=None,
    )


def change_password(db: Session, user: User, *, current_password: str, new_password: str) -> None:
    if not user.password_hash:
        raise BadRequest("Password not set for this user")
    if not verify_password(current_password, user.password_hash):
        raise InvalidCredentials("Current password is incorrect")
    if verify_password(new_password, user.password_hash):
        raise BadRequest("New password must be different")

    accounts.update_fields(
        db,
        user.id,
        password_hash=get_password_hash(new_password),
        password_reset_token=None,
        password_reset_expires=None,
    )


# 프로필 수정 (None 이면 기존 값 유지)
def update_profile(db: Session, user: User, **changes) -> User:
    for field, value in changes.items():
        if value is not None:
            setattr(user, field, value)
    db.flush()
    return user


"""
2FA 설정 시작

- 새 base32 시크릿과 인증 앱 등록용 provisioning URI 반환
- 아직 저장하지 않음 (verify_two_factor 에서 코드 확인 후 저장)

"""

def setup_two_factor(user: User) -> tuple[str, str]:
    secret = generate_totp_secret()
    return secret, totp_provisioning_uri(secret, user.email or user.username)


def verify_two_factor(db: Session, user: User, *, secret: str, code: str, now: datetime) -> None:
    step = verify_totp(secret, code, now=now)
    if step is None:
        raise BadRequest("Invalid 2FA token")
    accounts.update_fields(
        db, user.id, two_factor_secret=secret, is_two_factor_enabled=True, two_factor_last_step=step
    )
