"""
security.py

비밀번호/PIN 해싱, JWT 토큰 생성/검증, 일회용 코드 생성을 담당하는 보안 유틸리티 모음.

이 파일은 인증(auth) 로직에서 사용하는
저수준(low-level) 보안 기능만을 제공하며,
라우터나 비즈니스 로직은 포함하지 않는다.

주요 기능:
- 비밀번호 / PIN 해싱 및 검증 (bcrypt, 단일 해싱 컨텍스트)
- JWT Access Token / Refresh Token / MFA Token 생성
- 토큰 디코딩 및 검증 (InvalidToken / TokenExpired 구분)
- 재설정 토큰(hex) / 숫자 코드 생성 및 다이제스트 계산
- TOTP(2FA) 시크릿 생성 및 코드 검증

설계 원칙:
- Access Token과 Refresh Token은 서로 다른 시크릿으로 서명
- 만료(exp) 판단은 주입된 시각(now) 기준으로 직접 수행
- 토큰 타입(type) 클레임으로 access / refresh / mfa 혼용 차단
- 재설정 코드는 평문 대신 SHA-256 다이제스트로만 저장

관련 파일:
- app.core.config        : JWT 시크릿 키 / 만료 / bcrypt cost 설정
- app.services.auth      : 로그인 / 재발급 / 인증 게이트
- app.services.reset     : 재설정 코드 발급·사용

"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal, Optional

import pyotp
from pyotp.utils import strings_equal
from jose import jwt, JWTError
from passlib.context import CryptContext

from app.core.config import settings
from app.core.errors import InvalidToken, TokenExpired


# bcrypt 기반 해싱 컨텍스트 (비밀번호와 PIN 모두 동일 컨텍스트 사용)
# deprecated="auto"로 향후 알고리즘 교체 가능하도록 설정

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

TokenKind = Literal["access", "refresh", "mfa_pending"]


"""
비밀번호 / PIN 해싱 함수

- 평문을 bcrypt 해시로 변환
- DB에는 해시 값만 저장

"""

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


"""
비밀번호 / PIN 검증 함수

- 사용자가 입력한 평문과 DB에 저장된 해시 값을 비교
- 해시가 없으면(None) 더미 검증으로 소요 시간을 맞춘 뒤 False

"""

def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        pwd_context.dummy_verify()
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        return False


# 계정이 존재하지 않을 때도 같은 비용의 검증을 수행하기 위한 함수
def dummy_verify() -> None:
    pwd_context.dummy_verify()


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    role: str | None = None
    username: str | None = None


"""
JWT 토큰 생성 내부 공통 함수

- Access / Refresh / MFA 토큰 생성 로직을 공통화
- subject(sub): 사용자 식별자(user_id)
- token_type: access / refresh / mfa_pending
- iat / exp: 발급·만료 시각 (UTC timestamp, 주입된 now 기준)
- extra: role / username 등 추가 클레임

"""

def _create_token(*, subject: str, token_type: TokenKind, now: datetime,
                  expires_delta: timedelta, secret: str, extra: Optional[dict] = None) -> str:
    payload = {
        "sub": subject,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, secret, algorithm=settings.ALGORITHM)


"""
Access Token 생성 함수

- API 요청 인증에 사용 (Authorization Bearer 헤더)
- userId / role / username 클레임 포함
- 분 단위의 짧은 만료 시간 사용

"""

def create_access_token(*, user_id: str, role: str, username: str, now: datetime,
                        expires_delta: Optional[timedelta] = None) -> str:
    return _create_token(
        subject=user_id,
        token_type="access",
        now=now,
        expires_delta=expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        secret=settings.SECRET_KEY,
        extra={"role": role, "username": username},
    )


"""
Refresh Token 생성 함수

- Access Token 재발급에 사용
- userId 클레임만 포함, 일 단위의 긴 만료 시간 사용
- Access Token과 다른 시크릿으로 서명
  (access 시크릿 유출이 refresh 위조로 이어지지 않음)

"""

def create_refresh_token(*, user_id: str, now: datetime,
                         expires_delta: Optional[timedelta] = None) -> str:
    return _create_token(
        subject=user_id,
        token_type="refresh",
        now=now,
        expires_delta=expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        secret=settings.REFRESH_SECRET_KEY,
    )


"""
MFA 대기 토큰 생성 함수

- 관리자 비밀번호 확인 후, TOTP 확인 전까지만 유효한 임시 토큰
- access 시크릿으로 서명하지만 type이 달라 API 인증에는 사용 불가

"""

def create_mfa_token(*, user_id: str, now: datetime) -> str:
    return _create_token(
        subject=user_id,
        token_type="mfa_pending",
        now=now,
        expires_delta=timedelta(minutes=settings.MFA_TOKEN_EXPIRE_MINUTES),
        secret=settings.SECRET_KEY,
    )


def _secret_for(kind: TokenKind) -> str:
    return settings.REFRESH_SECRET_KEY if kind == "refresh" else settings.SECRET_KEY


"""
토큰 디코딩 및 검증 함수

- 서명 불일치 / 형식 오류 / 타입 불일치 → InvalidToken
- exp <= now → TokenExpired
- 성공 시 TokenClaims(user_id, role, username) 반환

"""

def decode_token(token: str, kind: TokenKind, *, now: datetime) -> TokenClaims:
    try:
        payload = jwt.decode(
            token,
            _secret_for(kind),
            algorithms=[settings.ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError:
        raise InvalidToken()

    if payload.get("type") != kind:
        raise InvalidToken()

    sub = payload.get("sub")
    exp = payload.get("exp")
    if not sub or not isinstance(exp, int):
        raise InvalidToken()

    if exp <= int(now.timestamp()):
        raise TokenExpired()

    return TokenClaims(
        user_id=sub,
        role=payload.get("role"),
        username=payload.get("username"),
    )


# 재설정 토큰 (비밀번호 재설정 링크용, 32자리 hex)
def generate_reset_token() -> str:
    return secrets.token_hex(16)


# 숫자 코드 (PIN 재설정 / 전화번호 인증용, 앞자리 0 허용)
def generate_numeric_code(length: int = 6) -> str:
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


# DB에는 코드 원문 대신 다이제스트만 저장
def code_digest(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def generate_totp_secret() -> str:
    return pyotp.random_base32()


def totp_provisioning_uri(secret: str, account_name: str) -> str:
    return pyotp.TOTP(secret).provisioning_uri(name=account_name, issuer_name=settings.TOTP_ISSUER)


"""
TOTP 코드 확인

- 앞뒤 30초(time-step 1개) 허용
- 일치하면 해당 time-step 번호, 아니면 None
- 재사용 방지는 호출 측에서 마지막 time-step 과 비교

"""

def verify_totp(secret: str, code: str, *, now: datetime) -> int | None:
    totp = pyotp.TOTP(secret)
    current = totp.timecode(now)
    for offset in (-1, 0, 1):
        if strings_equal(code, totp.at(now, counter_offset=offset)):
            return current + offset
    return None
