"""
auth.py

인증(Authentication) 및 본인 계정 관리 API 모음.

이 파일은 회원 가입, 로그인, 토큰 재발급, 관리자 2단계 인증,
비밀번호 / PIN 재설정, 본인 프로필 수정과 같은
사용자 인증 흐름 전반을 담당한다.
JWT 기반 인증 방식을 사용하며, Access Token + Refresh Token 구조를 따른다.

주요 기능:
- 회원 가입 (PIN 기반, 가입 보너스 선택)
- 로그인 (username 또는 전화번호 + PIN / 관리자 비밀번호)
- Refresh Token 기반 토큰 재발급
- 관리자 로그인 + TOTP 2단계 인증
- 비밀번호 / PIN 분실 시 재설정 코드 발급 및 사용
- 프로필 조회·수정, PIN / 비밀번호 변경

설계 원칙:
- Access Token은 Authorization Header로 전달
- Refresh Token은 응답 바디 + HttpOnly Cookie 로 전달
- Refresh Token은 서버에서 추적하지 않음 (요청마다 계정 재조회로만 무효화)
- 재설정 요청은 계정 존재 여부와 무관하게 같은 응답
- 비즈니스 규칙은 app.services.* 에서 처리, 라우터는 트랜잭션만 담당

관련 파일:
- app.services.auth        : 가입 / 로그인 / 인증 게이트
- app.services.reset       : 재설정 코드 발급·사용
- app.core.deps            : 인증 의존성(get_current_user)
- app.schemas.auth         : 인증 관련 요청 스키마

"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.core.clock import Clock, get_clock
from app.core.config import settings
from app.core.deps import get_db, get_current_user, get_current_admin
from app.core.errors import BadRequest, InvalidToken
from app.db.session import transaction
from app.models.user import User
from app.schemas.auth import (
    RegisterRequest, LoginRequest, AdminLoginRequest, RefreshRequest,
    TwoFactorAuthenticateRequest, TwoFactorVerifyRequest,
    ForgotPasswordRequest, ResetPasswordRequest, ForgotPinRequest, ResetPinRequest,
    EditProfileRequest, ChangePinRequest, ChangePasswordRequest,
)
from app.schemas.user import user_out
from app.services import accounts, auth as auth_service, reset as reset_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

REFRESH_COOKIE_NAME = "refresh_token"

GENERIC_RESET_MESSAGE = "If an account matches, a reset code has been sent"


def _set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,        # 로컬 False / HTTPS 운영 True
        samesite=settings.COOKIE_SAMESITE,    # "lax" 추천
        domain=settings.COOKIE_DOMAIN,        # 보통 None
        path="/",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
    )


def _token_body(result: auth_service.AuthResult) -> dict:
    return {
        "data": {
            "access_token": result.tokens.access_token,
            "refresh_token": result.tokens.refresh_token,
            "token_type": "bearer",
            "user": user_out(result.user),
        }
    }


"""
회원 가입 API

- username / 전화번호 / 이메일 중복 시 409 (필드별 메시지)
- 가입 즉시 토큰 발급 (로그인과 같은 응답 형태)
- 전화번호 인증이 필요한 설정이면 인증 전까지 보호된 API 접근 불가

"""

@router.post("/register", status_code=201)
def register(
    data: RegisterRequest,
    response: Response,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    with transaction(db):
        result = auth_service.register(
            db,
            username=data.username,
            phone_number=data.phone_number,
            pin=data.pin,
            email=data.email,
            first_name=data.first_name,
            last_name=data.last_name,
            now=clock(),
        )
    db.refresh(result.user)

    _set_refresh_cookie(response, result.tokens.refresh_token)
    return _token_body(result)


"""
로그인 API

- username 또는 전화번호 + 4자리 PIN (관리자는 비밀번호도 가능)
- 계정 없음 / 비밀 값 틀림은 같은 401 응답
- 비활성 계정은 403
- 2FA 사용 계정: mfa_token 만 반환 → /auth/2fa/authenticate 로 2단계 진행

"""

@router.post("/login")
def login(
    data: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    with transaction(db):
        result = auth_service.login(db, identifier=data.identifier, secret=data.secret, now=clock())

    if isinstance(result, str):
        return {"data": {"requires_2fa": True, "mfa_token": result}}

    db.refresh(result.user)

    _set_refresh_cookie(response, result.tokens.refresh_token)
    return _token_body(result)


"""
관리자 로그인 API (1단계)

- 2FA 미사용: 바로 토큰 발급
- 2FA 사용: mfa_token 만 반환 → /auth/2fa/authenticate 로 2단계 진행

"""

@router.post("/admin/login")
def admin_login(
    data: AdminLoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    with transaction(db):
        result = auth_service.admin_login(db, identifier=data.identifier, password=data.password, now=clock())

    if isinstance(result, str):
        return {"data": {"requires_2fa": True, "mfa_token": result}}

    db.refresh(result.user)
    _set_refresh_cookie(response, result.tokens.refresh_token)
    return _token_body(result)


@router.post("/2fa/authenticate")
def authenticate_2fa(
    data: TwoFactorAuthenticateRequest,
    response: Response,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    with transaction(db):
        result = auth_service.complete_mfa_login(db, mfa_token=data.mfa_token, code=data.code, now=clock())
    db.refresh(result.user)

    _set_refresh_cookie(response, result.tokens.refresh_token)
    return _token_body(result)


"""
토큰 재발급 API

- 바디의 refresh_token 또는 refresh_token 쿠키 사용
- 유효한 refresh 토큰이면 새 access + refresh 쌍 발급
- 만료 / 위조 / 비활성 계정이면 401

"""

@router.post("/refresh")
def refresh(
    request: Request,
    response: Response,
    data: RefreshRequest | None = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    token = (data.refresh_token if data else None) or request.cookies.get(REFRESH_COOKIE_NAME)
    if not token:
        raise InvalidToken("Missing refresh token")

    tokens = auth_service.refresh(db, refresh_token=token, now=clock())

    _set_refresh_cookie(response, tokens.refresh_token)
    return {
        "data": {
            "access_token": tokens.access_token,
            "refresh_token": tokens.refresh_token,
            "token_type": "bearer",
        }
    }


# 전화번호 가입 여부 확인
@router.get("/verify-phone")
def verify_phone_registered(phone_number: str, db: Session = Depends(get_db)):
    return {"data": {"registered": accounts.find_by_phone(db, phone_number) is not None}}


"""
비밀번호 재설정 요청 / 사용 API

- 요청: 이메일 또는 username, 항상 같은 메시지 응답
- 운영 환경이 아닐 때만 응답에 실제 토큰 포함 (테스트 용도)
- 사용: 토큰 + 새 비밀번호, 실패 시 400 (어떤 조건이 틀렸는지 노출하지 않음)

"""

@router.post("/forgot-password")
def forgot_password(
    data: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    with transaction(db):
        token = reset_service.request_password_reset(db, data.identifier, now=clock())

    body = {"message": GENERIC_RESET_MESSAGE}
    if token and not settings.is_production:
        body["reset_token"] = token
    return {"data": body}


@router.post("/reset-password")
def reset_password(
    data: ResetPasswordRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    with transaction(db):
        reset_service.redeem_password_reset(db, data.token, data.new_password, now=clock())
    return {"data": {"status": "password_reset"}}


@router.post("/forgot-pin")
def forgot_pin(
    data: ForgotPinRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    with transaction(db):
        code = reset_service.request_pin_reset(db, data.phone_number, now=clock())

    body = {"message": GENERIC_RESET_MESSAGE}
    if code and not settings.is_production:
        body["reset_code"] = code
    return {"data": body}


@router.post("/reset-pin")
def reset_pin(
    data: ResetPinRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    with transaction(db):
        reset_service.redeem_pin_reset(db, data.code, data.new_pin, now=clock())
    return {"data": {"status": "pin_reset"}}


"""
본인 프로필 조회 / 수정 API

- 수정 가능: 이름, 선호 언어, 테마
- 변경 사항이 없으면 요청 거부

"""

@router.get("/profile")
def get_profile(user: User = Depends(get_current_user)):
    return {"data": user_out(user)}


@router.patch("/profile")
def edit_profile(
    data: EditProfileRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise BadRequest("No changes provided")

    with transaction(db):
        auth_service.update_profile(db, user, **changes)
    db.refresh(user)
    return {"data": user_out(user)}


@router.post("/change-pin")
def change_pin(
    data: ChangePinRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    with transaction(db):
        auth_service.change_pin(db, user, current_pin=data.current_pin, new_pin=data.new_pin)
    return {"data": {"status": "pin_updated"}}


"""
비밀번호 변경 API (관리자)

- 현재 비밀번호 확인 필수
- 새 비밀번호 확인 값 일치 + 기존 비밀번호와 달라야 함

"""

@router.post("/change-password")
def change_password(
    data: ChangePasswordRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_admin),
):
    if data.new_password != data.confirm_password:
        raise BadRequest("Passwords do not match")

    with transaction(db):
        auth_service.change_password(
            db, user, current_password=data.current_password, new_password=data.new_password
        )
    return {"data": {"status": "password_updated"}}


"""
관리자 2FA 설정 API

- setup : 새 시크릿 + provisioning URI 발급 (아직 저장 안 함)
- verify: 인증 앱에서 생성한 코드로 확인 후 시크릿 저장 + 2FA 활성화

"""

@router.post("/2fa/setup")
def setup_2fa(user: User = Depends(get_current_admin)):
    secret, uri = auth_service.setup_two_factor(user)
    return {"data": {"secret": secret, "otpauth_url": uri}}


@router.post("/2fa/verify")
def verify_2fa(
    data: TwoFactorVerifyRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_admin),
    clock: Clock = Depends(get_clock),
):
    with transaction(db):
        auth_service.verify_two_factor(db, user, secret=data.secret, code=data.code, now=clock())
    return {"data": {"status": "2fa_enabled"}}
