from typing import Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

PIN_PATTERN = r"^\d{4}$"


class _Strict(BaseModel):
    # 정의되지 않은 필드는 422, 앞뒤 공백은 제거 (조회 시 strip 과 동일하게 저장)
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class RegisterRequest(_Strict):
    username: str = Field(min_length=3, max_length=50)
    phone_number: str = Field(min_length=7, max_length=30)
    pin: str = Field(pattern=PIN_PATTERN)
    email: EmailStr | None = None
    first_name: str | None = Field(default=None, max_length=50)
    last_name: str | None = Field(default=None, max_length=50)

class LoginRequest(_Strict):
    identifier: str = Field(min_length=1)   # username 또는 전화번호
    secret: str = Field(min_length=1)       # 4자리 PIN 또는 (관리자) 비밀번호

class AdminLoginRequest(_Strict):
    identifier: str = Field(min_length=1)
    password: str = Field(min_length=1)

class RefreshRequest(_Strict):
    refresh_token: str | None = None

class TwoFactorAuthenticateRequest(_Strict):
    mfa_token: str = Field(min_length=1)
    code: str = Field(pattern=r"^\d{6}$")

class TwoFactorVerifyRequest(_Strict):
    secret: str = Field(min_length=16, max_length=64)
    code: str = Field(pattern=r"^\d{6}$")

class ForgotPasswordRequest(_Strict):
    identifier: str = Field(min_length=1)   # 이메일 또는 username

class ResetPasswordRequest(_Strict):
    token: str = Field(pattern=r"^[0-9a-fA-F]{32}$")
    new_password: str = Field(min_length=8, max_length=128)

class ForgotPinRequest(_Strict):
    phone_number: str = Field(min_length=7, max_length=30)

class ResetPinRequest(_Strict):
    code: str = Field(pattern=r"^\d{6}$")
    new_pin: str = Field(pattern=PIN_PATTERN)

class SendVerificationCodeRequest(_Strict):
    phone_number: str = Field(min_length=7, max_length=30)

class VerifyPhoneRequest(_Strict):
    phone_number: str = Field(min_length=7, max_length=30)
    code: str = Field(pattern=r"^\d{6}$")

class EditProfileRequest(_Strict):
    first_name: str | None = Field(default=None, max_length=50)
    last_name: str | None = Field(default=None, max_length=50)
    preferred_language: Literal["kinyarwanda", "english", "french"] | None = None
    theme: Literal["light", "dark"] | None = None

class ChangePinRequest(_Strict):
    current_pin: str = Field(min_length=1)
    new_pin: str = Field(pattern=PIN_PATTERN)

class ChangePasswordRequest(_Strict):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)
    confirm_password: str = Field(..., min_length=8, max_length=128)
