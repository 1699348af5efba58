import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.user import Role
from app.schemas.auth import PIN_PATTERN


# 🔹 외부로 노출 가능한 계정 정보 (해시 / 재설정 코드 / 2FA 시크릿 제외)
class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    phone_number: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    preferred_language: str | None = None
    theme: str | None = None
    role: Role
    is_active: bool
    pending_verification: bool
    phone_verified: bool
    is_two_factor_enabled: bool
    balance: int
    bonus_balance: int
    last_active: datetime.datetime | None = None
    login_count: int
    created_at: datetime.datetime | None = None


def user_out(user) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json")


# 🔹 관리자 role 변경 요청용
class RoleUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    role: Role


class StatusUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_active: bool


class AdminResetPinRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    new_pin: str = Field(pattern=PIN_PATTERN)


class CreateAdminRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    username: str = Field(min_length=3, max_length=50)
    phone_number: str = Field(min_length=7, max_length=30)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    pin: str = Field(pattern=PIN_PATTERN)
