"""
errors.py

도메인 에러(Error) 타입 정의 파일.

이 파일은 서비스 계층에서 발생시키는 모든 실패를
HTTP 상태 코드와 메시지를 가진 타입 에러로 정의한다.

모든 에러는 FastAPI HTTPException을 상속하므로
라우터에서 별도 변환 없이 그대로 {"detail": message} 응답이 된다.
서비스 계층은 이 에러만 발생시키고, 라우터는 롤백 후 다시 raise 한다.

설계 원칙:
- 에러 종류(code)는 고정 문자열로 구분 (클라이언트 분기용)
- "계정 없음"과 "비밀번호 틀림"은 같은 에러/메시지로 처리
- 401 응답에는 WWW-Authenticate: Bearer 헤더 포함
- DB 드라이버 에러 등 내부 에러는 Internal 로만 노출

관련 파일:
- app.services.*          : 에러 발생
- app.main                : SQLAlchemyError → Internal 변환 핸들러

"""

from fastapi import HTTPException, status


class AppError(HTTPException):
    code: str = "error"
    status_code_default: int = status.HTTP_400_BAD_REQUEST
    message: str = "Request failed"

    def __init__(self, message: str | None = None, *, headers: dict | None = None):
        super().__init__(
            status_code=self.status_code_default,
            detail=message or self.message,
            headers=headers,
        )


class _AuthError(AppError):
    status_code_default = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str | None = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


# 토큰 발급기(Token Issuer) 레벨 에러
class InvalidToken(_AuthError):
    code = "invalid_token"
    message = "Invalid token"


class TokenExpired(_AuthError):
    code = "token_expired"
    message = "Token has expired"


# 인증 게이트(Auth Gate) 레벨 에러 - 토큰 에러 종류는 노출하지 않음
class Unauthenticated(_AuthError):
    code = "unauthenticated"
    message = "Not authenticated"


class Forbidden(AppError):
    code = "forbidden"
    status_code_default = status.HTTP_403_FORBIDDEN
    message = "You do not have permission to perform this action"

    # deactivated / verification_required / insufficient_role
    def __init__(self, reason: str = "insufficient_role", message: str | None = None):
        self.reason = reason
        super().__init__(message)


class InvalidCredentials(_AuthError):
    code = "invalid_credentials"
    message = "Invalid credentials"


class AccountDeactivated(AppError):
    code = "account_deactivated"
    status_code_default = status.HTTP_403_FORBIDDEN
    message = "Your account has been deactivated. Please contact support."


class Conflict(AppError):
    code = "conflict"
    status_code_default = status.HTTP_409_CONFLICT
    message = "Resource already exists"

    # username / phone_number / email
    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidOrExpiredToken(AppError):
    code = "invalid_or_expired_token"
    message = "Invalid or expired reset token"


class InsufficientBalance(AppError):
    code = "insufficient_balance"
    message = "Insufficient balance"


class InvalidCategory(AppError):
    code = "invalid_category"
    message = "Invalid category"


class NotFound(AppError):
    code = "not_found"
    status_code_default = status.HTTP_404_NOT_FOUND
    message = "Not found"


class BadRequest(AppError):
    code = "bad_request"
    message = "Bad request"


class Internal(AppError):
    code = "internal"
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"
