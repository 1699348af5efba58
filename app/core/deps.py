from typing import Generator

from fastapi import Depends, Request
from fastapi.security import HTTPBearer
from sqlalchemy.orm import Session

from app.core.clock import Clock, get_clock
from app.db.session import SessionLocal
from app.models.user import User, Role
from app.services import auth as auth_service

# Swagger Authorize에서 "Bearer 토큰" 입력받는 스키마
# 실제 헤더 해석은 auth_service.authenticate 에서 수행
bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    request: Request,
    _=Depends(bearer_scheme),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> User:
    return auth_service.authenticate(db, request.headers.get("Authorization"), now=clock())


def require_roles(*roles: Role):
    def _checker(current_user: User = Depends(get_current_user)) -> User:
        return auth_service.authorize(current_user, roles)
    return _checker


get_current_admin = require_roles(Role.ADMIN)


# 요청 메타데이터 (관리자 로그용)
def client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def user_agent(request: Request) -> str | None:
    return request.headers.get("User-Agent")
