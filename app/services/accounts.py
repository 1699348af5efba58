"""
services/accounts.py

계정 저장소(Credential Store) 접근 함수 모음.

이 파일은 User 레코드에 대한 단순 조회/생성/부분 갱신을 담당한다.
인증, 재설정, 지갑, 관리자 서비스는 모두 이 파일을 통해 계정에 접근한다.

주요 기능:
- id / 식별자(username 또는 전화번호) / 이메일 기준 조회
- 가입 시 중복 식별자 검사 및 신규 계정 생성
- 검증 파이프라인을 거치지 않는 좁은 범위의 직접 UPDATE
- 로그인 통계(last_active, login_count) 갱신
- 계정 비활성화(Soft) / 영구 삭제(Hard) 를 별도 함수로 분리

설계 원칙:
- HTTP / FastAPI 의존성 없음
- 트랜잭션 제어(commit/rollback)는 라우터에서 수행
- 단일 레코드 원자성 외의 트랜잭션은 가정하지 않음

관련 파일:
- app.models.user          : User / Role 모델
- app.services.auth        : 로그인 / 가입
- app.services.reset       : 재설정 코드 저장
- app.routers.users        : 관리자 회원 관리 API

"""

import logging
import uuid
from datetime import datetime

from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import Conflict, NotFound
from app.models.user import User, Role

logger = logging.getLogger(__name__)


def _as_uuid(user_id) -> uuid.UUID | None:
    if isinstance(user_id, uuid.UUID):
        return user_id
    try:
        return uuid.UUID(str(user_id))
    except (ValueError, TypeError):
        return None


def find_by_id(db: Session, user_id) -> User | None:
    uid = _as_uuid(user_id)
    if uid is None:
        return None
    return db.get(User, uid)


def get_or_404(db: Session, user_id) -> User:
    user = find_by_id(db, user_id)
    if not user:
        raise NotFound("User not found")
    return user


"""
로그인 식별자로 계정 조회

- username 또는 전화번호 중 하나와 일치하는 계정
- 비활성 계정도 반환 (비활성 여부 판단은 호출 측 책임)

"""

def find_by_identifier(db: Session, identifier: str) -> User | None:
    identifier = identifier.strip()
    return db.scalar(
        select(User).where(or_(User.username == identifier, User.phone_number == identifier))
    )


def find_by_phone(db: Session, phone_number: str) -> User | None:
    return db.scalar(select(User).where(User.phone_number == phone_number.strip()))


# 비밀번호 재설정용: 이메일 또는 username
def find_by_email_or_username(db: Session, identifier: str) -> User | None:
    identifier = identifier.strip()
    return db.scalar(
        select(User).where(or_(User.email == identifier.lower(), User.username == identifier))
    )


"""
가입 전 중복 식별자 검사

- username / phone_number / email 순서로 검사
- 각각 별도의 Conflict 에러(field 구분)로 실패

"""

def ensure_unique(db: Session, *, username: str, phone_number: str, email: str | None) -> None:
    if db.scalar(select(User.id).where(User.username == username)):
        raise Conflict("username", "Username already taken")
    if db.scalar(select(User.id).where(User.phone_number == phone_number)):
        raise Conflict("phone_number", "Phone number already in use")
    if email and db.scalar(select(User.id).where(User.email == email)):
        raise Conflict("email", "Email already in use")


"""
계정 생성

- ensure_unique 통과 후에도 동시 가입이 먼저 커밋될 수 있음
- unique 인덱스 위반은 SAVEPOINT 만 되돌리고 필드별 Conflict 로 변환

"""

def insert_user(db: Session, **fields) -> User:
    user = User(**fields)
    try:
        with db.begin_nested():
            db.add(user)
            db.flush()
    except IntegrityError:
        logger.info("insert_user lost unique race username=%s", fields.get("username"))
        ensure_unique(
            db,
            username=fields.get("username"),
            phone_number=fields.get("phone_number"),
            email=fields.get("email"),
        )
        raise Conflict("account", "Account already exists")
    return user


"""
계정 필드 직접 갱신

- ORM 객체 변경(프로필 수정 파이프라인)을 거치지 않는 단일 UPDATE 문
- 재설정 코드 저장처럼 범위가 좁은 변경에만 사용
- 대상 계정이 없으면 False

"""

def update_fields(db: Session, user_id, **fields) -> bool:
    result = db.execute(
        update(User)
        .where(User.id == _as_uuid(user_id))
        .values(**fields)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


"""
TOTP time-step 사용 처리

- 마지막으로 사용된 step 보다 큰 경우에만 갱신하는 조건부 UPDATE
- 같은 코드(같은 step)를 두 번 쓰면 False

"""

def claim_totp_step(db: Session, user_id, step: int) -> bool:
    result = db.execute(
        update(User)
        .where(
            User.id == _as_uuid(user_id),
            or_(User.two_factor_last_step.is_(None), User.two_factor_last_step < step),
        )
        .values(two_factor_last_step=step)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


"""
로그인 통계 갱신 (best-effort)

- last_active 갱신 + login_count 원자적 증가
- SAVEPOINT 안에서 실행하여 실패해도 로그인 자체는 계속 진행

"""

def record_login(db: Session, user_id, *, now: datetime) -> None:
    try:
        with db.begin_nested():
            db.execute(
                update(User)
                .where(User.id == _as_uuid(user_id))
                .values(last_active=now, login_count=User.login_count + 1)
                .execution_options(synchronize_session=False)
            )
    except SQLAlchemyError:
        logger.warning("login stats update failed user_id=%s", user_id, exc_info=True)


# 현재 활성 ADMIN 계정 수 (마지막 ADMIN 보호용)
def count_admins(db: Session) -> int:
    return db.scalar(
        select(func.count()).select_from(User).where(User.role == Role.ADMIN, User.is_active.is_(True))
    ) or 0


"""
계정 비활성화 (Soft Delete)

- is_active=False 로만 변경, 데이터는 유지
- 다음 요청부터 인증 게이트에서 Forbidden(deactivated)

"""

def deactivate_account(db: Session, user: User) -> None:
    user.is_active = False
    db.flush()


def activate_account(db: Session, user: User) -> None:
    user.is_active = True
    db.flush()


"""
계정 영구 삭제 (Hard Delete)

- users 행 삭제, 지갑 거래 기록은 FK CASCADE로 함께 삭제
- 관리자 로그의 target_user_id 는 NULL 처리 (로그 자체는 유지)

"""

def purge_account(db: Session, user: User) -> None:
    # 같은 트랜잭션의 관리자 로그가 먼저 INSERT 되어야 FK SET NULL 이 적용됨
    db.flush()
    db.execute(delete(User).where(User.id == user.id).execution_options(synchronize_session=False))
    db.expunge(user)
