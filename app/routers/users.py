"""
users.py

관리자(Admin) 전용 회원 관리 API 모음.

이 파일은 관리자가 회원 목록/상세를 조회하고,
권한·활성 상태 변경, PIN 초기화, 지갑 잔액 조정,
계정 비활성화(Soft) / 영구 삭제(Hard)를 수행하는 기능을 담당한다.

주요 기능:
- 회원 목록 조회 (페이지네이션, username / 전화번호 / 권한 / 상태 필터)
- 회원 상세 조회, 지갑 거래 내역 조회
- 권한 변경 (본인 ADMIN 해제 금지, 마지막 ADMIN 강등 금지)
- 활성 / 비활성 전환 (본인 비활성화 금지)
- PIN 직접 초기화, 지갑 잔액 조정
- 계정 비활성화(DELETE) 와 영구 삭제(DELETE .../purge) 분리

설계 원칙:
- ADMIN 권한만 접근 가능
- 모든 변경은 같은 트랜잭션에서 AdminActionLog 기록
- 비즈니스 규칙 위반은 400, 대상 없음은 404

관련 파일:
- app.services.accounts    : 계정 조회 / 상태 변경 / 삭제
- app.services.wallet      : 잔액 조정 / 거래 내역
- app.services.admin_log   : 관리자 로그 기록
- app.core.deps            : 관리자 인증(get_current_admin)

"""

import logging
import uuid

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select, func, desc
from sqlalchemy.orm import Session

from app.core.clock import Clock, get_clock
from app.core.deps import get_db, get_current_admin, client_ip, user_agent
from app.core.errors import BadRequest
from app.core.security import get_password_hash
from app.db.session import transaction
from app.models.admin_log import AdminAction
from app.models.user import User, Role
from app.schemas.user import RoleUpdate, StatusUpdate, AdminResetPinRequest, user_out
from app.schemas.wallet import AdjustBalanceRequest, transaction_out
from app.services import accounts, wallet as wallet_service
from app.services.admin_log import write_admin_log

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


# 전체 회원 목록 조회 엔드포인트(관리자 전용)
@router.get("")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    username: str | None = None,
    phone_number: str | None = None,
    role: Role | None = None,
    is_active: bool | None = None,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    conditions = []
    if username:
        conditions.append(User.username.ilike(f"%{username}%"))
    if phone_number:
        conditions.append(User.phone_number.like(f"%{phone_number}%"))
    if role is not None:
        conditions.append(User.role == role)
    if is_active is not None:
        conditions.append(User.is_active.is_(is_active))

    total = db.scalar(select(func.count()).select_from(User).where(*conditions)) or 0
    users = db.scalars(
        select(User)
        .where(*conditions)
        .order_by(desc(User.created_at), User.username)
        .limit(limit)
        .offset((page - 1) * limit)
    ).all()
    return {
        "data": [user_out(u) for u in users],
        "pagination": {"page": page, "limit": limit, "total": total},
    }


# 회원 상세 조회 엔드포인트(관리자 전용)
@router.get("/{user_id}")
def get_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return {"data": user_out(accounts.get_or_404(db, user_id))}


"""
권한 변경 API

- 이미 같은 권한이면 400
- 본인의 ADMIN 권한 해제 금지
- 마지막 활성 ADMIN 강등 금지

"""

@router.patch("/{user_id}/role")
def set_role(
    user_id: uuid.UUID,
    data: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    clock: Clock = Depends(get_clock),
):
    user = accounts.get_or_404(db, user_id)

    # 이미 해당 권한인 경우
    if user.role == data.role:
        raise BadRequest(f"User already {user.role.value}")

    if user.id == current_admin.id and data.role != Role.ADMIN:
        raise BadRequest("Cannot remove your own admin role")

    # 마지막 ADMIN 강등 금지
    if user.role == Role.ADMIN and user.is_active and accounts.count_admins(db) <= 1:
        raise BadRequest("Cannot demote the last admin")

    before = user.role
    with transaction(db):
        user.role = data.role
        write_admin_log(
            db,
            actor=current_admin,
            action=AdminAction.SET_ROLE,
            target=user,
            before=before.value,
            after=data.role.value,
            ip=client_ip(request),
            user_agent=user_agent(request),
            now=clock(),
        )
    db.refresh(user)

    logger.info("role changed user_id=%s %s -> %s by %s", user.id, before.value, user.role.value, current_admin.id)
    return {"message": "Role updated", "data": user_out(user)}


"""
활성 상태 변경 API

- is_active=False: 비활성화 (본인 / 마지막 ADMIN 금지)
- is_active=True : 다시 활성화

"""

@router.patch("/{user_id}/status")
def set_status(
    user_id: uuid.UUID,
    data: StatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    clock: Clock = Depends(get_clock),
):
    user = accounts.get_or_404(db, user_id)
    if data.is_active:
        return _activate(db, user, current_admin, request, clock)
    return _deactivate(db, user, current_admin, request, clock)


def _deactivate(db: Session, user: User, current_admin: User, request: Request, clock: Clock) -> dict:
    if user.id == current_admin.id:
        raise BadRequest("You cannot deactivate your own account")
    if not user.is_active:
        raise BadRequest("User is already deactivated")
    if user.role == Role.ADMIN and accounts.count_admins(db) <= 1:
        raise BadRequest("Cannot deactivate the last admin")

    with transaction(db):
        accounts.deactivate_account(db, user)
        write_admin_log(
            db,
            actor=current_admin,
            action=AdminAction.DEACTIVATE_USER,
            target=user,
            before="active",
            after="inactive",
            ip=client_ip(request),
            user_agent=user_agent(request),
            now=clock(),
        )
    db.refresh(user)
    return {"message": "User deactivated", "data": user_out(user)}


def _activate(db: Session, user: User, current_admin: User, request: Request, clock: Clock) -> dict:
    if user.is_active:
        raise BadRequest("User is already active")

    with transaction(db):
        accounts.activate_account(db, user)
        write_admin_log(
            db,
            actor=current_admin,
            action=AdminAction.ACTIVATE_USER,
            target=user,
            before="inactive",
            after="active",
            ip=client_ip(request),
            user_agent=user_agent(request),
            now=clock(),
        )
    db.refresh(user)
    return {"message": "User activated", "data": user_out(user)}


# PIN 직접 초기화 (진행 중인 PIN 재설정 코드도 제거)
@router.post("/{user_id}/reset-pin")
def reset_user_pin(
    user_id: uuid.UUID,
    data: AdminResetPinRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    clock: Clock = Depends(get_clock),
):
    user = accounts.get_or_404(db, user_id)

    with transaction(db):
        accounts.update_fields(
            db,
            user.id,
            pin_hash=get_password_hash(data.new_pin),
            pin_reset_code=None,
            pin_reset_expires=None,
        )
        write_admin_log(
            db,
            actor=current_admin,
            action=AdminAction.RESET_PIN,
            target=user,
            ip=client_ip(request),
            user_agent=user_agent(request),
            now=clock(),
        )
    return {"message": "PIN reset", "data": {"id": str(user.id)}}


"""
지갑 잔액 조정 API

- type: credit / debit, category: 거래 유형 (기본 admin-adjustment)
- category=bonus 충전은 보너스 잔액으로
- 차감 시 잔액 부족이면 400 (잔액 변경 / 로그 모두 없음)

"""

@router.post("/{user_id}/adjust-balance")
def adjust_balance(
    user_id: uuid.UUID,
    data: AdjustBalanceRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    clock: Clock = Depends(get_clock),
):
    user = accounts.get_or_404(db, user_id)
    now = clock()

    with transaction(db):
        before = wallet_service.get_summary(db, user.id)
        tx = wallet_service.adjust(
            db,
            user.id,
            data.amount,
            data.type,
            data.category,
            data.description,
            now=now,
        )
        after = wallet_service.get_summary(db, user.id)
        write_admin_log(
            db,
            actor=current_admin,
            action=AdminAction.ADJUST_BALANCE,
            target=user,
            before=f"{before['balance']}/{before['bonus_balance']}",
            after=f"{after['balance']}/{after['bonus_balance']}",
            ip=client_ip(request),
            user_agent=user_agent(request),
            now=now,
        )
        tx_body = transaction_out(tx)

    return {
        "message": "Balance adjusted",
        "data": {**after, "transaction": tx_body},
    }


# 회원 지갑 요약 + 거래 내역 (최신순)
@router.get("/{user_id}/transactions")
def user_transactions(
    user_id: uuid.UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    user = accounts.get_or_404(db, user_id)
    items, total = wallet_service.list_transactions(db, user.id, limit=limit, offset=(page - 1) * limit)
    return {
        "data": {
            **wallet_service.get_summary(db, user.id),
            "transactions": [transaction_out(tx) for tx in items],
        },
        "pagination": {"page": page, "limit": limit, "total": total},
    }


# 회원 비활성화 (Soft Delete)
@router.delete("/{user_id}")
def delete_user(
    user_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    clock: Clock = Depends(get_clock),
):
    user = accounts.get_or_404(db, user_id)
    return _deactivate(db, user, current_admin, request, clock)


"""
회원 영구 삭제 API (Hard Delete)

- users 행과 지갑 거래 기록 삭제
- 관리자 로그는 남음 (대상 username 스냅샷 유지)
- 본인 / 마지막 ADMIN 삭제 금지

"""

@router.delete("/{user_id}/purge")
def purge_user(
    user_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    clock: Clock = Depends(get_clock),
):
    user = accounts.get_or_404(db, user_id)

    # 자기 자신 삭제 금지
    if user.id == current_admin.id:
        raise BadRequest("Cannot delete yourself")

    # 마지막 ADMIN 삭제 금지
    if user.role == Role.ADMIN and user.is_active and accounts.count_admins(db) <= 1:
        raise BadRequest("Cannot delete the last admin")

    user_snapshot = {
        "id": str(user.id),
        "username": user.username,
        "phone_number": user.phone_number,
        "role": user.role.value,
    }

    with transaction(db):
        write_admin_log(
            db,
            actor=current_admin,
            action=AdminAction.PURGE_USER,
            target=user,
            before=user.role.value,
            ip=client_ip(request),
            user_agent=user_agent(request),
            now=clock(),
        )
        accounts.purge_account(db, user)

    logger.info("user purged user_id=%s by %s", user_snapshot["id"], current_admin.id)
    return {"message": "User permanently deleted", "data": user_snapshot}
