"""
admin.py

관리자 계정 생성 및 관리자 활동 로그 조회 API.

설계 원칙:
- ADMIN 권한만 접근 가능
- 관리자 계정은 비밀번호 + PIN 을 모두 가짐 (비밀번호 로그인 / 2FA 대상)
- 로그는 조회만 가능 (수정/삭제 API 없음)

관련 파일:
- app.services.accounts    : 중복 검사 / 계정 생성
- app.services.admin_log   : 관리자 로그 기록
- app.models.admin_log     : AdminActionLog / AdminAction

"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy import select, desc, func
from sqlalchemy.orm import Session, aliased

from app.core.clock import Clock, get_clock
from app.core.deps import get_db, get_current_admin, client_ip, user_agent
from app.core.security import get_password_hash
from app.db.session import transaction
from app.models.admin_log import AdminAction, AdminActionLog
from app.models.user import User, Role
from app.schemas.user import CreateAdminRequest, user_out
from app.services import accounts
from app.services.admin_log import write_admin_log

router = APIRouter(prefix="/admin", tags=["admin"])


# 관리자 계정 생성 엔드포인트
@router.post("/users/create-admin", status_code=201)
def create_admin(
    data: CreateAdminRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
    clock: Clock = Depends(get_clock),
):
    email = data.email.lower()
    accounts.ensure_unique(db, username=data.username, phone_number=data.phone_number, email=email)

    with transaction(db):
        admin = accounts.insert_user(
            db,
            username=data.username,
            phone_number=data.phone_number,
            email=email,
            password_hash=get_password_hash(data.password),
            pin_hash=get_password_hash(data.pin),
            role=Role.ADMIN,
            is_active=True,
            pending_verification=False,
            phone_verified=True,
        )
        write_admin_log(
            db,
            actor=current_admin,
            action=AdminAction.CREATE_ADMIN,
            target=admin,
            after=Role.ADMIN.value,
            ip=client_ip(request),
            user_agent=user_agent(request),
            now=clock(),
        )
    db.refresh(admin)
    return {"message": "Admin created", "data": user_out(admin)}


# 관리자 활동 로그 조회 엔드포인트
@router.get("/logs")
def list_admin_logs(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    action: AdminAction | None = None,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_admin),
):
    Actor = aliased(User)
    Target = aliased(User)

    stmt = (
        select(AdminActionLog, Actor, Target)
        .outerjoin(Actor, Actor.id == AdminActionLog.actor_id)
        .outerjoin(Target, Target.id == AdminActionLog.target_user_id)
    )
    count_stmt = select(func.count()).select_from(AdminActionLog)
    if action is not None:
        stmt = stmt.where(AdminActionLog.action == action)
        count_stmt = count_stmt.where(AdminActionLog.action == action)

    total = db.scalar(count_stmt) or 0
    rows = db.execute(
        stmt.order_by(desc(AdminActionLog.created_at)).limit(limit).offset(offset)
    ).all()

    result = []
    for log, actor, target in rows:
        result.append(
            {
                "id": str(log.id),
                "created_at": log.created_at.isoformat(),
                "action": log.action.value,
                "before": log.before,
                "after": log.after,
                "ip": log.ip,
                "actor": (
                    {
                        "id": str(actor.id),
                        "username": actor.username,
                        "role": actor.role.value,
                    }
                    if actor
                    else None
                ),
                # 영구 삭제된 대상은 username 스냅샷만 남음
                "target": (
                    {
                        "id": str(target.id),
                        "username": target.username,
                        "role": target.role.value,
                    }
                    if target
                    else ({"id": None, "username": log.target_label} if log.target_label else None)
                ),
            }
        )
    return {
        "data": result,
        "meta": {
            "limit": limit,
            "offset": offset,
            "count": len(result),
            "total": total,
        },
    }
