"""
services/admin_log.py

관리자 행위 로그 기록 서비스.

이 파일은 관리자(Admin)가 수행한 주요 행위를
AdminActionLog 테이블에 기록하는 역할을 담당한다.

라우터에서 실제 변경과 같은 트랜잭션 안에서 호출되며,
로그 기록 자체는 DB에만 영향을 주고
비즈니스 흐름에는 개입하지 않는다.

설계 원칙:
- 변경과 로그는 같은 commit 으로 함께 반영 / 함께 롤백
- 로그 데이터는 수정/삭제하지 않는 것을 전제로 설계
- 대상 사용자가 영구 삭제되어도 target_label 로 식별 가능

"""

from datetime import datetime

from sqlalchemy.orm import Session

from app.models.admin_log import AdminActionLog, AdminAction
from app.models.user import User


"""
관리자 행위 로그 기록 함수

- actor       : 행위를 수행한 관리자
- action      : 수행된 관리자 행위 유형
- target      : 행위 대상 사용자 (선택)
- before      : 변경 전 값 (선택)
- after       : 변경 후 값 (선택)
- ip          : 요청 IP 주소 (선택)
- user_agent  : 요청 User-Agent (선택)

NOTE:
- db.commit()은 호출 측(라우터)에서 수행

"""
def write_admin_log(
    db: Session,
    *,
    actor: User,
    action: AdminAction,
    now: datetime,
    target: User | None = None,
    before=None,
    after=None,
    ip=None,
    user_agent=None,
) -> AdminActionLog:
    log = AdminActionLog(
        actor_id=actor.id,
        action=action,
        target_user_id=target.id if target is not None else None,
        target_label=target.username if target is not None else None,
        before=None if before is None else str(before),
        after=None if after is None else str(after),
        ip=ip,
        user_agent=user_agent[:255] if user_agent else None,
        created_at=now,
    )
    db.add(log)
    return log

