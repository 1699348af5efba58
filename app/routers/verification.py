"""
verification.py

전화번호 인증(Phone Verification) API 모음.

가입 시 전화번호 인증이 필요한 설정(REQUIRE_PHONE_VERIFICATION)에서
인증 코드를 발급하고 확인하는 기능을 담당한다.
실제 SMS 발송은 이 서비스의 범위가 아니며,
운영 환경이 아닐 때만 응답에 코드를 포함한다.

설계 원칙:
- 코드 요청은 번호 등록 여부와 무관하게 같은 응답
- 확인은 조건부 단일 UPDATE (같은 코드로 두 번 성공 불가)
- 확인 성공 시 pending_verification 해제

관련 파일:
- app.services.reset       : PHONE_VERIFICATION 흐름
- app.schemas.auth         : 요청 스키마

"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.clock import Clock, get_clock
from app.core.config import settings
from app.core.deps import get_db
from app.db.session import transaction
from app.schemas.auth import SendVerificationCodeRequest, VerifyPhoneRequest
from app.schemas.user import user_out
from app.services import reset as reset_service

router = APIRouter(prefix="/verification", tags=["verification"])


@router.post("/send-code")
def send_code(
    data: SendVerificationCodeRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    with transaction(db):
        code = reset_service.request_phone_verification(db, data.phone_number, now=clock())

    body = {"message": "If the number is registered, a verification code has been sent"}
    if code and not settings.is_production:
        body["code"] = code
    return {"data": body}


@router.post("/verify")
def verify(
    data: VerifyPhoneRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    with transaction(db):
        user = reset_service.verify_phone(db, data.phone_number, data.code, now=clock())
    db.refresh(user)
    return {"data": user_out(user)}
