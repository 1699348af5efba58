"""
wallet.py

본인 지갑(Wallet) 조회 API 모음.

로그인한 사용자가 자신의 잔액과 거래 내역을 조회한다.
잔액 변경은 이 파일에서 하지 않는다 (관리자 조정은 users.py).

관련 파일:
- app.services.wallet      : 잔액 / 거래 내역 조회
- app.schemas.wallet       : 거래 응답 스키마

"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user
from app.models.user import User
from app.schemas.wallet import transaction_out
from app.services import wallet as wallet_service

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("/balance")
def balance(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return {"data": wallet_service.get_summary(db, user.id)}


# 거래 내역 (최신순, 페이지네이션)
@router.get("/transactions")
def transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    items, total = wallet_service.list_transactions(db, user.id, limit=limit, offset=(page - 1) * limit)
    return {
        "data": [transaction_out(tx) for tx in items],
        "pagination": {"page": page, "limit": limit, "total": total},
    }
