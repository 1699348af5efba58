"""
services/wallet.py

지갑(Wallet) 원장 비즈니스 로직 모음.

이 파일은 사용자 지갑의 충전(credit), 차감(debit), 관리자 조정(adjust),
잔액 조회, 거래 내역 조회를 담당한다.

지갑은 실제 잔액(balance)과 보너스 잔액(bonus_balance)으로 나뉘며,
모든 변경은 wallet_transactions 테이블에 추가 전용 기록으로 남는다.

설계 원칙:
- 잔액 변경은 항상 단일 조건부 UPDATE 문 (읽고-계산하고-쓰기 금지)
  → 같은 계정에 대한 동시 요청도 DB 행 잠금으로 직렬화됨
- 차감은 보너스 잔액을 먼저 사용하고, 부족분만 실제 잔액에서 사용
- 어떤 경우에도 두 잔액 모두 0 미만이 되지 않음 (WHERE 조건 + CHECK 제약)
- 잔액 변경과 거래 기록 추가는 같은 트랜잭션 (commit은 호출 측)

관련 파일:
- app.models.user          : 잔액 컬럼
- app.models.wallet        : WalletTransaction / TransactionType / Direction
- app.routers.users        : 관리자 잔액 조정 API
- app.routers.wallet       : 본인 잔액 / 거래 내역 API

"""

import logging
import uuid
from datetime import datetime

from sqlalchemy import select, update, case, func, desc
from sqlalchemy.orm import Session

from app.core.errors import BadRequest, InsufficientBalance, InvalidCategory, NotFound
from app.models.user import User
from app.models.wallet import WalletTransaction, TransactionType, Direction
from app.services import accounts

logger = logging.getLogger(__name__)


def _check_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise BadRequest("Amount must be a positive number")


def _append(
    db: Session,
    *,
    user_id: uuid.UUID,
    amount: int,
    type_: TransactionType,
    direction: Direction,
    description: str,
    balance_after: int,
    bonus_balance_after: int,
    now: datetime,
) -> WalletTransaction:
    tx = WalletTransaction(
        user_id=user_id,
        amount=amount,
        type=type_,
        direction=direction,
        description=description,
        balance_after=balance_after,
        bonus_balance_after=bonus_balance_after,
        created_at=now,
    )
    db.add(tx)
    db.flush()
    return tx


"""
충전 (credit)

- as_bonus=True 면 bonus_balance, 아니면 balance 증가
- balance = balance + :amount 형태의 원자적 증가
- 대상 계정이 없으면 NotFound

"""

def credit(
    db: Session,
    user_id,
    amount: int,
    type_: TransactionType,
    description: str,
    *,
    as_bonus: bool = False,
    now: datetime,
) -> WalletTransaction:
    _check_amount(amount)
    uid = accounts._as_uuid(user_id)

    column = User.bonus_balance if as_bonus else User.balance
    row = db.execute(
        update(User)
        .where(User.id == uid)
        .values({column: column + amount})
        .returning(User.balance, User.bonus_balance)
        .execution_options(synchronize_session=False)
    ).first()
    if row is None:
        raise NotFound("User not found")

    tx = _append(
        db,
        user_id=uid,
        amount=amount,
        type_=type_,
        direction=Direction.CREDIT,
        description=description,
        balance_after=row.balance,
        bonus_balance_after=row.bonus_balance,
        now=now,
    )
    logger.info("wallet credit user_id=%s amount=%s type=%s bonus=%s", uid, amount, type_.value, as_bonus)
    return tx


"""
차감 (debit)

- 조건: balance + bonus_balance >= amount (아니면 InsufficientBalance)
- 보너스 잔액 우선 차감, 부족분은 실제 잔액에서 차감
- SET 절의 우변은 모두 UPDATE 이전 값 기준으로 계산됨
- 0행 갱신 시: 계정 없음(NotFound) / 잔액 부족(InsufficientBalance) 구분

"""

def debit(
    db: Session,
    user_id,
    amount: int,
    type_: TransactionType,
    description: str,
    *,
    now: datetime,
) -> WalletTransaction:
    _check_amount(amount)
    uid = accounts._as_uuid(user_id)

    bonus_covers = User.bonus_balance >= amount
    row = db.execute(
        update(User)
        .where(User.id == uid, User.balance + User.bonus_balance >= amount)
        .values(
            bonus_balance=case((bonus_covers, User.bonus_balance - amount), else_=0),
            balance=case((bonus_covers, User.balance), else_=User.balance - (amount - User.bonus_balance)),
        )
        .returning(User.balance, User.bonus_balance)
        .execution_options(synchronize_session=False)
    ).first()

    if row is None:
        if accounts.find_by_id(db, uid) is None:
            raise NotFound("User not found")
        logger.info("wallet debit rejected user_id=%s amount=%s", uid, amount)
        raise InsufficientBalance()

    tx = _append(
        db,
        user_id=uid,
        amount=amount,
        type_=type_,
        direction=Direction.DEBIT,
        description=description,
        balance_after=row.balance,
        bonus_balance_after=row.bonus_balance,
        now=now,
    )
    logger.info("wallet debit user_id=%s amount=%s type=%s", uid, amount, type_.value)
    return tx


"""
관리자 잔액 조정 (adjust)

- direction: credit / debit
- category: TransactionType 값만 허용 ("adjustment" 는 admin-adjustment 별칭)
- category=bonus 인 충전만 보너스 잔액으로, 나머지는 실제 잔액으로
- 차감은 debit 과 동일 규칙 (보너스 우선)

"""

def resolve_category(category: str | None) -> TransactionType:
    value = (category or TransactionType.ADMIN_ADJUSTMENT.value).strip()
    if value == "adjustment":
        value = TransactionType.ADMIN_ADJUSTMENT.value
    try:
        return TransactionType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in TransactionType)
        raise InvalidCategory(f"Invalid category. Must be one of: {allowed}")


def adjust(
    db: Session,
    user_id,
    amount: int,
    direction: Direction | str,
    category: str | None,
    description: str | None,
    *,
    now: datetime,
) -> WalletTransaction:
    type_ = resolve_category(category)
    try:
        direction = Direction(direction)
    except ValueError:
        raise BadRequest('Type must be either "credit" or "debit"')

    description = description or "Admin adjustment"
    if direction == Direction.CREDIT:
        return credit(db, user_id, amount, type_, description, as_bonus=type_ == TransactionType.BONUS, now=now)
    return debit(db, user_id, amount, type_, description, now=now)


def get_summary(db: Session, user_id) -> dict:
    row = db.execute(
        select(User.balance, User.bonus_balance).where(User.id == accounts._as_uuid(user_id))
    ).first()
    if row is None:
        raise NotFound("User not found")
    return {
        "balance": row.balance,
        "bonus_balance": row.bonus_balance,
        "total_balance": row.balance + row.bonus_balance,
    }


# 거래 내역 (최신순)
def list_transactions(db: Session, user_id, *, limit: int = 50, offset: int = 0) -> tuple[list[WalletTransaction], int]:
    uid = accounts._as_uuid(user_id)
    total = db.scalar(
        select(func.count()).select_from(WalletTransaction).where(WalletTransaction.user_id == uid)
    ) or 0
    items = db.scalars(
        select(WalletTransaction)
        .where(WalletTransaction.user_id == uid)
        .order_by(desc(WalletTransaction.created_at), desc(WalletTransaction.id))
        .limit(limit)
        .offset(offset)
    ).all()
    return list(items), total
