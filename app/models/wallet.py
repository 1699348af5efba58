import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Integer, String, Index, Uuid, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class TransactionType(str, Enum):
    WELCOME_BONUS = "welcome-bonus"
    ADMIN_ADJUSTMENT = "admin-adjustment"
    PURCHASE = "purchase"
    REFUND = "refund"
    TOPUP = "topup"
    BONUS = "bonus"


class Direction(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"


class WalletTransaction(Base):
    """지갑 거래 '기록' 레코드 (추가만 가능, 수정/삭제 없음).

    - amount: 항상 양수, 증감 방향은 direction 으로 구분
    - balance_after / bonus_balance_after: 거래 직후 잔액 스냅샷
    """

    __tablename__ = "wallet_transactions"
    __table_args__ = (
        Index("ix_wallet_transactions_user_id_created_at", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType, name="wallet_transaction_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    direction: Mapped[Direction] = mapped_column(
        SAEnum(Direction, name="wallet_direction", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)

    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    bonus_balance_after: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    user = relationship("User", back_populates="transactions")
