import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.wallet import Direction, TransactionType


class AdjustBalanceRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    amount: int = Field(gt=0)
    type: Direction
    # TransactionType 값 (검증은 서비스에서, 실패 시 InvalidCategory)
    category: str | None = None
    description: str | None = Field(default=None, max_length=255)


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    amount: int
    type: TransactionType
    direction: Direction
    description: str
    balance_after: int
    bonus_balance_after: int
    created_at: datetime.datetime


def transaction_out(tx) -> dict:
    return TransactionOut.model_validate(tx).model_dump(mode="json")
