"""
Wallet Domain Models

Snackzo wallet balance lives on profiles.wallet_balance; every movement is
journaled in wallet_transactions.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


# Positive movements
TXN_TOPUP = "topup"
TXN_CREDIT = "credit"
TXN_REFUND = "refund"
# Negative movements
TXN_DEBIT = "debit"

CREDIT_TYPES = {TXN_TOPUP, TXN_CREDIT, TXN_REFUND}


class WalletTransaction(BaseModel):
    id: str
    user_id: str
    amount: Decimal = Field(..., ge=0)
    transaction_type: str
    description: Optional[str] = None
    order_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.transaction_type in CREDIT_TYPES else -self.amount

    def to_dict(self) -> dict:
        data = self.model_dump()
        data["amount"] = float(self.amount)
        data["signed_amount"] = float(self.signed_amount)
        if self.created_at:
            data["created_at"] = self.created_at.isoformat()
        return data


class WalletSummary(BaseModel):
    user_id: str
    balance: Decimal = Decimal("0")
    transactions: List[WalletTransaction] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "balance": float(self.balance),
            "transactions": [t.to_dict() for t in self.transactions],
        }


class TopupRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_session_id: str = Field(..., min_length=1)


class AdminCredit(BaseModel):
    user_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, le=Decimal("10000"))
    description: Optional[str] = Field(None, max_length=200)
