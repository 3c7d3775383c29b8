from pydantic import BaseModel, Field, AliasChoices
from typing import List, Optional, Any
from enum import Enum


class Gateway(str, Enum):
    VIETQR = "VietQR"
    CASSO = "VietQR (Casso)"


class SimulatePaymentRequest(BaseModel):
    checkout_id: str = Field(validation_alias=AliasChoices("checkout_id", "checkoutId"))


class BankTransaction(BaseModel):
    transaction_id: str = Field(
        validation_alias=AliasChoices("tid", "transaction_id", "transactionId")
    )
    description: str = ""
    amount: int
    when: Optional[str] = None


class BankWebhookPayload(BaseModel):
    error: int = 0
    data: List[BankTransaction] = []


class SettlementResult(BaseModel):
    checkout_id: str
    status: str
    already_completed: bool = False
    insufficient_amount: bool = False
    bill_id: Optional[str] = None
    enrollments_count: int = 0
    amount: Optional[int] = None


class WebhookItemResult(BaseModel):
    transaction_id: str
    checkout_id: Optional[str] = None
    outcome: str
    detail: Optional[Any] = None
