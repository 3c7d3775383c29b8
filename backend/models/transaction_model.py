from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from decimal import Decimal


class TransactionItem(BaseModel):
    course_id: str
    title: str
    thumbnail: Optional[str] = None
    price: Decimal


class Transaction(BaseModel):
    id: str
    transaction_id: Optional[str] = None
    date: datetime
    amount: int
    original_amount: Optional[int] = None
    discount_amount: int = 0
    status: str
    gateway: str
    items: List[TransactionItem]
