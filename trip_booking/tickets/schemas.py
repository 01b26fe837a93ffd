from pydantic import BaseModel
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum

class TicketStatus(str, Enum):
    """Ticket status enumeration"""
    ACTIVE = "active"
    CANCELED = "canceled"
    EXPIRED = "expired"

class TicketUpdate(BaseModel):
    """Admin status change"""
    status: TicketStatus

class Ticket(BaseModel):
    id: int
    user_id: int
    trip_id: int
    seat_number: int
    status: TicketStatus
    price: Decimal
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True
