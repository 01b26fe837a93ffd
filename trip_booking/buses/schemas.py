from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class BusBase(BaseModel):
    bus_model: str = Field(..., min_length=1, max_length=255)
    seats: int = Field(..., ge=10, le=50, description="Seat count between 10 and 50")
    bus_type: Optional[str] = Field(None, max_length=100)

class BusCreate(BusBase):
    pass

class BusUpdate(BaseModel):
    bus_model: Optional[str] = Field(None, min_length=1, max_length=255)
    seats: Optional[int] = Field(None, ge=10, le=50)
    bus_type: Optional[str] = Field(None, max_length=100)

class Bus(BusBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True
