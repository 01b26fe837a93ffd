from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class ReviewCreate(BaseModel):
    review_text: str = Field(..., min_length=1)
    ratings: float = Field(..., ge=0, le=5)

class ReviewUpdate(BaseModel):
    review_text: Optional[str] = Field(None, min_length=1)
    ratings: Optional[float] = Field(None, ge=0, le=5)

class Review(BaseModel):
    id: int
    trip_id: int
    user_id: int
    review_text: str
    ratings: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True
