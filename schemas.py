"""
Database Schemas

MongoDB document shapes as Pydantic models.
Model name lowercased is the collection name:
- Product -> "product" (reviews are embedded)
- Category -> "category"
- User -> "user"
- RevokedToken -> "revoked_token"
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class Review(BaseModel):
    id: str = Field(..., description="Review id, unique within its product")
    reviewer_name: str = Field(..., description="Display name of the reviewer")
    reviewer_email: EmailStr = Field(..., description="Reviewer contact email")
    rating: int = Field(..., ge=1, le=5)
    comment: str
    date: datetime
    user_id: Optional[str] = Field(None, description="Owning user; None for imported reviews")
    product_id: str


class Product(BaseModel):
    title: str
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    discount_percentage: float = Field(0, ge=0, le=100)
    category: str
    brand: Optional[str] = None
    stock: int = Field(0, ge=0)
    rating: float = Field(default=0, ge=0, le=5)
    images: List[str] = Field(default_factory=list)
    thumbnail: Optional[str] = None
    reviews: List[Review] = Field(default_factory=list)


class Category(BaseModel):
    name: str
    slug: Optional[str] = None


class User(BaseModel):
    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="BCrypt hashed password")


class RevokedToken(BaseModel):
    jti: str
    expires_at: datetime
