"""
Database Schemas for the Storefront

Each Pydantic model describes the writable shape of a MongoDB collection.
Ids referencing other collections travel as strings and are stored as ObjectIds.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"

CustomOrderStatusValue = Literal["new", "in-progress", "completed", "cancelled"]


class Users(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=6)
    email: EmailStr
    name: Optional[str] = None


class Categories(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., pattern=SLUG_PATTERN)
    description: Optional[str] = None
    image_url: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    image_url: Optional[str] = None


class Products(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., pattern=SLUG_PATTERN)
    description: Optional[str] = None
    price: int = Field(..., gt=0, description="Price in whole currency units")
    category_id: Optional[str] = None
    image_urls: List[str] = []
    features: List[str] = []
    fabric: Optional[str] = None
    work_details: Optional[str] = None
    in_stock: bool = True
    featured: bool = False


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    price: Optional[int] = Field(None, gt=0)
    category_id: Optional[str] = None
    image_urls: Optional[List[str]] = None
    features: Optional[List[str]] = None
    fabric: Optional[str] = None
    work_details: Optional[str] = None
    in_stock: Optional[bool] = None
    featured: Optional[bool] = None


class Cart(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)


class CartQuantity(BaseModel):
    quantity: int = Field(..., ge=1)


class Reviews(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    rating: int = Field(..., ge=1, le=5)
    comment: str = Field(..., min_length=3)


class CustomOrders(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = Field(None, min_length=10)
    requirements: str = Field(..., min_length=1)
    budget: Optional[float] = Field(None, gt=0)


class CustomOrderStatusUpdate(BaseModel):
    status: CustomOrderStatusValue
