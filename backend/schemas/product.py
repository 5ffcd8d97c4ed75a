# backend/schemas/product.py
from pydantic import Field
from typing import Optional, List
from datetime import datetime

from schemas.base import CamelModel


# Full product representation including ID
class ProductOut(CamelModel):
    id: int
    name: str
    price: float
    stock: int
    description: str
    category: str
    pieces: int
    image_urls: List[str] = Field(default_factory=list, alias="imageURL")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: ProductOut


# Paginated response for product listings
class ProductListPage(CamelModel):
    success: bool = True
    count: int
    total: int
    total_pages: int
    current_page: int
    data: List[ProductOut]
