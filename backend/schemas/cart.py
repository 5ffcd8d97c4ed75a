from pydantic import Field
from typing import List, Optional, Any
from datetime import datetime

from schemas.base import CamelModel

# Request schema for adding an item to the cart. Fields are checked by the
# handler so that the client gets the same 400 for any missing one.
class CartAddItem(CamelModel):
    product_id: Optional[int] = None
    product_name: Optional[str] = None
    price: Optional[float] = None
    quantity: Optional[Any] = None
    image_url: Optional[str] = Field(default=None, alias="imageURL")

# Request schema for updating cart item quantity; 0 removes the line
class CartUpdateItem(CamelModel):
    quantity: Optional[int] = None

# Response schema for a single cart line item
class CartLineOut(CamelModel):
    id: int
    user_id: int
    product_id: int
    product_name: str
    price: float
    quantity: int
    image_url: Optional[str] = Field(default=None, alias="imageURL")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class CartLineEnvelope(CamelModel):
    success: bool = True
    message: str
    data: Optional[CartLineOut] = None

# Response schema for the entire cart
class CartOut(CamelModel):
    success: bool = True
    data: List[CartLineOut]
