from sqlalchemy import Column, Integer, String, DateTime, Float, Index
from database import SessionStoreBase
from utils.timeutil import utcnow

# Represents a single product line in a user's cart (row store).
# user_id and product_id point into the document store, so there are no
# foreign keys here.
class CartLine(SessionStoreBase):
    __tablename__ = "cart_lines" # Table name

    id = Column(Integer, primary_key=True, index=True) # Primary key
    user_id = Column(Integer, nullable=False) # Owner, from the document store
    product_id = Column(Integer, nullable=False) # Product, from the document store
    product_name = Column(String, nullable=False)
    price = Column(Float, nullable=False) # Unit price at the moment of addition
    quantity = Column(Integer, nullable=False, default=1)
    image_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow) # Creation timestamp
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        # Lookup index for merge-on-add; not unique, merging is done by the handler
        Index("ix_cart_lines_user_product", "user_id", "product_id"),
    )
