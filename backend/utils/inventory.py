import logging
from typing import Optional

from sqlalchemy import case, update
from sqlalchemy.orm import Session

from models.product import Product

logger = logging.getLogger(__name__)


def decrement_stock(db: Session, product_id: int, quantity: int) -> Optional[int]:
    """Subtracts an ordered quantity from a product, flooring the result at zero.

    Runs as one conditional UPDATE, so two checkouts of the same product can
    not overwrite each other's decrement. Returns the new stock, or None when
    the product does not exist. Quantities are validated (>= 1) by the order
    schema before they get here. The caller commits.
    """
    quantity = int(quantity)
    result = db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=case((Product.stock >= quantity, Product.stock - quantity), else_=0))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return None
    return db.query(Product.stock).filter(Product.id == product_id).scalar()
