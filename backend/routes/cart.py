# backend/routes/cart.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.orm import Session

from database import get_session_db
from utils.tokenJWT import get_current_user
from models.users import User
from models.cart import CartLine
from schemas.base import MessageResponse
from schemas.cart import CartAddItem, CartUpdateItem, CartOut, CartLineOut, CartLineEnvelope

router = APIRouter(prefix="/api/cart", tags=["Cart"])
logger = logging.getLogger(__name__)


def _parse_quantity(value) -> int:
    # Accept numeric strings from the client, reject anything else
    try:
        quantity = float(value)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="Invalid quantity value")
    if quantity <= 0 or quantity != int(quantity):
        raise HTTPException(status_code=400, detail="Invalid quantity value")
    return int(quantity)


def _get_owned_line(session_db: Session, line_id: int, user_id: int) -> CartLine:
    line = session_db.query(CartLine).filter(CartLine.id == line_id, CartLine.user_id == user_id).first()
    if not line:
        raise HTTPException(status_code=404, detail="Cart item not found")
    return line


# List the user's cart lines, newest first
@router.get("", response_model=CartOut)
def get_cart(
    session_db: Session = Depends(get_session_db),
    current_user: User = Depends(get_current_user),
):
    lines = (
        session_db.query(CartLine)
        .filter(CartLine.user_id == current_user.id)
        .order_by(CartLine.created_at.desc(), CartLine.id.desc())
        .all()
    )
    return {"success": True, "data": [CartLineOut.model_validate(l) for l in lines]}


@router.post("/add", response_model=CartLineEnvelope, status_code=status.HTTP_201_CREATED)
def add_to_cart(
    payload: CartAddItem,
    response: Response,
    session_db: Session = Depends(get_session_db),
    current_user: User = Depends(get_current_user),
):
    if not payload.product_id or not payload.product_name or payload.price is None or not payload.quantity:
        raise HTTPException(status_code=400, detail="Missing required fields")
    quantity = _parse_quantity(payload.quantity)

    # Merge into the existing (user, product) line when there is one
    line = session_db.query(CartLine).filter(
        CartLine.user_id == current_user.id, CartLine.product_id == payload.product_id
    ).first()

    if line:
        line.quantity += quantity
        session_db.commit()
        session_db.refresh(line)
        logger.info("Cart line %s for user %s now has quantity %d", line.id, current_user.id, line.quantity)
        response.status_code = status.HTTP_200_OK
        return {"success": True, "message": "Cart item quantity updated", "data": CartLineOut.model_validate(line)}

    line = CartLine(
        user_id=current_user.id,
        product_id=payload.product_id,
        product_name=payload.product_name,
        price=payload.price,
        quantity=quantity,
        image_url=payload.image_url,
    )
    session_db.add(line)
    session_db.commit()
    session_db.refresh(line)
    return {"success": True, "message": "Item added to cart", "data": CartLineOut.model_validate(line)}


@router.put("/update/{line_id}", response_model=CartLineEnvelope)
def update_cart_item(
    line_id: int,
    payload: CartUpdateItem,
    session_db: Session = Depends(get_session_db),
    current_user: User = Depends(get_current_user),
):
    if payload.quantity is None or payload.quantity < 0:
        raise HTTPException(status_code=400, detail="Invalid quantity")

    line = _get_owned_line(session_db, line_id, current_user.id)

    # Quantity 0 removes the line
    if payload.quantity == 0:
        session_db.delete(line)
        session_db.commit()
        return {"success": True, "message": "Item removed from cart"}

    line.quantity = payload.quantity
    session_db.commit()
    session_db.refresh(line)
    return {"success": True, "message": "Cart item updated", "data": CartLineOut.model_validate(line)}


@router.delete("/remove/{line_id}", response_model=MessageResponse)
def remove_cart_item(
    line_id: int,
    session_db: Session = Depends(get_session_db),
    current_user: User = Depends(get_current_user),
):
    removed = session_db.query(CartLine).filter(
        CartLine.id == line_id, CartLine.user_id == current_user.id
    ).delete(synchronize_session=False)
    session_db.commit()

    if removed == 0:
        raise HTTPException(status_code=404, detail="Cart item not found")
    return {"success": True, "message": "Item removed from cart"}


@router.delete("/clear", response_model=MessageResponse)
def clear_cart(
    session_db: Session = Depends(get_session_db),
    current_user: User = Depends(get_current_user),
):
    session_db.query(CartLine).filter(CartLine.user_id == current_user.id).delete(synchronize_session=False)
    session_db.commit()
    return {"success": True, "message": "Cart cleared successfully"}
