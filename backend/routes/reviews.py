# backend/routes/reviews.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from database import get_db
from models.order import Order, OrderItem, OrderStatus
from models.product import Product
from models.review import Review
from models.users import User
from schemas.review import (
    ReviewCreate, ReviewUpdate, ReviewOut, ReviewEnvelope, ProductReviews, ReviewList,
    ProductRating, ReviewEligibility,
)
from utils.audit import try_write_log, client_ip
from models.audit import AuditAction
from utils.timeutil import utcnow
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])
logger = logging.getLogger(__name__)


def _has_delivered_purchase(db: Session, user_id: int, product_id: int) -> bool:
    return db.query(Order.id).join(OrderItem, OrderItem.order_id == Order.id).filter(
        Order.user_id == user_id,
        Order.status == OrderStatus.DELIVERED.value,
        OrderItem.product_id == product_id,
    ).first() is not None


def _existing_review(db: Session, user_id: int, product_id: int) -> Optional[Review]:
    return db.query(Review).filter(Review.user_id == user_id, Review.product_id == product_id).first()


# Reviews are gated on a delivered order containing the product
@router.post("/create", response_model=ReviewEnvelope, status_code=status.HTTP_201_CREATED)
def create_review(
    payload: ReviewCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    product = db.get(Product, payload.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    if not _has_delivered_purchase(db, current_user.id, product.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only review products from your delivered orders",
        )

    if _existing_review(db, current_user.id, product.id):
        raise HTTPException(
            status_code=400,
            detail="You have already reviewed this product. Use the update endpoint instead.",
        )

    review = Review(
        user_id=current_user.id,
        user_name=current_user.username,
        product_id=product.id,
        product_name=product.name,
        rating=payload.rating,
        comment=payload.comment.strip(),
    )
    try:
        db.add(review)
        db.commit()
    except IntegrityError:
        # Concurrent create for the same (user, product)
        db.rollback()
        raise HTTPException(
            status_code=400,
            detail="You have already reviewed this product. Use the update endpoint instead.",
        )
    db.refresh(review)

    try_write_log(db, user_id=current_user.id, action=AuditAction.REVIEW_CREATE, resource="reviews",
                  status="SUCCESS", ip=client_ip(request), meta={"product_id": product.id, "rating": review.rating})

    return {"success": True, "message": "Review created successfully", "data": ReviewOut.model_validate(review)}


@router.put("/update/{review_id}", response_model=ReviewEnvelope)
def update_review(
    review_id: int,
    payload: ReviewUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    review = db.get(Review, review_id)
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")
    if review.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only update your own reviews")

    if payload.rating is not None:
        review.rating = payload.rating
    if payload.comment is not None:
        review.comment = payload.comment.strip()
    review.updated_at = utcnow()
    db.commit()
    db.refresh(review)

    try_write_log(db, user_id=current_user.id, action=AuditAction.REVIEW_UPDATE, resource="reviews",
                  status="SUCCESS", ip=client_ip(request), meta={"review_id": review.id, "product_id": review.product_id})

    return {"success": True, "message": "Review updated successfully", "data": ReviewOut.model_validate(review)}


@router.get("/can-review/{product_id}", response_model=ReviewEligibility)
def can_review(
    product_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    has_purchased = _has_delivered_purchase(db, current_user.id, product_id)
    existing = _existing_review(db, current_user.id, product_id)
    return {
        "success": True,
        "can_review": has_purchased and existing is None,
        "has_purchased": has_purchased,
        "has_reviewed": existing is not None,
        "existing_review_id": existing.id if existing else None,
    }


@router.get("/product/{product_id}", response_model=ProductReviews)
def product_reviews(product_id: int, db: Session = Depends(get_db)):
    reviews = (
        db.query(Review)
        .filter(Review.product_id == product_id)
        .order_by(Review.review_date.desc(), Review.id.desc())
        .all()
    )
    return {"success": True, "count": len(reviews), "reviews": [ReviewOut.model_validate(r) for r in reviews]}


@router.get("/product/{product_id}/rating", response_model=ProductRating)
def product_rating(product_id: int, db: Session = Depends(get_db)):
    average, total = db.query(func.avg(Review.rating), func.count(Review.id)).filter(
        Review.product_id == product_id
    ).one()
    return {"success": True, "average_rating": float(average or 0), "total_reviews": total}


@router.get("", response_model=ReviewList)
def list_reviews(db: Session = Depends(get_db)):
    reviews = db.query(Review).order_by(Review.review_date.desc(), Review.id.desc()).all()
    return {"success": True, "count": len(reviews), "data": [ReviewOut.model_validate(r) for r in reviews]}
