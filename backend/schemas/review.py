from pydantic import AliasChoices, Field
from typing import List, Optional
from datetime import datetime

from schemas.base import CamelModel


class ReviewCreate(CamelModel):
    product_id: int
    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=1)


class ReviewUpdate(CamelModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = Field(default=None, min_length=1)


# Field names follow the stored review document (UserID, Rating, ...)
class ReviewOut(CamelModel):
    id: int
    user_id: int = Field(alias="UserID")
    name: str = Field(alias="Name", validation_alias=AliasChoices("Name", "user_name"))
    product_id: int = Field(alias="ProductID")
    product_name: str = Field(alias="Productname")
    rating: int = Field(alias="Rating")
    comment: str = Field(alias="Comment")
    review_date: datetime = Field(alias="Reviewdate")
    updated_at: Optional[datetime] = None


class ReviewEnvelope(CamelModel):
    success: bool = True
    message: str
    data: ReviewOut


class ProductReviews(CamelModel):
    success: bool = True
    count: int
    reviews: List[ReviewOut]


class ReviewList(CamelModel):
    success: bool = True
    count: int
    data: List[ReviewOut]


class ProductRating(CamelModel):
    success: bool = True
    average_rating: float
    total_reviews: int


class ReviewEligibility(CamelModel):
    success: bool = True
    can_review: bool
    has_purchased: bool
    has_reviewed: bool
    existing_review_id: Optional[int] = None
