# backend/routes/products.py
import json
import logging
import math
from typing import Optional, List

from fastapi import (
    APIRouter, Depends, HTTPException, Query, Request,
    UploadFile, File, Form, status,
)
from sqlalchemy.orm import Session, Query as OrmQuery

from database import get_db
from utils.tokenJWT import require_admin
from utils.audit import try_write_log, client_ip
from models.audit import AuditAction
from utils.uploads import save_upload, remove_upload
from models.users import User
from models.product import Product, ProductCategory, PLACEHOLDER_IMAGE
from models.review import Review
from schemas.base import MessageResponse
from schemas.product import ProductOut, ProductEnvelope, ProductListPage

router = APIRouter(prefix="/api/products", tags=["Products"])
logger = logging.getLogger(__name__)

MAX_IMAGES = 5

# Fields a client may sort by, keyed by their camelCase name
SORTABLE = {
    "name": Product.name,
    "price": Product.price,
    "stock": Product.stock,
    "pieces": Product.pieces,
    "createdAt": Product.created_at,
}


# ---- HELPERS ----
def _apply_sort(query: OrmQuery, sort: Optional[str], default_newest: bool = True) -> OrmQuery:
    """Applies a ``field:asc|desc`` sort; unknown fields fall back to the default order."""
    if sort:
        field, _, direction = sort.partition(":")
        column = SORTABLE.get(field)
        if column is not None:
            return query.order_by(column.desc() if direction == "desc" else column.asc(), Product.id.asc())
    if default_newest:
        return query.order_by(Product.created_at.desc(), Product.id.desc())
    return query.order_by(Product.id.asc())


def _page(query: OrmQuery, page: int, limit: int) -> dict:
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "success": True,
        "count": len(items),
        "total": total,
        "total_pages": math.ceil(total / limit),
        "current_page": page,
        "data": [ProductOut.model_validate(p) for p in items],
    }


def _check_category(category: str):
    if category not in [c.value for c in ProductCategory]:
        raise HTTPException(status_code=400, detail="Invalid category. Must be Minifigure, Set, or Piece.")


def _check_image_count(images: Optional[List[UploadFile]]) -> List[UploadFile]:
    files = [f for f in (images or []) if f is not None and f.filename]
    if len(files) > MAX_IMAGES:
        raise HTTPException(status_code=400, detail=f"At most {MAX_IMAGES} images can be uploaded")
    return files


def _parse_number(value: Optional[str], cast, field: str):
    if value is None or value == "":
        return None
    try:
        number = cast(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid value for {field}")
    if number < 0:
        raise HTTPException(status_code=400, detail=f"{field} must be >= 0")
    return number


def _kept_images(current: List[str], remove_images: Optional[str], existing_images: Optional[str]) -> List[str]:
    """Resolves which stored images survive an update."""
    if (remove_images or "").lower() != "true":
        return list(current)
    if not existing_images:
        return []
    try:
        kept = json.loads(existing_images)
    except ValueError:
        logger.warning("Could not parse existingImages, clearing all images")
        return []
    if not isinstance(kept, list):
        return []
    return [str(url) for url in kept]


# =========================
# CATALOG LISTINGS
# =========================
@router.get("", response_model=ProductListPage)
def list_products(
    limit: int = Query(10, ge=1),
    page: int = Query(1, ge=1),
    sort: Optional[str] = Query(None),
    minPrice: Optional[float] = Query(None),
    maxPrice: Optional[float] = Query(None),
    db: Session = Depends(get_db),
):
    query = db.query(Product)
    if minPrice is not None:
        query = query.filter(Product.price >= minPrice)
    if maxPrice is not None:
        query = query.filter(Product.price <= maxPrice)
    return _page(_apply_sort(query, sort), page, limit)


@router.get("/category/{category}", response_model=ProductListPage)
def list_by_category(
    category: str,
    limit: int = Query(10, ge=1),
    page: int = Query(1, ge=1),
    sort: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    _check_category(category)
    query = db.query(Product).filter(Product.category == category)
    return _page(_apply_sort(query, sort, default_newest=False), page, limit)


@router.get("/search/{term}", response_model=ProductListPage)
def search_products(
    term: str,
    limit: int = Query(10, ge=1),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
):
    query = db.query(Product).filter(Product.name.ilike(f"%{term}%"))
    return _page(query.order_by(Product.id.asc()), page, limit)


# =========================
# SINGLE PRODUCT
# =========================
@router.get("/{product_id}", response_model=ProductEnvelope)
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return {"success": True, "data": ProductOut.model_validate(product)}


# =========================
# ADMIN: CREATE
# =========================
@router.post("", response_model=ProductEnvelope, status_code=status.HTTP_201_CREATED)
def add_product(
    request: Request,
    name: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    stock: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    pieces: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    if not name or not price or not description or not category:
        raise HTTPException(
            status_code=400,
            detail="Please provide all required fields: name, price, description, category",
        )
    _check_category(category)
    files = _check_image_count(images)

    new_product = Product(
        name=name,
        price=_parse_number(price, float, "price"),
        stock=_parse_number(stock, int, "stock") or 0,
        description=description,
        category=category,
        pieces=_parse_number(pieces, int, "pieces") or 1,
    )

    image_urls = [save_upload(f) for f in files]
    new_product.image_urls = image_urls or [PLACEHOLDER_IMAGE]

    db.add(new_product)
    db.commit()
    db.refresh(new_product)

    try_write_log(
        db, user_id=current_user.id, action=AuditAction.PRODUCT_CREATE, resource="products",
        status="SUCCESS", ip=client_ip(request), meta={"product_id": new_product.id, "name": new_product.name},
    )
    return {"success": True, "message": "Product created successfully", "data": ProductOut.model_validate(new_product)}


# =========================
# ADMIN: PARTIAL UPDATE (multipart)
# =========================
@router.put("/{product_id}", response_model=ProductEnvelope)
def update_product(
    product_id: int,
    request: Request,
    name: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    stock: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    pieces: Optional[str] = Form(None),
    removeImages: Optional[str] = Form(None),
    existingImages: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    if category:
        _check_category(category)
    files = _check_image_count(images)

    current = list(product.image_urls or [])
    image_urls = _kept_images(current, removeImages, existingImages)
    for url in current:
        if url not in image_urls:
            remove_upload(url)
    image_urls = [url for url in image_urls if url != PLACEHOLDER_IMAGE]
    image_urls.extend(save_upload(f) for f in files)

    # Empty values keep the stored ones
    if name:
        product.name = name
    new_price = _parse_number(price, float, "price")
    if new_price:
        product.price = new_price
    new_stock = _parse_number(stock, int, "stock")
    if new_stock is not None:
        product.stock = new_stock
    if description:
        product.description = description
    if category:
        product.category = category
    new_pieces = _parse_number(pieces, int, "pieces")
    if new_pieces:
        product.pieces = new_pieces
    product.image_urls = image_urls or [PLACEHOLDER_IMAGE]

    db.commit()
    db.refresh(product)

    try_write_log(
        db, user_id=current_user.id, action=AuditAction.PRODUCT_UPDATE, resource="products",
        status="SUCCESS", ip=client_ip(request), meta={"product_id": product.id},
    )
    return {"success": True, "message": "Product updated successfully", "data": ProductOut.model_validate(product)}


# =========================
# ADMIN: DELETE
# =========================
@router.delete("/{product_id}", response_model=MessageResponse)
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    product = db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    pid, urls = product.id, list(product.image_urls or [])
    db.query(Review).filter(Review.product_id == pid).delete(synchronize_session=False)
    db.delete(product)
    db.commit()

    for url in urls:
        remove_upload(url)

    try_write_log(
        db, user_id=current_user.id, action=AuditAction.PRODUCT_DELETE, resource="products",
        status="SUCCESS", ip=client_ip(request), meta={"product_id": pid},
    )
    return {"success": True, "message": "Product deleted successfully"}
