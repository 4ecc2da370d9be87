import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.schemas import product_out
from ..db import get_db
from ..middleware.auth import Principal, get_current_user
from ..models.product import MAX_QUANTITY, Product
from ..services.activity import ActivityRecorder
from ..services.images import ImageUploadError, discard_image, store_image
from ..utils.tabular import MEDIA_TYPES, UnsupportedFileError, parse_product_rows, write_products

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])

DUPLICATE_NAME = "A product with this name already exists"
QUANTITY_RANGE = "Quantity is out of range"


def _validated(name, category, quantity, storage_area):
    name, category, storage_area = (
        (v or "").strip() for v in (name, category, storage_area)
    )
    quantity = (quantity or "").strip()
    if not name or not category or not quantity or not storage_area:
        raise HTTPException(400, "Name, category, quantity, and storage area are required")
    try:
        qty = int(quantity)
    except ValueError:
        raise HTTPException(400, "Quantity must be a whole number")
    if abs(qty) > MAX_QUANTITY:
        raise HTTPException(400, QUANTITY_RANGE)
    return name, category, qty, storage_area


def _name_taken(db: Session, name: str, exclude_id: Optional[int] = None) -> bool:
    # comparación exacta (sensible a mayúsculas)
    q = db.query(Product.id).filter(Product.name == name)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    return q.first() is not None


def _store_image(image: Optional[UploadFile]) -> Optional[str]:
    try:
        return store_image(image)
    except ImageUploadError as e:
        raise HTTPException(e.status_code, str(e))


def _commit(db: Session, new_image: Optional[str]):
    """Commit; si falla, se descarta la imagen recién subida."""
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        discard_image(new_image)
        raise HTTPException(400, DUPLICATE_NAME)
    except SQLAlchemyError:
        db.rollback()
        discard_image(new_image)
        raise


@router.get("")
def list_products(db: Session = Depends(get_db)):
    return [product_out(p) for p in db.query(Product).order_by(Product.id).all()]


@router.get("/export")
def export_products(format: str = Query(default="csv"), db: Session = Depends(get_db)):
    fmt = format.lower()
    if fmt not in MEDIA_TYPES:
        raise HTTPException(400, "Invalid export format. Use csv or xlsx")
    products = db.query(Product).order_by(Product.name).all()
    content = write_products((product_out(p) for p in products), fmt)
    return Response(
        content=content,
        media_type=MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="products.{fmt}"'},
    )


@router.post("/import")
async def import_products(
    file: Optional[UploadFile] = File(default=None),
    db: Session = Depends(get_db),
    user: Principal = Depends(get_current_user),
    activity: ActivityRecorder = Depends(),
):
    if file is None or not file.filename:
        raise HTTPException(400, "No file uploaded")
    content = await file.read()
    if len(content) > settings.max_upload_mb * 1024 * 1024:
        raise HTTPException(413, "File too large")
    try:
        rows = parse_product_rows(file.filename, content)
    except UnsupportedFileError as e:
        raise HTTPException(400, str(e))
    except Exception as e:
        # archivo ilegible (CSV mal formado, xlsx corrupto, ...)
        raise HTTPException(400, f"Could not read file: {e}")

    added = updated = 0
    errors = []
    # la sesión no hace autoflush: se indexan también los productos nuevos
    by_name = {p.name: p for p in db.query(Product).all()}
    now = datetime.utcnow()
    for r in rows:
        if r.error:
            errors.append(r.error)
            continue
        d = r.data
        existing = by_name.get(d["name"])
        if existing:
            total = (existing.quantity or 0) + d["quantity"]
            if abs(total) > MAX_QUANTITY:
                errors.append(f"Row {r.row}: {QUANTITY_RANGE}")
                continue
            existing.quantity = total
            existing.updated_at = now
            updated += 1
        else:
            p = Product(
                name=d["name"],
                category=d["category"],
                quantity=d["quantity"],
                storage_area=d["storageArea"],
                image_url=d["imageUrl"],
            )
            db.add(p)
            by_name[p.name] = p
            added += 1
    db.commit()

    log.info("import %s: added=%s updated=%s errors=%s", file.filename, added, updated, len(errors))
    activity.record(
        user,
        "import_products",
        f"Imported {file.filename}: {added} added, {updated} updated, {len(errors)} errors",
        status="failed" if errors and not (added or updated) else "success",
        resource="product",
    )
    return {
        "message": f"Import completed: {added} added, {updated} updated",
        "added": added,
        "updated": updated,
        "errors": errors,
    }


@router.get("/{product_id}")
def get_product(product_id: int, db: Session = Depends(get_db)):
    p = db.get(Product, product_id)
    if not p:
        raise HTTPException(404, "Product not found")
    return product_out(p)


@router.post("", status_code=201)
def create_product(
    name: Optional[str] = Form(default=None),
    category: Optional[str] = Form(default=None),
    quantity: Optional[str] = Form(default=None),
    storage_area: Optional[str] = Form(default=None, alias="storageArea"),
    image_url: Optional[str] = Form(default=None, alias="imageUrl"),
    image: Optional[UploadFile] = File(default=None),
    db: Session = Depends(get_db),
    user: Principal = Depends(get_current_user),
    activity: ActivityRecorder = Depends(),
):
    name, category, qty, storage_area = _validated(name, category, quantity, storage_area)
    if _name_taken(db, name):
        raise HTTPException(400, DUPLICATE_NAME)

    new_image = _store_image(image)
    p = Product(
        name=name,
        category=category,
        quantity=qty,
        storage_area=storage_area,
        image_url=new_image or image_url or None,
    )
    db.add(p)
    _commit(db, new_image)
    db.refresh(p)

    log.info("product created: %s (%s)", p.name, p.id)
    activity.product(user, "add_product", p, f"Added product {p.name} with quantity {p.quantity}")
    return product_out(p)


@router.put("/{product_id}")
def update_product(
    product_id: int,
    name: Optional[str] = Form(default=None),
    category: Optional[str] = Form(default=None),
    quantity: Optional[str] = Form(default=None),
    storage_area: Optional[str] = Form(default=None, alias="storageArea"),
    image_url: Optional[str] = Form(default=None, alias="imageUrl"),
    image: Optional[UploadFile] = File(default=None),
    db: Session = Depends(get_db),
    user: Principal = Depends(get_current_user),
    activity: ActivityRecorder = Depends(),
):
    p = db.get(Product, product_id)
    if not p:
        raise HTTPException(404, "Product not found")
    name, category, qty, storage_area = _validated(name, category, quantity, storage_area)
    if _name_taken(db, name, exclude_id=p.id):
        raise HTTPException(400, DUPLICATE_NAME)

    new_image = _store_image(image)
    old_image = p.image_url
    p.name, p.category, p.quantity, p.storage_area = name, category, qty, storage_area
    if new_image:
        p.image_url = new_image
    elif image_url is not None:
        p.image_url = image_url or None
    p.updated_at = datetime.utcnow()
    _commit(db, new_image)
    db.refresh(p)
    if old_image and old_image != p.image_url:
        discard_image(old_image)

    activity.product(user, "update_product", p, f"Updated product {p.name}")
    return product_out(p)


@router.delete("/{product_id}")
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    user: Principal = Depends(get_current_user),
    activity: ActivityRecorder = Depends(),
):
    p = db.get(Product, product_id)
    if not p:
        raise HTTPException(404, "Product not found")
    name, image = p.name, p.image_url
    db.delete(p)
    db.commit()
    discard_image(image)

    log.info("product deleted: %s (%s)", name, product_id)
    activity.product(user, "delete_product", product_id, f"Deleted product {name}")
    return {"message": "Product deleted successfully"}
