from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..db import get_db
from ..models.reference import Barangay, Category, StorageArea

router = APIRouter(prefix="/api", tags=["reference"])


@router.get("/storage-areas")
def list_storage_areas(db: Session = Depends(get_db)):
    rows = db.query(StorageArea).order_by(StorageArea.name).all()
    return [{"id": s.id, "name": s.name, "location": s.location} for s in rows]


@router.get("/categories")
def list_categories(db: Session = Depends(get_db)):
    rows = db.query(Category).order_by(Category.name).all()
    return [{"id": c.id, "name": c.name, "description": c.description} for c in rows]


@router.get("/barangays")
def list_barangays(db: Session = Depends(get_db)):
    return [
        {
            "id": b.id,
            "name": b.name,
            "report": {
                "rice": b.rice or 0,
                "corn": b.corn or 0,
                "highValue": b.high_value or 0,
                "total": b.total or 0,
                "percentToTotal": b.percent_to_total or 0,
            },
        }
        for b in db.query(Barangay).order_by(Barangay.name).all()
    ]
