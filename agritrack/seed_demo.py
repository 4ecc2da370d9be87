from sqlalchemy.orm import Session

from .core.security import hash_password
from .db import SessionLocal, init_db
from .models import Category, Product, StorageArea, Transaction, User

CATEGORIES = [
    ("Seeds", "Various types of seeds"),
    ("Seedlings", "Young plants ready for transplanting"),
    ("Fertilizers", "Plant nutrients and fertilizers"),
    ("Tools", "Gardening and farming tools"),
]

STORAGE_AREAS = [
    ("Warehouse A", "Main Building"),
    ("Greenhouse 1", "East Wing"),
    ("Storage Room B", "West Wing"),
    ("Outdoor Storage", "Backyard"),
]

USERS = [
    ("John Doe", "admin", "john@example.com"),
    ("Jane Smith", "user", "jane@example.com"),
    ("Mike Johnson", "user", "mike@example.com"),
]

PRODUCTS = [
    ("Tomato Seeds", "Seeds", 150, "Warehouse A"),
    ("Corn Seeds", "Seeds", 200, "Warehouse A"),
    ("Tomato Seedlings", "Seedlings", 75, "Greenhouse 1"),
    ("Pepper Seedlings", "Seedlings", 50, "Greenhouse 1"),
    ("NPK Fertilizer", "Fertilizers", 25, "Storage Room B"),
    ("Organic Compost", "Fertilizers", 8, "Storage Room B"),
    ("Garden Shovel", "Tools", 15, "Outdoor Storage"),
    ("Watering Can", "Tools", 30, "Outdoor Storage"),
]

# (producto, tipo, cantidad, usuario, nota)
TRANSACTIONS = [
    (0, "add", 50, 0, "Initial stock"),
    (1, "add", 100, 0, "New shipment"),
    (2, "dispatch", 25, 1, "Customer order"),
    (3, "add", 30, 2, "Greenhouse production"),
    (4, "dispatch", 5, 1, "Field application"),
    (5, "update", 8, 0, "Stock adjustment"),
    (6, "add", 10, 2, "New tools received"),
    (7, "dispatch", 5, 1, "Equipment request"),
]

DEMO_PASSWORD = "password123"


def get_or_create(session: Session, model, defaults=None, **kwargs):
    inst = session.query(model).filter_by(**kwargs).first()
    if inst:
        return inst, False
    params = dict(kwargs)
    if defaults:
        params.update(defaults)
    inst = model(**params)
    session.add(inst)
    session.commit()
    session.refresh(inst)
    return inst, True


def main():
    init_db()
    db: Session = SessionLocal()
    try:
        for name, description in CATEGORIES:
            get_or_create(db, Category, name=name, defaults={"description": description})
        for name, location in STORAGE_AREAS:
            get_or_create(db, StorageArea, name=name, defaults={"location": location})

        users = [
            get_or_create(
                db,
                User,
                email=email,
                defaults={"name": name, "role": role, "password_hash": hash_password(DEMO_PASSWORD)},
            )[0]
            for name, role, email in USERS
        ]
        products = [
            get_or_create(
                db, Product, name=name, defaults={"category": cat, "quantity": qty, "storage_area": area}
            )[0]
            for name, cat, qty, area in PRODUCTS
        ]

        created_tx = 0
        if db.query(Transaction).count() == 0:
            for p_idx, kind, qty, u_idx, remarks in TRANSACTIONS:
                db.add(
                    Transaction(
                        product_id=products[p_idx].id,
                        type=kind,
                        quantity=qty,
                        user_id=users[u_idx].id,
                        remarks=remarks,
                    )
                )
                created_tx += 1
            db.commit()

        print(
            f"Seed OK | users={len(users)} products={len(products)} transactions+={created_tx} "
            f"password={DEMO_PASSWORD}"
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
