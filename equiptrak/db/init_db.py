import logging
import os

from sqlalchemy.orm import Session

from equiptrak.core.security import get_password_hash
from equiptrak.db import models
from equiptrak.db.session import SessionLocal

admin_email = os.getenv("ADMIN_EMAIL", "admin@equiptrak.local")
admin_password = os.getenv("ADMIN_PASSWORD", "admin123")
RESET_DEFAULT_PASSWORDS = os.getenv("RESET_DEFAULT_PASSWORDS", "").strip().lower() in {"1", "true", "yes"}

DEFAULT_EQUIPMENT_TYPES = [
    ("Compressor", "Air compressor pressure system"),
    ("Spot Welder", "Resistance spot welding equipment"),
    ("Lift", "Vehicle lift (LOLER)"),
    ("Service", "General service equipment"),
]

logger = logging.getLogger("equiptrak")


def ensure_equipment_types(db: Session) -> None:
    existing = {name for (name,) in db.query(models.EquipmentType.name).all()}
    for name, description in DEFAULT_EQUIPMENT_TYPES:
        if name not in existing:
            db.add(models.EquipmentType(name=name, description=description))
    db.commit()


def ensure_admin_user(db: Session) -> models.User:
    admin_user = db.query(models.User).filter(models.User.email == admin_email).first()
    if not admin_user:
        admin_user = models.User(
            email=admin_email,
            password_hash=get_password_hash(admin_password),
            role="admin",
            first_name="Admin",
        )
        db.add(admin_user)
    else:
        admin_user.role = "admin"
        if RESET_DEFAULT_PASSWORDS or not admin_user.password_hash:
            admin_user.password_hash = get_password_hash(admin_password)
    db.commit()
    db.refresh(admin_user)
    return admin_user


def seed_initial_data(db: Session | None = None) -> None:
    owns_session = db is None
    db = db or SessionLocal()
    try:
        ensure_equipment_types(db)
        ensure_admin_user(db)
        logger.info("Seed OK: admin user %s", admin_email)
    finally:
        if owns_session:
            db.close()
