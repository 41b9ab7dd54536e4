import os

from equiptrak.core.security import get_password_hash
from equiptrak.db import models
from equiptrak.db.session import SessionLocal


def main() -> None:
    email = os.getenv("ADMIN_BOOTSTRAP_EMAIL")
    password = os.getenv("ADMIN_BOOTSTRAP_PASSWORD")
    if not email or not password:
        raise SystemExit("ADMIN_BOOTSTRAP_EMAIL and ADMIN_BOOTSTRAP_PASSWORD must be set.")
    email = email.strip().lower()

    db = SessionLocal()
    try:
        models.Base.metadata.create_all(bind=db.get_bind())
        admin = db.query(models.User).filter(models.User.email == email).first()
        if not admin:
            admin = models.User(email=email, role="admin", password_hash=get_password_hash(password))
            db.add(admin)
        else:
            admin.role = "admin"
            admin.password_hash = get_password_hash(password)
        db.commit()
        print(f"Admin ready: {admin.email}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
