"""
Bootstrap script: create the tables and the first ADMIN user.

The user administration endpoints require an ADMIN token, so a fresh
database needs one account created from the command line:

    docker compose exec api python scripts/create_admin.py \
        --name "Dueña" --email admin@pasteleria.com --password Cambiar!2025
"""

# Add project root to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse

from app.database.database import Base, SessionLocal, engine
from app.main import app  # noqa: F401  registers every model on Base.metadata
from app.modules.auth.models import User, UserRole
from app.modules.auth.utils import hash_password


def create_admin_user(db, name: str, email: str, password: str) -> User:
    email = email.lower()
    user = db.query(User).filter(User.email == email).first()
    if user:
        return user
    user = User(
        name=name,
        email=email,
        password=hash_password(password),
        role=UserRole.ADMIN,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def main():
    parser = argparse.ArgumentParser(description="Create the first ADMIN user")
    parser.add_argument("--name", default="Administrador")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        user = create_admin_user(db, args.name, args.email, args.password)
        print("Admin ready.")
        print(f"  Email: {user.email}")
        print(f"  Role:  {user.role.value}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
