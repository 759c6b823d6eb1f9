"""One-time script to create an admin user, or reset an existing one.

Usage:
    python -m backend.create_admin
"""

from __future__ import annotations

import getpass

from sqlalchemy import func

from backend.app.core.database import SessionLocal
from backend.app.core.security import MIN_PASSWORD_LENGTH
from backend.app.models.user import RoleEnum, User
from backend.app.services.exceptions import ServiceError
from backend.app.services.user_management import create_user, reset_password


def main() -> None:
    username = input("Username [admin]: ").strip() or "admin"
    password = getpass.getpass("Password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"Error: password must be at least {MIN_PASSWORD_LENGTH} characters.")
        return

    db = SessionLocal()
    try:
        existing = db.query(User).filter(
            func.lower(User.username) == username.lower()
        ).first()
        if existing:
            # Reset password, unlock, activate and promote
            reset_password(db, user_id=existing.id, new_password=password, admin_id=None)
            existing.is_active = True
            existing.role = RoleEnum.ADMIN
            db.commit()
            print("Admin user already exists, password reset.")
            print(f"  ID:       {existing.id}")
            print(f"  Username: {existing.username}")
            return

        email = input(f"Email [{username}@cotizador.local]: ").strip() or f"{username}@cotizador.local"
        try:
            user = create_user(
                db,
                username=username,
                email=email,
                password=password,
                first_name="Administrador",
                last_name="Sistema",
                role=RoleEnum.ADMIN,
                admin_id=None,
            )
            db.commit()
        except ServiceError as e:
            db.rollback()
            print(f"Error: {e}")
            return

        print("Admin user created successfully!")
        print(f"  ID:       {user.id}")
        print(f"  Username: {user.username}")
        print("  Role:     ADMIN")
    finally:
        db.close()


if __name__ == "__main__":
    main()
