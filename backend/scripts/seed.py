"""Seed the database with an admin user and the default product categories.

Usage:
    python -m backend.scripts.seed
"""

from __future__ import annotations

import os

from backend.app.core.database import SessionLocal
from backend.app.core.security import get_password_hash
from backend.app.models.catalog import Category
from backend.app.models.user import RoleEnum, User
from backend.app.services.catalog import slugify

CATEGORIES: list[tuple[str, str]] = [
    ("ELECTRODO", "Electrodos desechables y reutilizables para monitoreo cardiaco"),
    ("PARCHES", "Parches adhesivos para fijación de sensores y electrodos"),
    ("BRAZALETE BP", "Brazaletes para medición de presión arterial (adulto, pediátrico, neonatal)"),
    ("SENSOR", "Sensores de temperatura, SpO2, presión y otros parámetros vitales"),
    ("Componentes de interconexión", "Cables, adaptadores y componentes para interconexión de equipos"),
    ("SONDA", "Sondas y transductores para mediciones especializadas"),
    ("CIRCUITO PACIENTE", "Circuitos y tubos para ventilación y otros sistemas de soporte vital"),
    ("ACCESORIO", "Accesorios diversos para equipos médicos"),
]


def seed() -> None:
    password = os.environ.get("SEED_ADMIN_PASSWORD", "admin123")
    db = SessionLocal()
    try:
        # ── Admin user ─────────────────────────────────────────────────
        admin = db.query(User).filter_by(username="admin").first()
        if admin:
            admin.hashed_password = get_password_hash(password)
            admin.role = RoleEnum.ADMIN
            print("Updated admin password.")
        else:
            admin = User(
                username="admin",
                email="admin@cotizador.local",
                hashed_password=get_password_hash(password),
                first_name="Administrador",
                last_name="Sistema",
                position="Administrador del Sistema",
                role=RoleEnum.ADMIN,
            )
            db.add(admin)
            db.flush()
            print("Created admin user.")

        # ── Categories ─────────────────────────────────────────────────
        for sort_order, (name, description) in enumerate(CATEGORIES, start=1):
            if db.query(Category).filter_by(name=name).first():
                continue
            db.add(
                Category(
                    name=name,
                    description=description,
                    slug=slugify(name),
                    sort_order=sort_order,
                    created_by=admin.id,
                )
            )
            print(f"Created category: {name}")

        db.commit()
        print("Seed complete.")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
