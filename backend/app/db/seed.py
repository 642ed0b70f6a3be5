from __future__ import annotations

from sqlalchemy import select

from backend.app.db.session import SessionLocal
from backend.app.db.models.models_v1 import Client, Organization, Product


def run_seed():
    db = SessionLocal()
    try:
        # 1) Organisation de démo
        org = db.scalar(select(Organization).where(Organization.name == "Demo"))
        if not org:
            org = Organization(id=1, name="Demo", active=True)
            db.add(org)
            db.commit()

        # 2) Client comptoir
        client = db.scalar(
            select(Client).where(Client.organization_id == org.id, Client.name == "COMPTOIR")
        )
        if not client:
            db.add(Client(organization_id=org.id, name="COMPTOIR", active=True))
            db.commit()

        # 3) Un produit suivi en stock, un produit illimité (service)
        for sku, name, current_stock, unlimited in (
            ("DEMO-001", "Produit stocké", 100, False),
            ("DEMO-SRV", "Prestation", 0, True),
        ):
            exists = db.scalar(
                select(Product).where(Product.organization_id == org.id, Product.sku == sku)
            )
            if not exists:
                db.add(
                    Product(
                        organization_id=org.id,
                        sku=sku,
                        name=name,
                        current_stock=current_stock,
                        reserved_stock=0,
                        unlimited_stock=unlimited,
                    )
                )
        db.commit()

        print("SEED OK: organization=Demo, client=COMPTOIR, products=DEMO-001,DEMO-SRV")
    finally:
        db.close()


if __name__ == "__main__":
    run_seed()
