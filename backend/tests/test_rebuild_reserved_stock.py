from datetime import date

import pytest

from backend.app.db.models.models_v1 import Product
from backend.services.errors import ProductNotFound
from backend.services.inventory import rebuild_reserved_stock
from backend.services.reservations import cancel_reservation, create_reservation

TODAY = date(2026, 3, 10)


def _reserve(db, product, quantity):
    reservation = create_reservation(
        db,
        organization_id=product.organization_id,
        product_id=product.id,
        quantity=quantity,
        today=TODAY,
    )
    db.commit()
    return reservation


def test_rebuild_restores_counter_from_active_reservations(db_session, make_product, reserved_of):
    """
    GIVEN
    - 3 réservations (4 + 6 + 5), dont une annulée
    - compteur corrompu à 42

    THEN
    - rebuild => reserved_stock == 10
    - second rebuild => aucun changement (idempotent)
    """
    product = make_product()
    _reserve(db_session, product, 4)
    _reserve(db_session, product, 6)
    cancelled = _reserve(db_session, product, 5)
    cancel_reservation(db_session, cancelled.id)
    db_session.commit()

    db_session.get(Product, product.id).reserved_stock = 42
    db_session.commit()

    changed = rebuild_reserved_stock(db_session, product_ids=[product.id])
    db_session.commit()

    assert changed == {product.id: (42, 10)}
    assert reserved_of(product.id) == 10

    assert rebuild_reserved_stock(db_session, product_ids=[product.id]) == {}


def test_rebuild_resets_counter_without_active_reservation(db_session, make_product, reserved_of):
    product = make_product(reserved_stock=3)

    changed = rebuild_reserved_stock(db_session, product_ids=[product.id, product.id, None])
    db_session.commit()

    assert changed == {product.id: (3, 0)}
    assert reserved_of(product.id) == 0


def test_rebuild_skips_unlimited_products(db_session, make_product, reserved_of):
    product = make_product(reserved_stock=5, unlimited_stock=True)

    assert rebuild_reserved_stock(db_session, product_ids=[product.id]) == {}
    assert reserved_of(product.id) == 5


def test_rebuild_empty_and_unknown(db_session):
    assert rebuild_reserved_stock(db_session, product_ids=[]) == {}

    with pytest.raises(ProductNotFound):
        rebuild_reserved_stock(db_session, product_ids=[123456])
