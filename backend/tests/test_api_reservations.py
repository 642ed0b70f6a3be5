from datetime import timedelta

from sqlalchemy.exc import OperationalError

from backend.app.db.models.core_types import ReservationStatus
from backend.app.db.models.models_v1 import ProductReservation
from backend.services import inventory
from backend.services.stock_counters import reservations_today


def _post_reservation(api_client, product, quantity, expiration_date=None, **extra):
    payload = {
        "organization_id": product.organization_id,
        "product_id": product.id,
        "quantity": quantity,
        **extra,
    }
    if expiration_date is not None:
        payload["expiration_date"] = expiration_date.isoformat()
    return api_client.post("/v1/reservations", json=payload)


def test_health(api_client):
    response = api_client.get("/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_and_read_reservation(api_client, make_product, reserved_of):
    product = make_product()
    expires = reservations_today() + timedelta(days=7)

    response = _post_reservation(api_client, product, 3, expires, notes="devis 2026-114")

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == ReservationStatus.active.value
    assert body["quantity"] == 3
    assert body["expiration_date"] == expires.isoformat()
    assert reserved_of(product.id) == 3

    fetched = api_client.get(f"/v1/reservations/{body['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["notes"] == "devis 2026-114"

    listed = api_client.get("/v1/reservations", params={"product_id": product.id})
    assert [r["id"] for r in listed.json()] == [body["id"]]


def test_create_validation_errors(api_client, make_product):
    product = make_product()

    assert _post_reservation(api_client, product, 0).status_code == 400
    past = reservations_today() - timedelta(days=1)
    assert _post_reservation(api_client, product, 1, past).status_code == 400

    missing = api_client.post(
        "/v1/reservations",
        json={"organization_id": product.organization_id, "product_id": 987654, "quantity": 1},
    )
    assert missing.status_code == 404


def test_cancel_then_fulfill_conflict(api_client, make_product, reserved_of):
    product = make_product()
    reservation_id = _post_reservation(api_client, product, 5).json()["id"]

    cancelled = api_client.post(f"/v1/reservations/{reservation_id}/cancel")
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == ReservationStatus.cancelled.value
    assert reserved_of(product.id) == 0

    conflict = api_client.post(f"/v1/reservations/{reservation_id}/fulfill")
    assert conflict.status_code == 409

    assert api_client.post("/v1/reservations/999999/cancel").status_code == 404


def test_partial_then_full_fulfill(api_client, make_product, reserved_of):
    product = make_product()
    reservation_id = _post_reservation(api_client, product, 5).json()["id"]

    partial = api_client.post(f"/v1/reservations/{reservation_id}/fulfill", json={"quantity": 2})
    assert partial.status_code == 200
    assert partial.json()["quantity"] == 3
    assert partial.json()["status"] == ReservationStatus.active.value
    assert reserved_of(product.id) == 3

    full = api_client.post(f"/v1/reservations/{reservation_id}/fulfill")
    assert full.json()["status"] == ReservationStatus.fulfilled.value
    assert reserved_of(product.id) == 0


def _insert_overdue(db_session, product, quantity):
    # déjà échue : on passe par la base, la création API refuse une date passée
    reservation = ProductReservation(
        organization_id=product.organization_id,
        product_id=product.id,
        quantity=quantity,
        expiration_date=reservations_today() - timedelta(days=2),
        status=ReservationStatus.active,
    )
    db_session.add(reservation)
    product.reserved_stock += quantity
    db_session.commit()
    return reservation


def test_expire_job_contract(api_client, db_session, make_product, reserved_of):
    product = make_product()
    overdue = _insert_overdue(db_session, product, 4)
    _post_reservation(api_client, product, 1, reservations_today())

    expired = api_client.get("/v1/reservations/expired")
    assert [r["id"] for r in expired.json()] == [overdue.id]

    response = api_client.post("/v1/jobs/expire-reservations")
    assert response.status_code == 200
    assert response.json() == {"processedCount": 1, "productsUpdated": 1}
    assert reserved_of(product.id) == 1

    again = api_client.post("/v1/jobs/expire-reservations")
    assert again.json() == {"processedCount": 0, "productsUpdated": 0}

    as_of = (reservations_today() + timedelta(days=1)).isoformat()
    upcoming = api_client.get("/v1/reservations/expired", params={"as_of": as_of})
    assert len(upcoming.json()) == 1


def test_expire_job_fetch_failure_is_503(api_client, db_session, make_product, monkeypatch):
    product = make_product()
    _insert_overdue(db_session, product, 2)

    def _fail(db, as_of):
        raise OperationalError("SELECT", {}, Exception("db down"))

    monkeypatch.setattr(inventory, "list_expired", _fail)

    response = api_client.post("/v1/jobs/expire-reservations")
    assert response.status_code == 503
    assert "error" in response.json()


def test_reserved_stock_view_and_rebuild(api_client, db_session, make_product):
    product = make_product()
    _post_reservation(api_client, product, 6)

    product.reserved_stock = 1
    db_session.commit()

    view = api_client.get("/v1/stock/reserved", params={"product_id": product.id}).json()
    assert view == [
        {
            "product_id": product.id,
            "sku": product.sku,
            "reserved_stock": 1,
            "unlimited_stock": False,
            "active_reserved": 6,
        }
    ]

    rebuilt = api_client.post("/v1/stock/reserved/rebuild", json={"product_ids": [product.id]})
    assert rebuilt.status_code == 200
    assert rebuilt.json() == [{"product_id": product.id, "previous": 1, "current": 6}]

    view = api_client.get("/v1/stock/reserved", params={"product_id": product.id}).json()
    assert view[0]["reserved_stock"] == 6
