from datetime import timedelta

from sqlalchemy.exc import OperationalError

from backend.app.db.models.core_types import ReservationStatus
from backend.app.db.models.models_v1 import ProductReservation
from backend.jobs import expire_reservations as job
from backend.services import inventory
from backend.services.stock_counters import reservations_today


def test_job_runs_sweep_and_exits_zero(db_session, session_factory, make_product, reserved_of, monkeypatch, capsys):
    product = make_product(reserved_stock=3)
    db_session.add(
        ProductReservation(
            organization_id=product.organization_id,
            product_id=product.id,
            quantity=3,
            expiration_date=reservations_today() - timedelta(days=1),
            status=ReservationStatus.active,
        )
    )
    db_session.commit()
    monkeypatch.setattr(job, "SessionLocal", session_factory)

    assert job.run_expire_reservations() == 0
    assert "processed=1" in capsys.readouterr().out
    assert reserved_of(product.id) == 0


def test_job_returns_tempfail_when_fetch_fails(session_factory, monkeypatch):
    def _fail(db, as_of):
        raise OperationalError("SELECT", {}, Exception("db down"))

    monkeypatch.setattr(job, "SessionLocal", session_factory)
    monkeypatch.setattr(inventory, "list_expired", _fail)

    assert job.run_expire_reservations() == job.EX_TEMPFAIL
