"""
Job planifié : expiration des réservations (cron quotidien).

    python -m backend.jobs.expire_reservations

Code retour 0 si le sweep est passé (même avec des échecs compteur isolés),
75 (EX_TEMPFAIL) si fetch / flip ont échoué et qu'il faut relancer.
"""
from __future__ import annotations

import logging
import sys

from backend.app.core.logging import configure_logging
from backend.app.db.session import SessionLocal
from backend.services.errors import SweepError
from backend.services.inventory import expire_reservations

logger = logging.getLogger(__name__)

EX_TEMPFAIL = 75


def run_expire_reservations() -> int:
    db = SessionLocal()
    try:
        report = expire_reservations(db)
    except SweepError as exc:
        logger.error("expire-reservations aborted, retry later: %s", exc)
        return EX_TEMPFAIL
    finally:
        db.close()

    if report.failed_product_ids:
        logger.warning(
            "reserved_stock not released for products %s",
            report.failed_product_ids,
        )
    print(
        f"EXPIRE OK: processed={report.processed_count} "
        f"products_updated={report.products_updated}"
    )
    return 0


if __name__ == "__main__":
    configure_logging()
    sys.exit(run_expire_reservations())
