from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from backend.app.api.deps import get_db
from backend.app.schemas.reservation import SweepResult
from backend.services.errors import SweepError
from backend.services.inventory import expire_reservations

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs")


@router.post(
    "/expire-reservations",
    response_model=SweepResult,
    responses={503: {"description": "Fetch or status flip failed, retry later"}},
)
def run_expire_reservations(db: Session = Depends(get_db)):
    """
    Sweep des réservations échues (déclenché par le scheduler ou à la main).
    Pas de payload ; "aujourd'hui" est calculé côté serveur.
    """
    try:
        report = expire_reservations(db)
    except SweepError as exc:
        logger.error("expire-reservations aborted: %s", exc)
        return JSONResponse(status_code=503, content={"error": str(exc)})

    return SweepResult(
        processed_count=report.processed_count,
        products_updated=report.products_updated,
    )
